from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from typing import Optional

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Meta API"
    app_version: str = "0.2.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./meta_api.db"

    # Security settings
    secret_key: str = "change-me"
    access_token_expire_minutes: int = 30

    # API settings
    api_prefix: str = "/api/v1"
    protected_meta_prefix: str = "_"
    meta_keys_file: Optional[str] = None

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
