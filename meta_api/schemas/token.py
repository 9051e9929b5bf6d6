from typing import Optional

from pydantic import BaseModel, Field


class Token(BaseModel):
    access_token: str = Field(..., min_length=32, description="Signed JWT access token.")
    token_type: str = Field("Bearer", pattern="^Bearer$", description="Always 'Bearer'.")
    expires_in: Optional[int] = Field(None, description="Seconds until the token expires.")
