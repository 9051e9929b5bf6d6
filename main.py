import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meta_api.config import settings
from meta_api.constants.meta import EntityType
from meta_api.database import Base, engine
from meta_api.exception_handlers import register_exception_handlers
from meta_api.meta_keys import build_default_registry
from meta_api.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from meta_api.plugins.loader import initialize_plugins
from meta_api.plugins.registry import PluginRegistry
from meta_api.routes import audit, auth
from meta_api.routes.meta import build_meta_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tasks to run at application startup and shutdown."""
    logger.info("Starting up the application...")
    if settings.debug or settings.database_url.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")

    await initialize_plugins(app.state.plugin_registry)
    yield

    logger.info("Shutting down the application...")
    await app.state.plugin_registry.unload_all()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    setup_structured_logging(
        log_level=settings.log_level,
        json_format=settings.log_format == "json",
        debug=settings.debug,
    )

    app = FastAPI(
        title=settings.app_name,
        description="Metadata REST API for posts, users, comments and terms",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.state.meta_registry = build_default_registry(settings.meta_keys_file)
    app.state.plugin_registry = PluginRegistry()

    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Location", "X-Request-ID"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix="/auth", tags=["Auth"])
    app.include_router(audit.router, prefix=settings.api_prefix)
    for entity_type in EntityType:
        app.include_router(build_meta_router(entity_type), prefix=settings.api_prefix)

    @app.get("/health", tags=["Root"])
    async def health():
        return {"status": "ok", "version": settings.app_version}

    if settings.debug:
        logger.info("Running in %s mode", settings.environment)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
