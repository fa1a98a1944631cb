"""FastAPI application entry point."""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sessionauth.config import Settings, get_settings
from sessionauth.interfaces.api.v1.router import v1_router
from sessionauth.interfaces.dependencies import build_facade
from sessionauth.interfaces.error_handlers import register_error_handlers
from sessionauth.interfaces.facade import AuthFacade
from sessionauth.logging import setup_logging

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None, facade: AuthFacade | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.debug, settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("startup", store_backend=settings.store_backend, environment=settings.environment)
        yield
        # Shutdown: clean up
        if settings.store_backend == "database":
            from sessionauth.infrastructure.database.connection import dispose_engine

            await dispose_engine()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Session authority: issue, validate, refresh and revoke bearer sessions",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.facade = facade or build_facade(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(v1_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": settings.app_version}

    return app
