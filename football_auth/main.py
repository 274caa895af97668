"""Football Auth - FastAPI Application Factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from football_auth.api import api_router
from football_auth.api.error_handling import register_exception_handlers
from football_auth.api.health import router as health_router
from football_auth.core import Settings, async_session_maker, get_settings, init_models, setup_logging
from football_auth.core.logging import get_logger
from football_auth.middleware import GatekeeperMiddleware
from football_auth.services.gatekeeper import Gatekeeper
from football_auth.services.revocation import (
    RedisRevocationStore,
    build_revocation_store,
    revocation_cleanup_loop,
)
from football_auth.services.tokens import TokenCodec

logger = get_logger("main")


def task_done_callback(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    setup_logging(
        level=settings.log_level,
        format_type="structured" if not settings.debug else "dev",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    await init_models()

    store = app.state.revocation_store
    cleanup_task = asyncio.create_task(
        revocation_cleanup_loop(store, settings.revocation_cleanup_interval_seconds),
        name="revocation-cleanup",
    )
    cleanup_task.add_done_callback(task_done_callback)

    yield

    logger.info("Shutting down...")
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass
    if isinstance(store, RedisRevocationStore):
        await store.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Raises ConfigError when no JWT secret is configured.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Football App authentication and session service",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    codec = TokenCodec.from_settings(settings)
    store = build_revocation_store(settings, async_session_maker)
    app.state.settings = settings
    app.state.token_codec = codec
    app.state.revocation_store = store
    app.state.gatekeeper = Gatekeeper(codec, store)

    register_exception_handlers(app)

    app.add_middleware(GatekeeperMiddleware)

    # CORS must be outermost (added last) so 401s from the gatekeeper carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(api_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "health": "/health",
            "api": "/api",
        }

    logger.debug(
        f"Application created with {settings.revocation_backend} revocation backend"
    )
    return app


# Application instance
app = create_app()
