"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from metered_api import __version__
from metered_api.config import StorageBackend, get_settings
from metered_api.errors.handlers import register_exception_handlers
from metered_api.middleware.usage_logger import UsageLoggingMiddleware
from metered_api.routes import (
    account_router,
    admin_router,
    credits_router,
    health_router,
    items_router,
)
from metered_api.services.usage_recorder import get_usage_recorder
from metered_api.storage.redis_client import close_redis, init_redis

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan handler.

    Handles startup and shutdown events:
    - Startup: Connect Redis and register Lua scripts when the Redis backend is selected
    - Shutdown: Flush pending usage log writes, close Redis connection
    """
    settings = get_settings()
    logger.info(
        "Starting Metered Items API v%s in %s mode (%s storage)",
        __version__,
        settings.api_env.value,
        settings.storage_backend.value,
    )

    if settings.storage_backend == StorageBackend.REDIS:
        await init_redis()

    yield

    logger.info("Shutting down Metered Items API")

    await get_usage_recorder().drain()

    if settings.storage_backend == StorageBackend.REDIS:
        await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Metered Items API",
        description=(
            "Credit-metered CRUD API for small key/value items.\n\n"
            "## Credits\n"
            "Every `/items` request costs one credit. Each user may recharge once.\n\n"
            "## Authentication\n"
            "Send your API key as `Authorization: Bearer <key>` or in the `X-API-Key` header."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(UsageLoggingMiddleware)  # type: ignore[arg-type]

    # Register exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(items_router, prefix=settings.api_prefix)
    app.include_router(account_router, prefix=settings.api_prefix)
    app.include_router(credits_router, prefix=settings.api_prefix)
    app.include_router(admin_router, prefix=settings.api_prefix)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "metered_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_env.value == "development",
    )
