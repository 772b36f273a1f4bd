#!/usr/bin/env python3
"""
FastAPI Application Entry Point

This is the main entry point for the Catalog Cache Service.
It builds the application context, configures middleware and routes.

Startup order (ApplicationContext.build / start):
    settings → logging → connection manager → cache engine → async façade
    → event bus → repository → catalog service

Shutdown order (ApplicationContext.stop):
    drain pending fire-and-forget cache work → disconnect Redis
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.application.api.middleware import RequestContextMiddleware, add_error_handling
from src.application.api.routes.health import router as health_router
from src.application.api.routes.products import router as products_router
from src.catalog.services.product_events import ProductEventService
from src.catalog.services.product_service import ProductService
from src.core.config.constants import HEADER_REQUEST_ID
from src.core.config.settings import Settings, get_settings
from src.core.exceptions import CacheConnectionError
from src.core.interfaces.repository import ProductRepository
from src.core.logging.logger import get_logger, setup_logging
from src.infrastructure.cache.async_cache import AsyncCacheService
from src.infrastructure.cache.product_cache import ProductCacheService
from src.infrastructure.cache.redis_client import RedisConnectionManager
from src.infrastructure.persistence.memory_repository import InMemoryProductRepository

logger = get_logger(__name__)


# ============================================================================
# Application Context
# ============================================================================


@dataclass
class ApplicationContext:
    """Process-wide components, built once and passed explicitly."""

    settings: Settings
    connection: RedisConnectionManager
    cache_service: ProductCacheService
    async_cache: AsyncCacheService
    events: ProductEventService
    repository: ProductRepository
    product_service: ProductService

    @classmethod
    def build(
        cls,
        settings: Settings | None = None,
        redis_client=None,
        repository: ProductRepository | None = None,
    ) -> "ApplicationContext":
        settings = settings or get_settings()
        connection = RedisConnectionManager(settings, client=redis_client)
        cache_service = ProductCacheService(connection, settings)
        async_cache = AsyncCacheService(cache_service, settings)
        events = ProductEventService(settings)
        events.setup_event_listeners()
        repository = repository or InMemoryProductRepository()
        product_service = ProductService(repository, cache_service, async_cache, events, settings)
        return cls(
            settings=settings,
            connection=connection,
            cache_service=cache_service,
            async_cache=async_cache,
            events=events,
            repository=repository,
            product_service=product_service,
        )

    async def start(self) -> None:
        """Connect Redis; on failure the service starts degraded until a cache call's PING succeeds."""
        try:
            await self.connection.connect()
            logger.info("Redis connected")
        except CacheConnectionError as e:
            logger.error(
                "Redis unavailable at startup, serving without cache",
                error=e.message,
            )

    async def stop(self) -> None:
        pending = await self.async_cache.drain(self.settings.CACHE_DRAIN_TIMEOUT)
        if pending:
            logger.warning("Shutting down with unfinished cache tasks", pending=pending)
        await self.connection.disconnect()

    def attach(self, app: FastAPI) -> None:
        """Store the components on app.state for dependencies.py."""
        app.state.context = self
        app.state.product_service = self.product_service
        app.state.cache_service = self.cache_service
        app.state.async_cache = self.async_cache
        app.state.events = self.events


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    Uses the settings create_app() stored on app.state.
    """
    settings = getattr(app.state, "settings", None) or get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Catalog Cache Service",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    context = ApplicationContext.build(settings)
    await context.start()
    context.attach(app)
    logger.info("Application startup complete")

    try:
        yield
    finally:
        logger.info("Shutting down application")
        await context.stop()
        logger.info("Application shutdown complete")


# ============================================================================
# Application Factory
# ============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Product catalog with a Redis read-through/write-through cache",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    # Middleware added last runs first: request id is bound before errors are logged
    add_error_handling(app, include_traceback=(settings.app.ENVIRONMENT == "development"))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[HEADER_REQUEST_ID],
    )

    app.add_middleware(RequestContextMiddleware)

    # All API endpoints are prefixed with API_BASE_PATH (default: /api/v1)
    base_path = settings.API_BASE_PATH
    app.include_router(health_router, prefix=base_path)
    app.include_router(products_router, prefix=base_path)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": f"{base_path}/health",
        }

    return app


# Create application instance
app = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
