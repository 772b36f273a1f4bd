"""
FastAPI Dependency Injection Module
===================================

Route handlers receive the catalog components through FastAPI's DI system.
The components are built once in the application lifespan and stored on
``app.state``; the providers below only look them up.

WHY USE app.state?
------------------
- It's explicitly tied to the app instance (tests can put doubles there)
- It's initialized in the lifespan manager (proper lifecycle)
- It's accessible from any request via the Request object

Example:
    @router.get("/products/{product_id}")
    async def get_product(product_id: int, service: ProductServiceDep):
        return await service.get_product(product_id)
"""

from typing import Annotated

from fastapi import Depends, Request

from src.catalog.services.product_service import ProductService
from src.core.config.settings import Settings, get_settings
from src.infrastructure.cache.product_cache import ProductCacheService


def _from_state(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise RuntimeError(
            f"{name} not initialized in app.state. "
            "This indicates the application lifespan startup didn't complete properly."
        )
    return component


def get_product_service(request: Request) -> ProductService:
    """Retrieve the ProductService built during startup."""
    return _from_state(request, "product_service")


def get_cache_service(request: Request) -> ProductCacheService:
    """Retrieve the ProductCacheService built during startup."""
    return _from_state(request, "cache_service")


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_user_id(request: Request) -> str | None:
    """
    Acting user for event payloads.

    Authentication is handled upstream; this only forwards the X-User-ID
    header when a gateway sets it.
    """
    return request.headers.get("X-User-ID")


# ============================================================================
# TYPE ALIASES FOR CLEANER ROUTE SIGNATURES
# ============================================================================

ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
CacheServiceDep = Annotated[ProductCacheService, Depends(get_cache_service)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
UserIdDep = Annotated[str | None, Depends(get_user_id)]
