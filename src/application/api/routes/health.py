"""
Health Check Routes

- GET /health        catalog health: repository probe + cache probe
- GET /health/cache  cache engine probe and statistics only

Status codes: 200 for healthy or degraded (the service still answers every
request, just without the cache benefit), 503 for unhealthy.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from src.application.api.dependencies import CacheServiceDep, ProductServiceDep
from src.core.config.constants import HealthStatus

router = APIRouter(prefix="/health", tags=["Health"])


def _status_code(status: str) -> int:
    return 503 if status == HealthStatus.UNHEALTHY.value else 200


@router.get("")
async def health(service: ProductServiceDep):
    result = await service.health_check()
    return JSONResponse(status_code=_status_code(result["status"]), content=result)


@router.get("/cache")
async def cache_health(cache: CacheServiceDep):
    result = (await cache.health_check()).to_dict()
    return JSONResponse(status_code=_status_code(result["status"]), content=result)
