"""
Cache Module

Redis connection lifecycle, the product cache engine and its
fire-and-forget façade.
"""

from .async_cache import AsyncCacheService
from .product_cache import (
    CacheHealth,
    CacheOptions,
    CacheStatistics,
    CacheStats,
    ProductCacheService,
)
from .redis_client import RedisConnectionManager

__all__ = [
    "RedisConnectionManager",
    "ProductCacheService",
    "CacheOptions",
    "CacheStats",
    "CacheStatistics",
    "CacheHealth",
    "AsyncCacheService",
]
