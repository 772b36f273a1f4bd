"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures import CacheTestFactory, ProductFactory  # noqa: E402

# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode (see pyproject.toml)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """
    Real Settings instance for tests, isolated from any .env file.

    Event emission is switched on so event paths are exercised.
    """
    return ProductFactory.settings()


@pytest.fixture
def no_sleep():
    """Backoff sleep replacement that records delays without waiting."""
    return AsyncMock()


# ============================================================================
# Redis / Cache Fixtures
# ============================================================================


@pytest.fixture
def in_memory_redis_client():
    """
    In-memory Redis client stub for testing.

    Mimics the redis.asyncio commands the cache engine issues.
    """
    return CacheTestFactory.in_memory_redis()


@pytest.fixture
def connection_manager(in_memory_redis_client, test_settings):
    """RedisConnectionManager already connected to the in-memory client."""
    return CacheTestFactory.connected_manager(in_memory_redis_client, test_settings)


@pytest.fixture
def cache_service(connection_manager, test_settings, no_sleep):
    """ProductCacheService over the in-memory client, backoff without waiting."""
    from src.infrastructure.cache.product_cache import ProductCacheService

    return ProductCacheService(connection_manager, test_settings, sleep=no_sleep)


@pytest.fixture
def mock_cache_service():
    """
    Mock ProductCacheService for isolated service tests.

    Reads miss by default; writes succeed.
    """
    from src.infrastructure.cache.product_cache import (
        CacheHealth,
        CacheStats,
        ProductCacheService,
    )
    from src.core.config.constants import HealthStatus

    cache = MagicMock(spec=ProductCacheService)
    cache.get_cached_product = AsyncMock(return_value=None)
    cache.get_cached_product_list = AsyncMock(return_value=None)
    cache.cache_product = AsyncMock()
    cache.cache_product_list = AsyncMock()
    cache.invalidate_product = AsyncMock(return_value=2)
    cache.invalidate_product_lists = AsyncMock(return_value=0)
    cache.update_product_fields = AsyncMock(return_value=[])
    cache.get_cache_stats = MagicMock(return_value=CacheStats())
    cache.health_check = AsyncMock(
        return_value=CacheHealth(status=HealthStatus.HEALTHY, latency_ms=1.0, stats=CacheStats())
    )
    return cache


@pytest.fixture
def mock_async_cache():
    """Mock AsyncCacheService; every scheduling method returns None."""
    from src.infrastructure.cache.async_cache import AsyncCacheService

    async_cache = MagicMock(spec=AsyncCacheService)
    async_cache.drain = AsyncMock(return_value=0)
    return async_cache


# ============================================================================
# Catalog Fixtures
# ============================================================================


@pytest.fixture
def memory_repository():
    """Empty in-memory product repository."""
    from src.infrastructure.persistence.memory_repository import InMemoryProductRepository

    return InMemoryProductRepository()


@pytest.fixture
def mock_repository():
    """Mock ProductRepository with async methods."""
    repository = MagicMock()
    repository.create = AsyncMock()
    repository.find_by_id = AsyncMock(return_value=None)
    repository.find_many = AsyncMock(return_value=([], 0))
    repository.update = AsyncMock(return_value=None)
    repository.delete = AsyncMock(return_value=0)
    repository.count = AsyncMock(return_value=0)
    return repository


@pytest.fixture
def event_service(test_settings):
    """ProductEventService with emission enabled."""
    from src.catalog.services.product_events import ProductEventService

    return ProductEventService(test_settings)


@pytest.fixture
def sample_product():
    """Sample Product for testing."""
    return ProductFactory.product()


@pytest.fixture
def sample_products():
    """Three products in the Tools category."""
    return ProductFactory.products(3)
