"""
Unit Tests for Async Cache Façade

Tests flag gating, failure containment, re-cache ordering and drain.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from src.core.exceptions import CacheOperationError
from src.infrastructure.cache.async_cache import AsyncCacheService
from tests.test_fixtures import ProductFactory


@pytest.fixture
def async_cache(mock_cache_service, test_settings):
    return AsyncCacheService(mock_cache_service, test_settings)


@pytest.mark.unit
class TestScheduling:
    """Test that work is scheduled and delegated."""

    async def test_cache_product_schedules_task(self, async_cache, mock_cache_service, sample_product):
        task = async_cache.cache_product(sample_product, ttl=60)

        assert isinstance(task, asyncio.Task)
        await task
        mock_cache_service.cache_product.assert_awaited_once()
        product, options = mock_cache_service.cache_product.await_args.args
        assert product == sample_product
        assert options.ttl == 60
        assert options.use_hash is True

    async def test_caller_is_not_blocked(self, async_cache, mock_cache_service, sample_product):
        async_cache.cache_product(sample_product)

        # Nothing ran yet: the task starts on the next loop iteration
        mock_cache_service.cache_product.assert_not_awaited()
        assert async_cache.pending_count == 1

        await async_cache.drain()
        mock_cache_service.cache_product.assert_awaited_once()

    async def test_invalidate_product(self, async_cache, mock_cache_service):
        await async_cache.invalidate_product(7)

        mock_cache_service.invalidate_product.assert_awaited_once_with(7)

    async def test_invalidate_product_lists(self, async_cache, mock_cache_service):
        await async_cache.invalidate_product_lists()

        mock_cache_service.invalidate_product_lists.assert_awaited_once_with()

    async def test_update_product_fields(self, async_cache, mock_cache_service):
        await async_cache.update_product_fields(7, {"price": 12.5})

        mock_cache_service.update_product_fields.assert_awaited_once_with(7, {"price": 12.5})

    async def test_cache_product_list(self, async_cache, mock_cache_service, sample_products):
        await async_cache.cache_product_list(sample_products, "1:10::")

        products, fingerprint, options = mock_cache_service.cache_product_list.await_args.args
        assert products == sample_products
        assert fingerprint == "1:10::"
        assert options.ttl is None


@pytest.mark.unit
class TestFlags:
    """Test that disabled flags schedule nothing."""

    async def test_async_cache_disabled(self, mock_cache_service, sample_product):
        settings = ProductFactory.settings(PRODUCT_ASYNC_CACHE_ENABLED=False)
        async_cache = AsyncCacheService(mock_cache_service, settings)

        assert async_cache.cache_product(sample_product) is None
        assert async_cache.re_cache_product(sample_product) is None
        assert async_cache.update_product_fields(1, {"price": 1.0}) is None
        assert async_cache.cache_product_list([sample_product], "1:10::") is None
        assert async_cache.pending_count == 0

    async def test_cache_invalidation_disabled(self, mock_cache_service):
        settings = ProductFactory.settings(PRODUCT_ENABLE_CACHE_INVALIDATION=False)
        async_cache = AsyncCacheService(mock_cache_service, settings)

        assert async_cache.invalidate_product(1) is None
        assert async_cache.invalidate_product_lists() is not None
        await async_cache.drain()

    async def test_list_invalidation_disabled(self, mock_cache_service):
        settings = ProductFactory.settings(PRODUCT_ENABLE_LIST_INVALIDATION=False)
        async_cache = AsyncCacheService(mock_cache_service, settings)

        assert async_cache.invalidate_product_lists() is None
        mock_cache_service.invalidate_product_lists.assert_not_called()


@pytest.mark.unit
class TestFailureContainment:
    """Test that failures are logged, never raised."""

    async def test_failure_is_swallowed_and_logged(self, async_cache, mock_cache_service, sample_product, monkeypatch):
        from src.infrastructure.cache import async_cache as module

        mock_logger = MagicMock()
        monkeypatch.setattr(module, "logger", mock_logger)
        warning = mock_logger.warning
        mock_cache_service.cache_product.side_effect = CacheOperationError(
            "Operation cacheProduct failed after 3 retries: down", operation="cacheProduct"
        )

        task = async_cache.cache_product(sample_product)
        await task

        assert task.exception() is None
        warning.assert_called_once()
        assert warning.call_args.args[0] == "Async cache failed"
        assert warning.call_args.kwargs["error_type"] == "CacheOperationError"
        assert warning.call_args.kwargs["product_id"] == sample_product.id


@pytest.mark.unit
class TestReCache:
    """Test the ordered write-then-invalidate unit."""

    async def test_write_precedes_list_invalidation(self, async_cache, mock_cache_service, sample_product):
        order = []
        mock_cache_service.cache_product.side_effect = lambda *a, **k: order.append("write")
        mock_cache_service.invalidate_product_lists.side_effect = lambda *a, **k: order.append("lists")

        await async_cache.re_cache_product(sample_product)

        assert order == ["write", "lists"]

    async def test_failed_write_skips_invalidation(self, async_cache, mock_cache_service, sample_product):
        mock_cache_service.cache_product.side_effect = CacheOperationError("down")

        await async_cache.re_cache_product(sample_product)

        mock_cache_service.invalidate_product_lists.assert_not_awaited()

    async def test_list_flag_off_skips_invalidation(self, mock_cache_service, sample_product):
        settings = ProductFactory.settings(PRODUCT_ENABLE_LIST_INVALIDATION=False)
        async_cache = AsyncCacheService(mock_cache_service, settings)

        await async_cache.re_cache_product(sample_product)

        mock_cache_service.cache_product.assert_awaited_once()
        mock_cache_service.invalidate_product_lists.assert_not_awaited()


@pytest.mark.unit
class TestDrain:
    """Test shutdown draining."""

    async def test_drain_with_nothing_pending(self, async_cache):
        assert await async_cache.drain() == 0

    async def test_drain_waits_for_tasks(self, async_cache, mock_cache_service, sample_product):
        async_cache.cache_product(sample_product)
        async_cache.invalidate_product(sample_product.id)

        assert await async_cache.drain() == 0
        assert async_cache.pending_count == 0
        mock_cache_service.invalidate_product.assert_awaited_once()

    async def test_drain_timeout_reports_pending(self, async_cache, mock_cache_service, sample_product):
        release = asyncio.Event()

        async def slow_write(*args, **kwargs):
            await release.wait()

        mock_cache_service.cache_product.side_effect = slow_write
        async_cache.cache_product(sample_product)

        assert await async_cache.drain(timeout=0.01) == 1

        release.set()
        assert await async_cache.drain() == 0
