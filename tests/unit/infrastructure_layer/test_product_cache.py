"""
Unit Tests for Product Cache Engine

Tests key generation, single/list caching, invalidation, partial updates,
statistics and the health probe against an in-memory Redis double.
"""

from unittest.mock import AsyncMock

import orjson
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.core.config.constants import HealthStatus
from src.core.exceptions import (
    CacheConnectionError,
    CacheDataValidationError,
    CacheOperationError,
)
from src.infrastructure.cache.product_cache import (
    CacheOptions,
    ProductCacheService,
    product_from_hash,
    product_to_hash,
)
from src.infrastructure.cache.redis_client import RedisConnectionManager
from tests.test_fixtures import CacheTestFactory, ProductFactory


@pytest.mark.unit
class TestKeyGeneration:
    """Test key scheme."""

    def test_default_keys(self, cache_service):
        assert cache_service.generate_hash_key(7) == "products_hash:7"
        assert cache_service.generate_single_key(7) == "product:single:7"
        assert cache_service.generate_list_key("1:10::") == "product:list:1:10::"

    def test_prefixed_keys(self, cache_service):
        assert cache_service.generate_hash_key(7, "tenant_a") == "tenant_a:7"
        assert cache_service.generate_single_key(7, "tenant_a") == "tenant_a:single:7"
        assert cache_service.generate_key("custom", "tenant_a") == "tenant_a:custom"

    def test_list_patterns(self):
        assert ProductCacheService.list_patterns() == ["product:list:*", "products_list:*"]
        assert ProductCacheService.list_patterns("tenant_a") == [
            "tenant_a:list:*",
            "tenant_a_list:*",
        ]


@pytest.mark.unit
class TestHashConversion:
    """Test product <-> hash conversion."""

    def test_round_trip(self, sample_product):
        product_hash = product_to_hash(sample_product)

        assert "cachedAt" in product_hash
        assert product_from_hash(product_hash) == sample_product

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"id": ""}, "missing required fields"),
            ({"id": "abc"}, "invalid ID"),
            ({"id": "0"}, "invalid ID"),
            ({"price": "cheap"}, "invalid price"),
            ({"price": "-1"}, "invalid price"),
            ({"price": "inf"}, "invalid price"),
            ({"name": "   "}, "blank name or category"),
        ],
    )
    def test_malformed_hash_is_rejected(self, overrides, message):
        product_hash = {"id": "1", "name": "Widget", "price": "9.99", "category": "Tools"}
        product_hash.update(overrides)

        with pytest.raises(CacheDataValidationError, match=message):
            product_from_hash(product_hash)


@pytest.mark.unit
class TestSingleProductCaching:
    """Test cache_product / get_cached_product."""

    async def test_hash_round_trip(self, cache_service, in_memory_redis_client, sample_product):
        await cache_service.cache_product(sample_product)

        assert in_memory_redis_client.ttls["products_hash:1"] == 60
        assert in_memory_redis_client.pipelines_executed == 1
        assert await cache_service.get_cached_product(1) == sample_product

        stats = cache_service.get_cache_stats()
        assert stats.hits == 1
        assert stats.operations == 1

    async def test_custom_ttl(self, cache_service, in_memory_redis_client, sample_product):
        await cache_service.cache_product(sample_product, CacheOptions(ttl=15))

        assert in_memory_redis_client.ttls["products_hash:1"] == 15

    async def test_string_mode_round_trip(self, cache_service, in_memory_redis_client, sample_product):
        options = CacheOptions(use_hash=False)

        await cache_service.cache_product(sample_product, options)

        raw = in_memory_redis_client.data["product:single:1"]
        assert orjson.loads(raw)["name"] == "Widget"
        assert "products_hash:1" not in in_memory_redis_client.data
        assert await cache_service.get_cached_product(1, options) == sample_product

    async def test_miss_returns_none_and_counts(self, cache_service):
        assert await cache_service.get_cached_product(999) is None

        stats = cache_service.get_cache_stats()
        assert stats.misses == 1
        assert stats.operations == 1
        assert stats.hit_rate == 0.0

    async def test_malformed_id_raises_validation_error(self, cache_service, in_memory_redis_client):
        in_memory_redis_client.data["products_hash:5"] = {
            "id": "abc", "name": "Widget", "price": "9.99", "category": "Tools",
        }

        with pytest.raises(CacheDataValidationError, match="invalid ID"):
            await cache_service.get_cached_product(5)

        stats = cache_service.get_cache_stats()
        assert stats.errors == 1
        assert stats.retries == 0
        assert stats.hits == 0

    async def test_partial_hash_is_not_returned(self, cache_service, in_memory_redis_client):
        in_memory_redis_client.data["products_hash:5"] = {"id": "5", "price": "1.0"}

        with pytest.raises(CacheDataValidationError):
            await cache_service.get_cached_product(5)

    async def test_prefix_isolates_tenants(self, cache_service, sample_product):
        await cache_service.cache_product(sample_product, CacheOptions(prefix="tenant_a"))

        assert await cache_service.get_cached_product(1) is None
        assert await cache_service.get_cached_product(1, CacheOptions(prefix="tenant_a")) == sample_product


@pytest.mark.unit
class TestProductListCaching:
    """Test list caching."""

    async def test_list_round_trip_preserves_order(self, cache_service, in_memory_redis_client):
        products = list(reversed(ProductFactory.products(3)))

        await cache_service.cache_product_list(products, "1:10:Tools:")

        assert in_memory_redis_client.ttls["product:list:1:10:Tools:"] == 300
        assert await cache_service.get_cached_product_list("1:10:Tools:") == products

    async def test_list_miss(self, cache_service):
        assert await cache_service.get_cached_product_list("1:10::") is None
        assert cache_service.get_cache_stats().misses == 1

    async def test_empty_list_is_a_hit(self, cache_service):
        await cache_service.cache_product_list([], "9:10::")

        assert await cache_service.get_cached_product_list("9:10::") == []

    async def test_corrupt_list_raises(self, cache_service, in_memory_redis_client):
        in_memory_redis_client.data["product:list:1:10::"] = "not-json"

        with pytest.raises(CacheDataValidationError):
            await cache_service.get_cached_product_list("1:10::")
        assert cache_service.get_cache_stats().errors == 1


@pytest.mark.unit
class TestInvalidation:
    """Test single and list invalidation."""

    async def test_invalidate_product_removes_both_modes(self, cache_service, sample_product):
        await cache_service.cache_product(sample_product)
        await cache_service.cache_product(sample_product, CacheOptions(use_hash=False))

        assert await cache_service.invalidate_product(1) == 2
        assert await cache_service.get_cached_product(1) is None

    async def test_invalidate_missing_product(self, cache_service):
        assert await cache_service.invalidate_product(42) == 0

    async def test_invalidate_lists_sweeps_both_namespaces(self, cache_service, in_memory_redis_client, sample_product):
        await cache_service.cache_product_list([sample_product], "1:10::")
        await cache_service.cache_product_list([sample_product], "2:10::")
        in_memory_redis_client.data["products_list:legacy"] = "[]"
        await cache_service.cache_product(sample_product)

        assert await cache_service.invalidate_product_lists() == 3

        assert "products_hash:1" in in_memory_redis_client.data
        assert await cache_service.get_cached_product_list("1:10::") is None

    async def test_invalidate_lists_with_nothing_cached(self, cache_service):
        assert await cache_service.invalidate_product_lists() == 0

    async def test_prefixed_list_invalidation_spares_tenant_products(
        self, cache_service, in_memory_redis_client, sample_product
    ):
        options = CacheOptions(prefix="tenant_a")
        await cache_service.cache_product(sample_product, options)
        await cache_service.cache_product_list([sample_product], "1:10::", options)

        assert await cache_service.invalidate_product_lists(options) == 1
        assert "tenant_a:1" in in_memory_redis_client.data


@pytest.mark.unit
class TestPartialUpdate:
    """Test update_product_fields."""

    async def test_merges_only_supplied_fields(self, cache_service, in_memory_redis_client, sample_product):
        await cache_service.cache_product(sample_product)
        before = dict(in_memory_redis_client.data["products_hash:1"])

        written = await cache_service.update_product_fields(1, {"price": 12.5})

        assert set(written) == {"price", "cachedAt"}
        after = in_memory_redis_client.data["products_hash:1"]
        assert after["price"] == "12.5"
        assert after["name"] == before["name"]
        assert after["category"] == before["category"]
        assert (await cache_service.get_cached_product(1)).price == 12.5

    async def test_none_values_are_ignored(self, cache_service, in_memory_redis_client, sample_product):
        await cache_service.cache_product(sample_product)

        written = await cache_service.update_product_fields(1, {"name": None, "category": "Garden"})

        assert set(written) == {"category", "cachedAt"}
        assert in_memory_redis_client.data["products_hash:1"]["name"] == "Widget"

    async def test_absent_hash_stays_absent(self, cache_service, in_memory_redis_client):
        assert await cache_service.update_product_fields(3, {"price": 1.0}) == []
        assert "products_hash:3" not in in_memory_redis_client.data

    async def test_invalidation_between_check_and_write_is_not_resurrected(
        self, cache_service, in_memory_redis_client, sample_product
    ):
        await cache_service.cache_product(sample_product)
        real_exists = in_memory_redis_client.exists
        calls = 0

        async def exists_then_invalidate(*keys):
            nonlocal calls
            calls += 1
            found = await real_exists(*keys)
            if calls == 1:
                await cache_service.invalidate_product(sample_product.id)
            return found

        in_memory_redis_client.exists = exists_then_invalidate

        assert await cache_service.update_product_fields(1, {"price": 12.5}) == []
        assert "products_hash:1" not in in_memory_redis_client.data
        assert "products_hash:1" not in in_memory_redis_client.ttls
        assert calls == 2

    async def test_merge_keeps_existing_ttl(self, cache_service, in_memory_redis_client, sample_product):
        await cache_service.cache_product(sample_product, CacheOptions(ttl=15))

        await cache_service.update_product_fields(1, {"name": "Gadget"})

        assert in_memory_redis_client.ttls["products_hash:1"] == 15
        assert in_memory_redis_client.data["products_hash:1"]["name"] == "Gadget"


@pytest.mark.unit
class TestRetryAndStats:
    """Test retry integration and counters."""

    async def test_exhausted_read_raises_operation_error(self, test_settings):
        sleep = AsyncMock()
        cache = CacheTestFactory.cache_service(
            CacheTestFactory.failing_redis_client(), test_settings, sleep=sleep
        )

        with pytest.raises(CacheOperationError, match="getCachedProduct failed after 3 retries"):
            await cache.get_cached_product(1)

        stats = cache.get_cache_stats()
        assert stats.operations == 1
        assert stats.retries == 3
        assert stats.errors == 1
        assert sleep.await_count == 3

    async def test_recovers_after_failed_startup_connect(self, test_settings, in_memory_redis_client):
        manager = RedisConnectionManager(test_settings, client=in_memory_redis_client)
        cache = ProductCacheService(manager, test_settings, sleep=AsyncMock())
        healthy_ping = in_memory_redis_client.ping
        in_memory_redis_client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        with pytest.raises(CacheConnectionError):
            await manager.connect()
        assert manager.is_connected() is False

        in_memory_redis_client.ping = healthy_ping
        await cache.cache_product(ProductFactory.product())

        assert manager.is_connected() is True
        assert "products_hash:1" in in_memory_redis_client.data
        assert (await cache.health_check()).is_healthy

    async def test_stays_disconnected_while_ping_fails(self, test_settings, in_memory_redis_client):
        manager = RedisConnectionManager(test_settings, client=in_memory_redis_client)
        cache = ProductCacheService(manager, test_settings, sleep=AsyncMock())
        in_memory_redis_client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))

        with pytest.raises(CacheOperationError, match="not connected"):
            await cache.cache_product(ProductFactory.product())

        assert in_memory_redis_client.ping.await_count == 4
        assert in_memory_redis_client.data == {}

    async def test_command_connection_error_marks_disconnected(self, test_settings):
        client = CacheTestFactory.failing_redis_client()
        cache = CacheTestFactory.cache_service(client, test_settings)

        with pytest.raises(CacheOperationError):
            await cache.get_cached_product(1)

        assert cache._connection.is_connected() is False
        # The first attempt hit the command; later attempts only sent PING
        assert client.hgetall.await_count == 1
        assert client.ping.await_count == 3

    async def test_transient_command_failure_recovers(self, test_settings, in_memory_redis_client, sample_product):
        cache = CacheTestFactory.cache_service(in_memory_redis_client, test_settings)
        await cache.cache_product(sample_product)
        healthy_hgetall = in_memory_redis_client.hgetall
        in_memory_redis_client.hgetall = AsyncMock(
            side_effect=[RedisConnectionError("reset by peer"), await healthy_hgetall("products_hash:1")]
        )

        assert await cache.get_cached_product(1) == sample_product
        assert cache._connection.is_connected() is True
        assert cache.get_cache_stats().retries == 1

    async def test_hit_rate(self, cache_service, sample_product):
        await cache_service.cache_product(sample_product)
        for _ in range(3):
            await cache_service.get_cached_product(1)
        await cache_service.get_cached_product(2)

        stats = cache_service.get_cache_stats()
        assert stats.hits == 3
        assert stats.misses == 1
        assert stats.operations == 4
        assert stats.hit_rate == pytest.approx(75.0)

    async def test_writes_do_not_count_as_operations(self, cache_service, sample_product):
        await cache_service.cache_product(sample_product)
        await cache_service.invalidate_product(1)

        assert cache_service.get_cache_stats().operations == 0

    def test_stats_snapshot_is_immutable(self, cache_service):
        stats = cache_service.get_cache_stats()

        with pytest.raises(AttributeError):
            stats.hits = 100
        assert cache_service.get_cache_stats().hits == 0


@pytest.mark.unit
class TestHealthCheck:
    """Test the cache health probe."""

    async def test_healthy(self, cache_service, in_memory_redis_client):
        health = await cache_service.health_check()

        assert health.status == HealthStatus.HEALTHY
        assert health.is_healthy
        assert health.errors == []
        assert health.latency_ms >= 0
        assert not any(k.startswith("health_check_") for k in in_memory_redis_client.data)

    async def test_unhealthy_on_failing_client(self, test_settings):
        cache = CacheTestFactory.cache_service(CacheTestFactory.failing_redis_client(), test_settings)

        health = await cache.health_check()

        assert health.status == HealthStatus.UNHEALTHY
        assert health.errors[0].startswith("Health check failed")

    async def test_unhealthy_on_wrong_value(self, test_settings, in_memory_redis_client):
        in_memory_redis_client.get = AsyncMock(return_value="other")
        cache = CacheTestFactory.cache_service(in_memory_redis_client, test_settings)

        health = await cache.health_check()

        assert health.errors == ["Basic cache operations failed"]

    async def test_to_dict(self, cache_service):
        payload = (await cache_service.health_check()).to_dict()

        assert payload["status"] == "healthy"
        assert set(payload["stats"]) == {"hits", "misses", "operations", "errors", "retries", "hit_rate"}
