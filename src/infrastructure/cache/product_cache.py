#!/usr/bin/env python3
"""
Product Cache Engine

Architecture:
    ProductCacheService (Public API)
        ├── Key generation (hash / single / list namespaces)
        ├── Hash-mode and string-mode product storage
        ├── List caching keyed by query fingerprint
        ├── Invalidation (single product, all lists via SCAN)
        ├── RetryExecutor (tenacity backoff around every Redis round-trip)
        └── CacheStatistics (thread-safe counters, immutable snapshots)

Key Scheme:
    products_hash:<id>        hash-mode product (fields + cachedAt)
    product:single:<id>       string-mode product (JSON)
    product:list:<fingerprint> product list (JSON array)
    products_list:*           legacy list namespace, swept on invalidation

Every prefix is overridable per call (tenant/namespace isolation). The
defaults must stay stable because invalidation rebuilds keys on its own.

Architectural Decision: hash mode by default
- Partial field updates (HSET of changed fields only) without a read-modify-write
- String mode kept for callers that want one opaque blob
"""

import math
import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

import orjson
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from src.catalog.models.product import Product
from src.core.config.constants import (
    PRODUCT_HASH_REQUIRED_FIELDS,
    PRODUCT_HASH_TIMESTAMP_FIELD,
    REDIS_KEY_HEALTH_CHECK,
    REDIS_KEY_PRODUCT,
    REDIS_KEY_PRODUCT_HASH,
    REDIS_KEY_PRODUCT_LIST,
    HealthStatus,
    Stage,
)
from src.core.config.settings import get_settings
from src.core.exceptions import CacheConnectionError, CacheDataValidationError
from src.core.logging.logger import get_logger, log_stage
from src.core.resilience.retry import RetryExecutor, RetryPolicy
from src.infrastructure.cache.redis_client import RedisConnectionManager

logger = get_logger(__name__)


@dataclass
class CacheOptions:
    """
    Per-call cache options.

    Attributes:
        ttl: Expiry in seconds (None or 0 = configured default)
        prefix: Namespace override for generated keys
        use_hash: Store single products as a hash (default) or a JSON string
    """

    ttl: int | None = None
    prefix: str | None = None
    use_hash: bool = True


DEFAULT_OPTIONS = CacheOptions()


# =============================================================================
# STATISTICS
# =============================================================================


@dataclass(frozen=True)
class CacheStats:
    """Immutable snapshot of the cache counters."""

    hits: int = 0
    misses: int = 0
    operations: int = 0
    errors: int = 0
    retries: int = 0
    hit_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class CacheStatistics:
    """
    Thread-safe cache counters.

    Counting rules:
    - operations: +1 per read call (single or list), whatever the outcome
    - hits / misses: +1 per successful read
    - retries: +1 before every backoff sleep
    - errors: +1 per exhausted operation or corrupt cached entry
    - hit_rate: hits / operations * 100 (0 when no reads yet)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._operations = 0
        self._errors = 0
        self._retries = 0

    def record_hit(self) -> None:
        with self._lock:
            self._hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def record_operation(self) -> None:
        with self._lock:
            self._operations += 1

    def record_retry(self) -> None:
        with self._lock:
            self._retries += 1

    def record_error(self) -> None:
        with self._lock:
            self._errors += 1

    def snapshot(self) -> CacheStats:
        with self._lock:
            hit_rate = (self._hits / self._operations) * 100 if self._operations > 0 else 0.0
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                operations=self._operations,
                errors=self._errors,
                retries=self._retries,
                hit_rate=hit_rate,
            )


@dataclass
class CacheHealth:
    """Result of a cache health probe."""

    status: HealthStatus
    latency_ms: float
    stats: CacheStats
    errors: list[str] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
            "stats": self.stats.to_dict(),
            "errors": list(self.errors),
        }


# =============================================================================
# HASH <-> PRODUCT CONVERSION
# =============================================================================


def product_to_hash(product: Product) -> dict[str, str]:
    """Flatten a product into string hash fields plus the cachedAt timestamp."""
    return {
        "id": str(product.id),
        "name": product.name,
        "price": str(product.price),
        "category": product.category,
        PRODUCT_HASH_TIMESTAMP_FIELD: _utc_now_iso(),
    }


def product_from_hash(product_hash: dict[str, str]) -> Product:
    """
    Rebuild a product from its hash fields.

    Either returns a fully populated Product or raises; never a partial one.

    Raises:
        CacheDataValidationError: Missing or malformed fields
    """
    missing = [name for name in PRODUCT_HASH_REQUIRED_FIELDS if not product_hash.get(name)]
    if missing:
        raise CacheDataValidationError(
            "Invalid product hash data: missing required fields",
            details={"missing": missing},
        )

    try:
        product_id = int(product_hash["id"])
    except ValueError as e:
        raise CacheDataValidationError(
            "Invalid product hash data: invalid ID", original_error=e
        ) from e
    if product_id <= 0:
        raise CacheDataValidationError("Invalid product hash data: invalid ID")

    try:
        price = float(product_hash["price"])
    except ValueError as e:
        raise CacheDataValidationError(
            "Invalid product hash data: invalid price", original_error=e
        ) from e
    if not math.isfinite(price) or price < 0:
        raise CacheDataValidationError("Invalid product hash data: invalid price")

    name = product_hash["name"].strip()
    category = product_hash["category"].strip()
    if not name or not category:
        raise CacheDataValidationError("Invalid product hash data: blank name or category")

    return Product(id=product_id, name=name, price=price, category=category)


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _decode_json(raw, what: str) -> Any:
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise CacheDataValidationError(f"Invalid cached {what}: not valid JSON", original_error=e) from e


# =============================================================================
# CACHE ENGINE
# =============================================================================


class ProductCacheService:
    """
    Redis cache for products and product lists.

    Every public operation runs under the retry policy and first checks that
    the connection manager reports connected, sending a PING when it
    does not. That check sits inside the retried operation, so a transient
    disconnect (or a Redis that was down at startup) recovers between
    attempts. Connection errors raised by commands mark the manager
    disconnected until the next successful PING.

    Usage:
        cache = ProductCacheService(connection_manager, settings)
        await cache.cache_product(product)
        product = await cache.get_cached_product(product.id)
    """

    def __init__(
        self,
        connection: RedisConnectionManager,
        settings=None,
        retry_policy: RetryPolicy | None = None,
        sleep=None,
    ):
        """
        Initialize the cache engine.

        Args:
            connection: Connection manager owning the shared Redis client
            settings: Application settings (defaults to the global settings)
            retry_policy: Overrides the policy built from settings
            sleep: Backoff sleep override, used by tests
        """
        self._connection = connection
        self._settings = settings or get_settings()
        self._stats = CacheStatistics()
        self._retry = RetryExecutor(
            retry_policy or RetryPolicy.from_settings(self._settings),
            on_retry=self._stats.record_retry,
            on_exhausted=self._stats.record_error,
            sleep=sleep,
        )

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry.policy

    # -------------------------------------------------------------------------
    # Key generation
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_key(logical_key: str, prefix: str | None = None) -> str:
        return f"{prefix or REDIS_KEY_PRODUCT}:{logical_key}"

    @staticmethod
    def generate_hash_key(product_id: int, prefix: str | None = None) -> str:
        return f"{prefix or REDIS_KEY_PRODUCT_HASH}:{product_id}"

    def generate_single_key(self, product_id: int, prefix: str | None = None) -> str:
        return self.generate_key(f"single:{product_id}", prefix)

    def generate_list_key(self, fingerprint: str, prefix: str | None = None) -> str:
        return self.generate_key(f"list:{fingerprint}", prefix)

    @staticmethod
    def list_patterns(prefix: str | None = None) -> list[str]:
        """
        SCAN patterns covering every list key.

        With a prefix override the legacy pattern stays inside that prefix's
        own list namespace, so tenant products are never swept.
        """
        legacy = f"{prefix}_list:*" if prefix else f"{REDIS_KEY_PRODUCT_LIST}:*"
        return [f"{prefix or REDIS_KEY_PRODUCT}:list:*", legacy]

    def _product_ttl(self, ttl: int | None) -> int:
        return ttl or self._settings.CACHE_PRODUCT_TTL

    def _list_ttl(self, ttl: int | None) -> int:
        return ttl or self._settings.CACHE_PRODUCT_LIST_TTL

    async def _ensure_connection(self):
        # A disconnected manager gets one PING per attempt; success marks it ready again
        if not self._connection.is_connected() and not await self._connection.ping():
            raise CacheConnectionError("Redis client is not connected")
        return self._connection.get_client()

    async def _run(self, operation_name: str, operation):
        async def attempt():
            try:
                return await operation()
            except (RedisConnectionError, RedisTimeoutError) as e:
                self._connection.report_command_error(e)
                raise

        return await self._retry.run(operation_name, attempt)

    # -------------------------------------------------------------------------
    # Single products
    # -------------------------------------------------------------------------

    async def cache_product(self, product: Product, options: CacheOptions | None = None) -> None:
        """
        Write a product to the cache.

        Hash mode writes the fields and the expiry in one MULTI/EXEC
        transaction, so an entry can never be left without a TTL.
        """
        options = options or DEFAULT_OPTIONS
        ttl = self._product_ttl(options.ttl)

        async def operation() -> None:
            client = await self._ensure_connection()
            if options.use_hash:
                key = self.generate_hash_key(product.id, options.prefix)
                async with client.pipeline(transaction=True) as pipe:
                    pipe.hset(key, mapping=product_to_hash(product))
                    pipe.expire(key, ttl)
                    await pipe.execute()
                mode = "hash"
            else:
                key = self.generate_single_key(product.id, options.prefix)
                await client.set(key, orjson.dumps(product.model_dump()).decode("utf-8"), ex=ttl)
                mode = "string"
            log_stage(
                logger, Stage.CACHE_WRITE, "Cached product", level="debug",
                product_id=product.id, key=key, mode=mode, ttl=ttl,
            )

        await self._run("cacheProduct", operation)

    async def get_cached_product(
        self, product_id: int, options: CacheOptions | None = None
    ) -> Product | None:
        """
        Read a product from the cache.

        Returns:
            The product, or None on a miss

        Raises:
            CacheDataValidationError: The cached entry exists but is malformed
            CacheOperationError: Redis kept failing after all retries
        """
        options = options or DEFAULT_OPTIONS

        async def operation():
            client = await self._ensure_connection()
            if options.use_hash:
                return await client.hgetall(self.generate_hash_key(product_id, options.prefix))
            return await client.get(self.generate_single_key(product_id, options.prefix))

        self._stats.record_operation()
        raw = await self._run("getCachedProduct", operation)

        if not raw:
            self._stats.record_miss()
            log_stage(logger, Stage.CACHE_READ, "Cache miss", level="debug", product_id=product_id)
            return None

        try:
            if options.use_hash:
                product = product_from_hash(raw)
            else:
                product = Product.model_validate(_decode_json(raw, "product"))
        except PydanticValidationError as e:
            self._stats.record_error()
            raise CacheDataValidationError(
                f"Invalid cached product {product_id}", original_error=e
            ) from e
        except CacheDataValidationError as e:
            self._stats.record_error()
            logger.warning(
                "Corrupt product cache entry",
                stage=Stage.CACHE_READ.value,
                product_id=product_id,
                error=e.message,
            )
            raise

        self._stats.record_hit()
        log_stage(
            logger, Stage.CACHE_READ, "Cache hit", level="debug",
            product_id=product_id, mode="hash" if options.use_hash else "string",
        )
        return product

    # -------------------------------------------------------------------------
    # Product lists
    # -------------------------------------------------------------------------

    async def cache_product_list(
        self, products: list[Product], fingerprint: str, options: CacheOptions | None = None
    ) -> None:
        """Store an ordered product list under its query fingerprint."""
        options = options or DEFAULT_OPTIONS
        ttl = self._list_ttl(options.ttl)
        key = self.generate_list_key(fingerprint, options.prefix)
        payload = orjson.dumps([p.model_dump() for p in products]).decode("utf-8")

        async def operation() -> None:
            client = await self._ensure_connection()
            await client.set(key, payload, ex=ttl)

        await self._run("cacheProducts", operation)
        log_stage(
            logger, Stage.CACHE_LIST_WRITE, "Cached product list", level="debug",
            key=key, count=len(products), ttl=ttl,
        )

    async def get_cached_product_list(
        self, fingerprint: str, options: CacheOptions | None = None
    ) -> list[Product] | None:
        """Read a product list; None on a miss."""
        options = options or DEFAULT_OPTIONS
        key = self.generate_list_key(fingerprint, options.prefix)

        async def operation():
            client = await self._ensure_connection()
            return await client.get(key)

        self._stats.record_operation()
        raw = await self._run("getCachedProducts", operation)

        if not raw:
            self._stats.record_miss()
            log_stage(logger, Stage.CACHE_LIST_READ, "List cache miss", level="debug", key=key)
            return None

        try:
            items = _decode_json(raw, "product list")
            if not isinstance(items, list):
                raise CacheDataValidationError("Invalid cached product list: not an array")
            products = [Product.model_validate(item) for item in items]
        except PydanticValidationError as e:
            self._stats.record_error()
            raise CacheDataValidationError(
                "Invalid cached product list", original_error=e
            ) from e
        except CacheDataValidationError:
            self._stats.record_error()
            raise

        self._stats.record_hit()
        log_stage(
            logger, Stage.CACHE_LIST_READ, "List cache hit", level="debug",
            key=key, count=len(products),
        )
        return products

    # -------------------------------------------------------------------------
    # Invalidation and partial updates
    # -------------------------------------------------------------------------

    async def invalidate_product(self, product_id: int, options: CacheOptions | None = None) -> int:
        """Delete both the hash-mode and string-mode keys of a product."""
        options = options or DEFAULT_OPTIONS
        keys = [
            self.generate_hash_key(product_id, options.prefix),
            self.generate_single_key(product_id, options.prefix),
        ]

        async def operation() -> int:
            client = await self._ensure_connection()
            return await client.delete(*keys)

        deleted = await self._run("invalidateProduct", operation)
        log_stage(
            logger, Stage.CACHE_INVALIDATE, "Invalidated product cache",
            product_id=product_id, deleted=deleted,
        )
        return deleted

    async def invalidate_product_lists(self, options: CacheOptions | None = None) -> int:
        """
        Delete every cached product list.

        Keys are collected with SCAN (non-blocking, bounded batches) and
        removed with one bulk DELETE. Cost grows with the number of list keys,
        so this only runs after writes, never on a read path.
        """
        options = options or DEFAULT_OPTIONS
        patterns = self.list_patterns(options.prefix)
        scan_count = self._settings.CACHE_SCAN_COUNT

        async def operation() -> int:
            client = await self._ensure_connection()
            keys: set[str] = set()
            for pattern in patterns:
                async for key in client.scan_iter(match=pattern, count=scan_count):
                    keys.add(key)
            if not keys:
                return 0
            return await client.delete(*keys)

        deleted = await self._run("invalidateProductLists", operation)
        log_stage(
            logger, Stage.CACHE_LIST_INVALIDATE, "Invalidated product list caches",
            deleted=deleted, patterns=patterns,
        )
        return deleted

    async def update_product_fields(
        self, product_id: int, fields: dict[str, Any], options: CacheOptions | None = None
    ) -> list[str]:
        """
        Merge the supplied fields into a cached product hash.

        Only name, price and category are written, and only when supplied;
        cachedAt is always refreshed. Fields not supplied are left untouched.
        An absent hash is left absent: merging into nothing would create a
        partial entry with no TTL that every later read rejects as corrupt.
        The existence check and the HSET run as one WATCH/MULTI/EXEC
        transaction, so a concurrent invalidation cannot slip between them.

        Returns:
            Names of the hash fields written (empty when the hash was absent)
        """
        options = options or DEFAULT_OPTIONS
        key = self.generate_hash_key(product_id, options.prefix)

        updates: dict[str, str] = {}
        if fields.get("name") is not None:
            updates["name"] = str(fields["name"])
        if fields.get("price") is not None:
            updates["price"] = str(fields["price"])
        if fields.get("category") is not None:
            updates["category"] = str(fields["category"])
        updates[PRODUCT_HASH_TIMESTAMP_FIELD] = _utc_now_iso()

        async def merge(pipe) -> bool:
            # Immediate mode while watching; buffered once multi() is called
            if not await pipe.exists(key):
                return False
            pipe.multi()
            pipe.hset(key, mapping=updates)
            return True

        async def operation() -> bool:
            client = await self._ensure_connection()
            # WATCH aborts the EXEC if the key is deleted or expires after the
            # existence check; transaction() then re-runs merge against fresh state
            return await client.transaction(merge, key, value_from_callable=True)

        written = await self._run("updateProductHash", operation)
        if not written:
            log_stage(
                logger, Stage.CACHE_FIELD_UPDATE, "Product hash not cached, nothing to merge",
                level="debug", product_id=product_id,
            )
            return []
        log_stage(
            logger, Stage.CACHE_FIELD_UPDATE, "Updated product hash fields", level="debug",
            product_id=product_id, fields=list(updates),
        )
        return list(updates)

    # -------------------------------------------------------------------------
    # Statistics and health
    # -------------------------------------------------------------------------

    def get_cache_stats(self) -> CacheStats:
        """Snapshot of the counters; mutating it cannot affect the engine."""
        return self._stats.snapshot()

    async def health_check(self) -> CacheHealth:
        """
        Round-trip probe: SET a disposable key with a short TTL, GET it back,
        DELETE it and compare the value.

        Never raises; every failure becomes an unhealthy result.
        """
        start = time.perf_counter()
        errors: list[str] = []

        try:
            client = await self._ensure_connection()
            test_key = f"{REDIS_KEY_HEALTH_CHECK}_{int(time.time() * 1000)}"
            await client.set(test_key, "test", ex=self._settings.CACHE_HEALTH_CHECK_TTL)
            result = await client.get(test_key)
            await client.delete(test_key)
            if result != "test":
                errors.append("Basic cache operations failed")
        except (RedisConnectionError, RedisTimeoutError) as e:
            self._connection.report_command_error(e)
            errors.append(f"Health check failed: {e}")
        except Exception as e:
            errors.append(f"Health check failed: {e}")

        latency_ms = (time.perf_counter() - start) * 1000
        status = HealthStatus.HEALTHY if not errors else HealthStatus.UNHEALTHY
        log_stage(
            logger, Stage.CACHE_HEALTH, "Cache health probe",
            level="debug" if not errors else "warning",
            status=status.value, latency_ms=round(latency_ms, 2), errors=errors,
        )
        return CacheHealth(
            status=status,
            latency_ms=latency_ms,
            stats=self.get_cache_stats(),
            errors=errors,
        )
