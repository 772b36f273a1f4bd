"""
Product Service
===============

The ProductService coordinates the product repository (source of truth) with
the Redis cache. It decides, per operation, when the cache is read, written
or invalidated, and it is the boundary where cache failures stop.

THE RULES PER OPERATION:
------------------------
┌──────────┬──────────────────────────────────────────────────────────────┐
│ create   │ persist → async re-cache (hash) + list invalidation          │
│ get      │ cache → on miss: persist read → async cache with product TTL  │
│ list     │ cache by fingerprint → on miss: persist query → async cache   │
│ update   │ persist → async partial hash merge + list invalidation       │
│ delete   │ persist → only if a row was removed: async invalidation       │
│ search   │ persist only, never cached                                   │
│ health   │ row count probe + cache probe → healthy / degraded / unhealthy│
└──────────┴──────────────────────────────────────────────────────────────┘

ERROR CONTAINMENT:
------------------
- Cache errors never leave this class. Synchronous cache reads are wrapped
  and logged as warnings, then treated as a miss. Cache writes go through
  the AsyncCacheService, which contains its own failures.
- Persistence errors are converted at this boundary by
  translate_persistence_error(): a uniqueness violation becomes
  ConflictError, anything else DatabaseError with the original message.

CONSISTENCY:
------------
Cache maintenance is fire-and-forget, so a reader can briefly see a stale
entry after a write has returned. That window is accepted.

DEPENDENCY INJECTION PATTERN:
------------------------------
All collaborators are passed to the constructor; nothing is looked up from
module globals. The application lifespan builds them in order.
"""

from typing import Any

from src.catalog.models.product import (
    Product,
    ProductCreate,
    ProductFilter,
    ProductListResponse,
    ProductQuery,
    ProductUpdate,
)
from src.catalog.services.product_events import ProductEventService
from src.core.config.constants import HealthStatus, Stage
from src.core.config.settings import get_settings
from src.core.exceptions import ValidationError, translate_persistence_error
from src.core.interfaces.repository import ProductRepository
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.cache.async_cache import AsyncCacheService
from src.infrastructure.cache.product_cache import ProductCacheService

logger = get_logger(__name__)


class ProductService:
    """
    Catalog operations over persistence plus cache.

    Usage:
        service = ProductService(repository, cache, async_cache, events, settings)
        product = await service.create_product(ProductCreate(name="Widget", price=9.99, category="Tools"))
        same = await service.get_product(product.id)
    """

    def __init__(
        self,
        repository: ProductRepository,
        cache_service: ProductCacheService,
        async_cache: AsyncCacheService,
        events: ProductEventService | None = None,
        settings=None,
    ):
        self._repository = repository
        self._cache = cache_service
        self._async_cache = async_cache
        self._settings = settings or get_settings()
        self._events = events or ProductEventService(self._settings)

    # ========================================================================
    # CREATE
    # ========================================================================

    async def create_product(self, data: ProductCreate, user_id: str | None = None) -> Product:
        """
        Persist a new product, then refresh the cache in the background.

        Raises:
            ConflictError: A product with the same name exists
            DatabaseError: Any other persistence failure
        """
        try:
            product = await self._repository.create(data)
        except Exception as e:
            logger.error(
                "Error creating product",
                stage=Stage.CATALOG_CREATE.value,
                name=data.name,
                error=str(e),
            )
            raise translate_persistence_error(
                e,
                operation="create",
                message="Could not create product due to a database error",
                conflict_message=f"Product with name '{data.name}' already exists",
            ) from e

        self._async_cache.re_cache_product(product)
        self._events.emit_product_created(product, user_id)
        log_stage(logger, Stage.CATALOG_CREATE, "Product created", product_id=product.id)
        return product

    # ========================================================================
    # READ
    # ========================================================================

    async def get_product(self, product_id: int, user_id: str | None = None) -> Product | None:
        """
        Read-through lookup by id.

        Returns:
            The product, or None if it does not exist

        Raises:
            DatabaseError: The repository failed
        """
        cached = await self._read_cached_product(product_id)
        if cached is not None:
            self._events.emit_product_viewed(product_id, user_id)
            return cached

        try:
            product = await self._repository.find_by_id(product_id)
        except Exception as e:
            logger.error(
                "Error getting product by ID",
                stage=Stage.CATALOG_READ.value,
                product_id=product_id,
                error=str(e),
            )
            raise translate_persistence_error(
                e,
                operation="find_by_id",
                message="Could not retrieve product due to a database error",
            ) from e

        if product is None:
            return None

        self._async_cache.cache_product(product, ttl=self._settings.CACHE_PRODUCT_TTL)
        self._events.emit_product_viewed(product_id, user_id)
        return product

    async def _read_cached_product(self, product_id: int) -> Product | None:
        try:
            product = await self._cache.get_cached_product(product_id)
        except Exception as e:
            logger.warning(
                "Cache read failed for product",
                stage=Stage.CATALOG_READ.value,
                product_id=product_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        if product is not None:
            log_stage(
                logger, Stage.CATALOG_READ, "Served product from cache",
                level="debug", product_id=product_id,
            )
        return product

    # ========================================================================
    # LIST
    # ========================================================================

    def _normalize_query(self, query: ProductQuery) -> ProductQuery:
        return query.model_copy(update={"limit": min(query.limit, self._settings.PRODUCT_MAX_LIMIT)})

    async def list_products(self, query: ProductQuery | None = None) -> ProductListResponse:
        """
        Paginated, filtered product list with a fingerprint-keyed cache.

        A list served from cache reports ``total`` as the length of the cached
        page, since the total match count is not stored with the list.

        Raises:
            DatabaseError: The repository failed
        """
        query = self._normalize_query(
            query or ProductQuery(
                page=self._settings.PRODUCT_DEFAULT_PAGE,
                limit=self._settings.PRODUCT_DEFAULT_LIMIT,
            )
        )
        fingerprint = query.fingerprint()

        cached = await self._read_cached_list(fingerprint)
        if cached is not None:
            return ProductListResponse(
                products=cached, total=len(cached), page=query.page, limit=query.limit
            )

        try:
            products, total = await self._repository.find_many(
                query.filters, query.page, query.limit
            )
        except Exception as e:
            logger.error(
                "Error getting product list",
                stage=Stage.CATALOG_LIST.value,
                fingerprint=fingerprint,
                error=str(e),
            )
            raise translate_persistence_error(
                e,
                operation="find_many",
                message="Could not retrieve product list due to a database error",
            ) from e

        self._async_cache.cache_product_list(
            products, fingerprint, ttl=self._settings.CACHE_PRODUCT_LIST_TTL
        )
        return ProductListResponse(
            products=products, total=total, page=query.page, limit=query.limit
        )

    async def _read_cached_list(self, fingerprint: str) -> list[Product] | None:
        try:
            return await self._cache.get_cached_product_list(fingerprint)
        except Exception as e:
            logger.warning(
                "Cache read failed for product list",
                stage=Stage.CATALOG_LIST.value,
                fingerprint=fingerprint,
                error=str(e),
            )
            return None

    # ========================================================================
    # UPDATE
    # ========================================================================

    async def update_product(
        self, product_id: int, data: ProductUpdate, user_id: str | None = None
    ) -> Product | None:
        """
        Apply a partial update, then merge the changed fields into the cache.

        Returns:
            The updated product, or None if it does not exist

        Raises:
            ConflictError: The new name belongs to another product
            DatabaseError: Any other persistence failure
        """
        changes = data.changes()
        try:
            product = await self._repository.update(product_id, changes)
        except Exception as e:
            logger.error(
                "Error updating product",
                stage=Stage.CATALOG_UPDATE.value,
                product_id=product_id,
                error=str(e),
            )
            raise translate_persistence_error(
                e,
                operation="update",
                message="Could not update product due to a database error",
                conflict_message=f"Product with name '{changes.get('name')}' already exists",
            ) from e

        if product is None:
            return None

        self._async_cache.update_product_fields(product_id, changes)
        self._async_cache.invalidate_product_lists()
        self._events.emit_product_updated(product, user_id)
        log_stage(
            logger, Stage.CATALOG_UPDATE, "Product updated",
            product_id=product_id, fields=sorted(changes),
        )
        return product

    # ========================================================================
    # DELETE
    # ========================================================================

    async def delete_product(self, product_id: int, user_id: str | None = None) -> bool:
        """
        Delete a product.

        Returns:
            True if a row was removed; False means nothing existed and no
            cache action was taken

        Raises:
            DatabaseError: The repository failed
        """
        try:
            affected = await self._repository.delete(product_id)
        except Exception as e:
            logger.error(
                "Error deleting product",
                stage=Stage.CATALOG_DELETE.value,
                product_id=product_id,
                error=str(e),
            )
            raise translate_persistence_error(
                e,
                operation="delete",
                message="Could not delete product due to a database error",
            ) from e

        if not affected:
            return False

        self._async_cache.invalidate_product(product_id)
        self._async_cache.invalidate_product_lists()
        self._events.emit_product_deleted(product_id, user_id)
        log_stage(logger, Stage.CATALOG_DELETE, "Product deleted", product_id=product_id)
        return True

    # ========================================================================
    # SEARCH
    # ========================================================================

    async def search_products(
        self,
        term: str,
        page: int | None = None,
        limit: int | None = None,
        category: str | None = None,
    ) -> ProductListResponse:
        """
        Case-insensitive name search. Never reads or writes the cache.

        Raises:
            ValidationError: The term is shorter than PRODUCT_SEARCH_MIN_LENGTH
            DatabaseError: The repository failed
        """
        term = (term or "").strip()
        min_length = self._settings.PRODUCT_SEARCH_MIN_LENGTH
        if len(term) < min_length:
            raise ValidationError(
                f"Search term must be at least {min_length} characters long",
                details={"field": "q", "min_length": min_length},
            )

        page = page or self._settings.PRODUCT_DEFAULT_PAGE
        limit = min(limit or self._settings.PRODUCT_DEFAULT_LIMIT, self._settings.PRODUCT_MAX_LIMIT)

        try:
            products, total = await self._repository.find_many(
                ProductFilter(name=term, category=category), page, limit
            )
        except Exception as e:
            logger.error(
                "Error searching products",
                stage=Stage.CATALOG_SEARCH.value,
                term=term,
                error=str(e),
            )
            raise translate_persistence_error(
                e,
                operation="search",
                message="Could not search for products due to a database error",
            ) from e

        return ProductListResponse(products=products, total=total, page=page, limit=limit)

    # ========================================================================
    # HEALTH
    # ========================================================================

    async def health_check(self) -> dict[str, Any]:
        """
        Combined persistence and cache health. Never raises.

        Status:
            healthy   -> repository answered and the cache probe passed
            degraded  -> repository answered, cache did not
            unhealthy -> repository failed
        """
        try:
            total_products = await self._repository.count()
        except Exception as e:
            logger.error(
                "Product service health check failed",
                stage=Stage.CATALOG_HEALTH.value,
                error=str(e),
            )
            return {
                "status": HealthStatus.UNHEALTHY.value,
                "stats": {
                    "error": str(e),
                    "cache": {"status": HealthStatus.UNKNOWN.value},
                },
            }

        try:
            cache_health = (await self._cache.health_check()).to_dict()
        except Exception as e:
            logger.warning(
                "Cache health probe raised",
                stage=Stage.CATALOG_HEALTH.value,
                error=str(e),
            )
            cache_health = {
                "status": HealthStatus.UNHEALTHY.value,
                "latency_ms": None,
                "stats": None,
                "errors": ["Cache service unavailable"],
            }

        cache_ok = cache_health["status"] == HealthStatus.HEALTHY.value
        return {
            "status": (HealthStatus.HEALTHY if cache_ok else HealthStatus.DEGRADED).value,
            "stats": {
                "total_products": total_products,
                "cache": cache_health,
            },
        }
