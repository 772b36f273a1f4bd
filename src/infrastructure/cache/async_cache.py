"""
Asynchronous Cache Façade

Fire-and-forget wrappers around the product cache engine.

MECHANISM OF ACTION:
-------------------
1.  **Flag check**: each method is governed by one catalog flag. When the
    flag is off the call returns None and schedules nothing.
2.  **Dispatch**: otherwise the engine call is wrapped in an asyncio Task.
    The Task starts on the next loop iteration, after the caller's current
    synchronous code, and the caller never awaits it.
3.  **Containment**: every failure inside the Task is caught at the Task
    boundary and logged as a warning. Nothing reaches the caller.
4.  **Drain**: Tasks are tracked until done so shutdown can wait for them
    (drain) instead of dropping them silently.

Flag mapping:
    cache_product / re_cache_product / cache_product_list /
    update_product_fields                 -> PRODUCT_ASYNC_CACHE_ENABLED
    invalidate_product                    -> PRODUCT_ENABLE_CACHE_INVALIDATION
    invalidate_product_lists              -> PRODUCT_ENABLE_LIST_INVALIDATION
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from src.catalog.models.product import Product
from src.core.config.constants import Stage
from src.core.config.settings import get_settings
from src.core.logging.logger import get_logger
from src.infrastructure.cache.product_cache import CacheOptions, ProductCacheService

logger = get_logger(__name__)


class AsyncCacheService:
    """
    Non-blocking cache maintenance for the catalog service.

    Every public method returns the scheduled asyncio.Task, or None when its
    flag disabled the work. Callers may ignore the return value; tests await it.
    """

    def __init__(self, cache_service: ProductCacheService, settings=None):
        self._cache = cache_service
        self._settings = settings or get_settings()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        """Number of scheduled tasks that have not finished yet."""
        return len(self._tasks)

    def _schedule(
        self, description: str, work: Callable[[], Awaitable[Any]], **context
    ) -> asyncio.Task:
        task = asyncio.create_task(self._guarded(description, work, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guarded(
        self, description: str, work: Callable[[], Awaitable[Any]], context: dict
    ) -> None:
        try:
            await work()
        except Exception as e:
            logger.warning(
                f"{description} failed",
                stage=Stage.ASYNC_CACHE.value,
                error=str(e),
                error_type=type(e).__name__,
                **context,
            )

    # -------------------------------------------------------------------------
    # Single products
    # -------------------------------------------------------------------------

    def cache_product(
        self, product: Product, ttl: int | None = None, use_hash: bool = True
    ) -> asyncio.Task | None:
        if not self._settings.PRODUCT_ASYNC_CACHE_ENABLED:
            return None
        options = CacheOptions(ttl=ttl, use_hash=use_hash)
        return self._schedule(
            "Async cache",
            lambda: self._cache.cache_product(product, options),
            product_id=product.id,
        )

    def invalidate_product(self, product_id: int) -> asyncio.Task | None:
        if not self._settings.PRODUCT_ENABLE_CACHE_INVALIDATION:
            return None
        return self._schedule(
            "Async cache invalidation",
            lambda: self._cache.invalidate_product(product_id),
            product_id=product_id,
        )

    def invalidate_product_lists(self) -> asyncio.Task | None:
        if not self._settings.PRODUCT_ENABLE_LIST_INVALIDATION:
            return None
        return self._schedule(
            "Async product list invalidation",
            self._cache.invalidate_product_lists,
        )

    def re_cache_product(self, product: Product) -> asyncio.Task | None:
        """
        Rewrite a product, then invalidate lists, in one deferred unit.

        The list invalidation only starts after the write finished, and is
        skipped if the write failed or list invalidation is disabled.
        """
        if not self._settings.PRODUCT_ASYNC_CACHE_ENABLED:
            return None

        async def work() -> None:
            await self._cache.cache_product(product, CacheOptions(use_hash=True))
            if self._settings.PRODUCT_ENABLE_LIST_INVALIDATION:
                await self._cache.invalidate_product_lists()

        return self._schedule("Async re-cache", work, product_id=product.id)

    def update_product_fields(self, product_id: int, fields: dict[str, Any]) -> asyncio.Task | None:
        if not self._settings.PRODUCT_ASYNC_CACHE_ENABLED:
            return None
        return self._schedule(
            "Async cache field update",
            lambda: self._cache.update_product_fields(product_id, fields),
            product_id=product_id,
        )

    # -------------------------------------------------------------------------
    # Product lists
    # -------------------------------------------------------------------------

    def cache_product_list(
        self, products: list[Product], fingerprint: str, ttl: int | None = None
    ) -> asyncio.Task | None:
        if not self._settings.PRODUCT_ASYNC_CACHE_ENABLED:
            return None
        return self._schedule(
            "Async list cache",
            lambda: self._cache.cache_product_list(products, fingerprint, CacheOptions(ttl=ttl)),
            fingerprint=fingerprint,
        )

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    async def drain(self, timeout: float | None = None) -> int:
        """
        Wait for scheduled work to finish.

        Args:
            timeout: Seconds to wait (defaults to CACHE_DRAIN_TIMEOUT)

        Returns:
            Number of tasks still running when the timeout expired
        """
        if not self._tasks:
            return 0
        if timeout is None:
            timeout = self._settings.CACHE_DRAIN_TIMEOUT

        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(
                "Async cache drain timed out",
                stage=Stage.ASYNC_CACHE.value,
                pending=len(pending),
                timeout=timeout,
            )
        else:
            logger.info("Async cache drained", stage=Stage.ASYNC_CACHE.value)
        return len(pending)
