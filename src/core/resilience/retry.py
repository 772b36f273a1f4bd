"""
Retry Policy for Cache Operations

This module wraps a single cache operation in bounded retries with
exponential backoff, built on tenacity.

MECHANISM OF ACTION:
-------------------
1.  **Attempt**: run the operation once.
2.  **Backoff**: on failure, if attempts remain, report the retry and sleep.
    The delay starts at ``initial_delay`` and is multiplied by
    ``backoff_factor`` after every failed attempt, capped at ``max_delay``.
    With the defaults this gives 0.1s, 0.2s, 0.4s.
3.  **Exhaustion**: after ``max_retries + 1`` attempts the last error is
    wrapped in a ``CacheOperationError`` naming the failed operation.

Only ``Exception`` subclasses are retried. Cancellation (``asyncio.CancelledError``)
and other ``BaseException``s propagate at once from the failing attempt.
Corrupt cached data (``CacheDataValidationError``) is never retried: reading
the same malformed hash again cannot succeed.

Architectural Decision: tenacity instead of a hand-written loop
- Same library the rest of the service uses for retries
- Injectable sleep keeps the schedule testable without real waiting
- The backoff sleep is an awaited coroutine, so other tasks keep running
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config.constants import (
    RETRY_BACKOFF_FACTOR,
    RETRY_INITIAL_DELAY,
    RETRY_MAX_DELAY,
    RETRY_MAX_RETRIES,
    Stage,
)
from src.core.exceptions import CacheDataValidationError, CacheOperationError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Immutable retry configuration.

    Attributes:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        initial_delay: First backoff delay in seconds
        backoff_factor: Multiplier applied to the delay after each failure
        max_delay: Ceiling for any single delay in seconds
    """

    max_retries: int = RETRY_MAX_RETRIES
    initial_delay: float = RETRY_INITIAL_DELAY
    backoff_factor: float = RETRY_BACKOFF_FACTOR
    max_delay: float = RETRY_MAX_DELAY

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_number: int) -> float:
        """Backoff delay before the given retry (1-based)."""
        delay = self.initial_delay * (self.backoff_factor ** (retry_number - 1))
        return min(delay, self.max_delay)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        """Build the policy from the cache settings (millisecond fields)."""
        return cls(
            max_retries=settings.CACHE_RETRY_MAX_RETRIES,
            initial_delay=settings.CACHE_RETRY_INITIAL_DELAY_MS / 1000,
            backoff_factor=settings.CACHE_RETRY_BACKOFF_FACTOR,
            max_delay=settings.CACHE_RETRY_MAX_DELAY_MS / 1000,
        )


class RetryExecutor:
    """
    Runs cache operations under a RetryPolicy.

    Args:
        policy: Retry configuration
        on_retry: Called once before every backoff sleep
        on_exhausted: Called once when all attempts failed
        sleep: Awaitable sleep used between attempts (tests inject a fake)

    Usage:
        executor = RetryExecutor(RetryPolicy(), on_retry=stats.record_retry)
        value = await executor.run("getCachedProduct", lambda: client.hgetall(key))
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        on_retry: Callable[[], None] | None = None,
        on_exhausted: Callable[[], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.policy = policy or RetryPolicy()
        self._on_retry = on_retry
        self._on_exhausted = on_exhausted
        self._sleep = sleep or asyncio.sleep

    def _build_retrying(self, operation_name: str) -> AsyncRetrying:
        policy = self.policy

        def before_sleep(retry_state: RetryCallState) -> None:
            if self._on_retry is not None:
                self._on_retry()
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "Cache operation failed, retrying",
                stage=Stage.RETRY.value,
                operation=operation_name,
                attempt=retry_state.attempt_number,
                max_attempts=policy.max_attempts,
                delay_ms=round(policy.delay_for(retry_state.attempt_number) * 1000),
                error=str(exc),
            )

        return AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(
                multiplier=policy.initial_delay,
                exp_base=policy.backoff_factor,
                max=policy.max_delay,
            ),
            retry=(
                retry_if_exception_type(Exception)
                & retry_if_not_exception_type(CacheDataValidationError)
            ),
            before_sleep=before_sleep,
            reraise=False,
        )

    async def run(self, operation_name: str, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Execute ``operation`` with retries.

        Raises:
            CacheOperationError: All attempts failed; wraps the last error
            CacheDataValidationError: Cached data is malformed (not retried)
        """
        retrying = self._build_retrying(operation_name)
        try:
            return await retrying(operation)
        except RetryError as retry_error:
            last_error: Any = retry_error.last_attempt.exception()
            if self._on_exhausted is not None:
                self._on_exhausted()
            logger.error(
                "Cache operation exhausted retries",
                stage=Stage.RETRY.value,
                operation=operation_name,
                retries=self.policy.max_retries,
                error=str(last_error),
            )
            raise CacheOperationError(
                f"Operation {operation_name} failed after {self.policy.max_retries} retries: "
                f"{last_error}",
                operation=operation_name,
                original_error=last_error,
            ) from last_error
