"""
Cache-Related Exceptions

All exceptions raised by the Redis connection manager and the product cache
engine. None of these ever reach a catalog caller: the catalog service and
the async cache façade log them and carry on.
"""

from src.core.exceptions.base import CatalogBaseError


class CacheError(CatalogBaseError):
    """
    Base exception for cache-related errors.

    Attributes:
        operation: Name of the cache operation that failed
        original_error: Underlying exception, when there is one
    """

    def __init__(
        self,
        message: str,
        operation: str = "cache",
        original_error: BaseException | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.original_error = original_error
        self.details.setdefault("operation", operation)
        if original_error is not None:
            self.details.setdefault("original_error", original_error.__class__.__name__)


class CacheConnectionError(CacheError):
    """
    Raised when the cache backend is unreachable or not connected.

    Common causes:
    - Redis server is down
    - Client never connected, or was disconnected
    - Incorrect host/port configuration
    - Authentication failure
    """

    def __init__(self, message: str, original_error: BaseException | None = None, **kwargs):
        super().__init__(message, operation="connection", original_error=original_error, **kwargs)


class CacheOperationError(CacheError):
    """
    Raised when a cache operation fails after exhausting its retries.

    Wraps the last underlying error and names the failed operation.
    """
    pass


class CacheDataValidationError(CacheError):
    """
    Raised when cached data is malformed.

    A partial or unparseable product hash is a corruption signal, distinct from
    a cache miss. Callers decide whether to treat it as a miss.
    """

    def __init__(self, message: str, original_error: BaseException | None = None, **kwargs):
        super().__init__(message, operation="data", original_error=original_error, **kwargs)


class CacheConfigurationError(CacheError):
    """Raised when the cache layer is configured with invalid values."""

    def __init__(self, message: str, original_error: BaseException | None = None, **kwargs):
        super().__init__(
            message, operation="configuration", original_error=original_error, **kwargs
        )
