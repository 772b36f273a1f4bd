"""
Core Module

Foundational components: configuration, logging, exceptions, and retry.
"""

from .exceptions import (
    CacheConnectionError,
    CacheDataValidationError,
    CacheError,
    CacheOperationError,
    CatalogBaseError,
    CatalogError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from .logging import (
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    set_request_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_id",
    "get_request_id",
    "clear_request_id",
    "log_stage",
    "CatalogBaseError",
    "ConfigurationError",
    "CacheError",
    "CacheConnectionError",
    "CacheOperationError",
    "CacheDataValidationError",
    "CatalogError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "DatabaseError",
]
