"""
Exception Module

Structured exception hierarchy for the catalog service, organized per layer.

Module Structure:
-----------------
- **base.py**: CatalogBaseError base class + ConfigurationError
- **cache.py**: Cache layer exceptions (connection, operation, corrupt data)
- **persistence.py**: Repository exceptions
- **catalog.py**: Domain exceptions surfaced to API callers, and the
  persistence -> domain conversion function

Usage:
------
```python
from src.core.exceptions import CacheOperationError, ConflictError
from src.core.exceptions.catalog import translate_persistence_error
```
"""

from src.core.exceptions.base import CatalogBaseError, ConfigurationError
from src.core.exceptions.cache import (
    CacheConfigurationError,
    CacheConnectionError,
    CacheDataValidationError,
    CacheError,
    CacheOperationError,
)
from src.core.exceptions.catalog import (
    CatalogError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
    translate_persistence_error,
)
from src.core.exceptions.persistence import PersistenceError, UniqueViolationError

__all__ = [
    # Base
    "CatalogBaseError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheOperationError",
    "CacheDataValidationError",
    "CacheConfigurationError",
    # Persistence
    "PersistenceError",
    "UniqueViolationError",
    # Catalog
    "CatalogError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "DatabaseError",
    "translate_persistence_error",
]
