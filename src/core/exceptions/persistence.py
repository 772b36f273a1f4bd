"""
Persistence Exceptions

Raised by product repositories. The catalog service converts them into
domain errors with translate_persistence_error() before they leave it.
"""

from src.core.exceptions.base import CatalogBaseError


class PersistenceError(CatalogBaseError):
    """Base exception for repository failures."""
    pass


class UniqueViolationError(PersistenceError):
    """
    Raised when a write would break a uniqueness constraint.

    The offending field and value are stored in ``details``.
    """

    def __init__(self, message: str, field: str | None = None, value=None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        if field is not None:
            self.details.setdefault("field", field)
