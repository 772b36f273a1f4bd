"""
Catalog Domain Exceptions

Errors surfaced by the catalog service to its callers. Each carries the HTTP
status code the API boundary answers with.
"""

from src.core.exceptions.base import CatalogBaseError
from src.core.exceptions.persistence import UniqueViolationError


class CatalogError(CatalogBaseError):
    """Base exception for catalog domain errors."""

    status_code: int = 500


class ValidationError(CatalogError):
    """
    Raised when request input is rejected by the catalog service.

    Example:
        raise ValidationError(
            "Search term must be at least 3 characters",
            details={"field": "q", "min_length": 3}
        )
    """

    status_code = 400


class NotFoundError(CatalogError):
    """Raised when a product does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier=None, **kwargs):
        if identifier is not None:
            message = f"{resource} with identifier '{identifier}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message, **kwargs)
        self.resource = resource
        self.identifier = identifier


class ConflictError(CatalogError):
    """Raised when a product would duplicate an existing one."""

    status_code = 409


class DatabaseError(CatalogError):
    """
    Raised when the persistence layer fails for any reason other than a conflict.

    Attributes:
        operation: Repository operation that failed
        original_message: Message of the underlying exception
    """

    status_code = 500

    def __init__(self, message: str, operation: str, original_message: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.original_message = original_message
        self.details.setdefault("operation", operation)
        if original_message is not None:
            self.details.setdefault("original_message", original_message)


def translate_persistence_error(
    exc: Exception,
    *,
    operation: str,
    message: str,
    conflict_message: str | None = None,
) -> CatalogError:
    """
    Convert a repository-side exception into a catalog domain error.

    Uniqueness violations become ConflictError when the operation can conflict
    (``conflict_message`` given); domain errors pass through unchanged; anything
    else becomes DatabaseError carrying the original message.
    """
    if isinstance(exc, CatalogError):
        return exc
    if conflict_message is not None and isinstance(exc, UniqueViolationError):
        return ConflictError(conflict_message, details=exc.details)
    return DatabaseError(message, operation=operation, original_message=str(exc))
