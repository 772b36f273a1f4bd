"""
Middleware Package

AVAILABLE MIDDLEWARE:
---------------------
1. error_handler: CatalogError exception handler + catch-all 500 middleware
2. request_context: request-id correlation (X-Request-ID)

MIDDLEWARE ORDERING:
--------------------
Middleware added last runs first. The request-id middleware is added after
error handling so the id is already bound when an error is logged.

Request flow:  Client → RequestContext → ErrorHandling → Handler
"""

from .error_handler import ErrorHandlingMiddleware, add_error_handling, catalog_error_handler
from .request_context import RequestContextMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestContextMiddleware",
    "add_error_handling",
    "catalog_error_handler",
]
