"""
Error Handling
==============

Two layers turn exceptions into HTTP responses:

1. ``catalog_error_handler`` (registered with @app.exception_handler):
   renders every CatalogError with its own status code (400, 404, 409, 500)
   and the structured ``to_dict()`` body.

2. ``ErrorHandlingMiddleware``: last line of defense for anything unhandled.
   Logs the full traceback server-side and answers 500 with a generic body;
   the traceback is only included in development.

Cache errors never reach either layer; the catalog service contains them.
"""

import traceback
from collections.abc import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.config.constants import HEADER_REQUEST_ID
from src.core.exceptions import CatalogError
from src.core.logging.logger import get_logger, get_request_id

logger = get_logger(__name__)


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Render a catalog domain error with its HTTP status code."""
    request_id = exc.request_id or get_request_id()
    if exc.request_id is None:
        exc.request_id = request_id

    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"Catalog error: {exc.message}",
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={HEADER_REQUEST_ID: request_id or ""},
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for centralized handling of unexpected exceptions.

    It catches everything the exception handlers did not, so that:
    - No unhandled exception crashes the server
    - All errors are logged with the request context
    - Internal details are not exposed outside development
    """

    def __init__(self, app, include_traceback: bool = False):
        """
        Initialize error handling middleware.

        Args:
            app: The ASGI application
            include_traceback: Whether to include stack traces in error responses
                              (should be False in production)
        """
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__
            error_message = str(e)

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                method=method,
                path=path,
                error_type=error_type,
                error_message=error_message,
                exc_info=True,
            )

            error_response = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred while processing your request",
                "error_type": error_type,
                "request_id": get_request_id(),
            }

            if self.include_traceback:
                error_response["traceback"] = traceback.format_exc()
                error_response["detail"] = error_message

            return JSONResponse(status_code=500, content=error_response)


def add_error_handling(app, include_traceback: bool = False) -> None:
    """
    Register the CatalogError handler and the catch-all middleware.

    Args:
        app: FastAPI application instance
        include_traceback: Whether to include stack traces in 500 responses
    """
    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_middleware(ErrorHandlingMiddleware, include_traceback=include_traceback)
    logger.info("Error handling registered", include_traceback=include_traceback)
