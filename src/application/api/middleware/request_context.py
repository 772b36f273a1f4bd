"""
Request Context Middleware

Binds a request id to every request for log correlation.

The id comes from the incoming X-Request-ID header when present, otherwise a
new UUID4. It is stored in the logging ContextVar for the duration of the
request (every structlog event picks it up) and echoed in the response header.
"""

import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.config.constants import HEADER_REQUEST_ID
from src.core.logging.logger import clear_request_id, set_request_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Inject the request id into the logging context and the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)

        try:
            response = await call_next(request)
            response.headers[HEADER_REQUEST_ID] = request_id
            return response
        finally:
            clear_request_id()
