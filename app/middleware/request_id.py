"""Request ID middleware.

Assigns a request ID to each request and returns it in the X-Request-ID
response header. A client-supplied X-Request-ID is reused when it is short
and made of safe characters, so it can be written into JSON log lines as is.
"""

import re
import uuid
from collections.abc import Awaitable, Callable
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def incoming_request_id(value: Optional[str]) -> Optional[str]:
    """Return ``value`` if it is usable as a request ID, else None."""
    if value and _SAFE_REQUEST_ID.fullmatch(value):
        return value
    return None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that sets request.state.request_id and adds X-Request-ID to response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = incoming_request_id(request.headers.get("X-Request-ID")) or str(uuid.uuid4())
        request.state.request_id = request_id
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
