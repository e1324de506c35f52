"""Structured request logging.

Every request produces one JSON line. Paper editing requests also carry the
paper id and total marks, which routes report through the X-Paper-ID and
X-Total-Marks response headers. Paper contents are never logged.
"""

import json
import logging
import sys
import time
import uuid
from typing import Any, Awaitable, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stdout as bare messages; request lines are already JSON."""
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stdout)


def _route_template(request: Request) -> str:
    """Matched route path (``/api/papers/{paper_id}``), or the raw path when unmatched."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _paper_fields(response: Response) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    paper_id = response.headers.get("X-Paper-ID")
    if paper_id:
        fields["paper_id"] = paper_id
    total_marks = response.headers.get("X-Total-Marks")
    if total_marks is not None and total_marks.isdigit():
        fields["total_marks"] = int(total_marks)
    return fields


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log each request as one JSON line.

    Fields: request_id, method, path, route, status_code,
    processing_time_ms, user_ip, and paper_id / total_marks when the
    response reports them. Unhandled errors are logged with their type and
    re-raised.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
        request.state.request_id = request_id

        started = time.perf_counter()
        log_data: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "user_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as e:
            log_data.update({
                "route": _route_template(request),
                "status_code": 500,
                "processing_time_ms": round((time.perf_counter() - started) * 1000, 2),
                "error_type": type(e).__name__,
                "error": str(e),
            })
            logger.error(json.dumps(log_data), exc_info=True)
            raise

        log_data.update({
            "route": _route_template(request),
            "status_code": response.status_code,
            "processing_time_ms": round((time.perf_counter() - started) * 1000, 2),
            **_paper_fields(response),
        })
        logger.log(_level_for(response.status_code), json.dumps(log_data))

        response.headers["X-Request-ID"] = request_id
        return response
