"""
Request context middleware.

Gives every request an id (taken from X-Request-ID when it is safe to log,
generated otherwise), binds it into structlog so every log line for the
request carries it, logs slow requests, and echoes the id back in the
response headers.
"""

import re
import time
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from weblog.core.context import clear_context, generate_request_id, set_request_id

logger = structlog.get_logger(__name__)

SLOW_REQUEST_THRESHOLD_MS = 500.0

# Request ID validation to prevent log injection
MAX_ID_LENGTH = 64
SAFE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")


def _validate_id(value: Optional[str]) -> Optional[str]:
    """Return the id if it is short and made of safe characters, else None."""
    if not value:
        return None
    if len(value) > MAX_ID_LENGTH:
        return None
    if not SAFE_ID_PATTERN.match(value):
        return None
    return value


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        structlog.contextvars.clear_contextvars()
        request_id = _validate_id(request.headers.get("X-Request-ID")) or generate_request_id()
        set_request_id(request_id)
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(path=request.scope["path"], method=request.method)

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            if duration_ms >= SLOW_REQUEST_THRESHOLD_MS and not request.scope["path"].startswith("/health"):
                logger.warning("Slow request", duration_ms=round(duration_ms, 1), status_code=status_code)
            clear_context()
