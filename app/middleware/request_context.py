"""Request context middleware: request IDs, timing, and a summary log line.

Per-request state lives in ContextVars rather than thread-locals, because
concurrent requests share the event loop thread.  A filter on the root
logger copies the current values onto every LogRecord, so any module's
log lines carry request_id (and user_id once the bearer token has been
validated) without passing them around.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
# Set by require_user; None for anonymous requests.
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)


class _RequestContextFilter(logging.Filter):
    """Inject request context into every LogRecord.

    A filter (not a formatter) because only filters can add fields to the
    record before it is formatted.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        if getattr(record, "user_id", None) is None:
            record.user_id = user_id_var.get()  # type: ignore[attr-defined]
        return True


# Install the filter on the root logger so ALL loggers inherit it.
# Guard against duplicate installation across module reloads.
root_logger = logging.getLogger()
if not any(isinstance(f, _RequestContextFilter) for f in root_logger.filters):
    root_logger.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, and log completion.

    The client's X-Request-ID header is reused when present, and echoed
    back on the response either way.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        user_id_var.set(None)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
