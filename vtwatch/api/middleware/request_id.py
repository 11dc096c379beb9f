"""Request ID middleware: tags every API request's log lines with an id."""

from __future__ import annotations

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger("vtwatch.api")

_ID_RE = re.compile(r"^[A-Za-z0-9\-]{8,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse a sane client ``X-Request-ID`` or mint one, and log the outcome."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        raw_id = request.headers.get("x-request-id", "")
        request_id = raw_id if _ID_RE.match(raw_id) else uuid.uuid4().hex

        tokens = structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception(
                "api.request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
            )
            raise
        finally:
            structlog.contextvars.reset_contextvars(**tokens)

        log.info(
            "api.request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        response.headers["X-Request-ID"] = request_id
        return response
