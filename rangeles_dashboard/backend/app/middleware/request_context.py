# backend/app/middleware/request_context.py
from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

access_log = logging.getLogger("rangeles.request")

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def _incoming_id(request: Request) -> str:
    # Starlette headers are case-insensitive; X-Request-Id is covered too
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return rid or uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per-request context for the dashboard API.

    Binds a request id (incoming X-Request-ID or a fresh one) for the
    duration of the request so every log line carries it, echoes it back on
    the response, and writes one access line per request to
    `rangeles.request` with method, path, status and latency as structured
    fields.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_id(request)
        request.state.request_id = rid
        token = _request_id.set(rid)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            access_log.info(
                "%s %s -> %s",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": round((time.perf_counter() - started) * 1000, 1),
                },
            )
            _request_id.reset(token)
