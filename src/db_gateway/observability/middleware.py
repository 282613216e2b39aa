"""
db_gateway.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs.
- Bind request metadata, including the target database abbreviation, into
  structlog contextvars.
- Emit one `request_completed` line per request with status and latency.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from db_gateway.observability.logging import get_logger

log = get_logger(__name__)

_UNSCOPED_PATHS = frozenset({"", "healthz", "readyz", "docs", "openapi.json"})


def database_from_path(path: str) -> str | None:
    """`/api/blog/...` and `/blog/...` both target `blog`; probes target none."""
    parts = [part for part in path.split("/") if part]
    if parts and parts[0] == "api":
        parts = parts[1:]
    if not parts or parts[0] in _UNSCOPED_PATHS:
        return None
    return parts[0]


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        database = database_from_path(request.url.path)
        if database is not None:
            structlog.contextvars.bind_contextvars(database=database)

        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            log.info(
                "request_completed",
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        finally:
            # Context must not leak between requests sharing the event loop.
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response
