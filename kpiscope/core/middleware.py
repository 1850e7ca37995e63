"""
Request middleware: request id propagation and one access entry per request.
"""
import time
import uuid
from typing import Any, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from .logging import get_logger


REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Reuse the caller's X-Request-ID (or mint one) and bind it, with the
    path, to the structlog context of everything the request logs.
    The id is echoed back on the response.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def request_log_fields(request: Request, status_code: int, duration_ms: float) -> dict[str, Any]:
    """Fields of the `api.request` entry, plus any query context the endpoint left on request.state."""
    fields: dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }
    fields.update(getattr(request.state, "query_context", None) or {})
    return fields


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Log each request once as `api.request`.
    5xx responses (including upstream KPI API failures) log at warning.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        fields = request_log_fields(request, response.status_code, duration_ms)
        if response.status_code >= 500:
            logger.warning("api.request", **fields)
        else:
            logger.info("api.request", **fields)

        return response
