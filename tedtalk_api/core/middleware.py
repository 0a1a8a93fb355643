"""
TED Talk API - Request ID and access log

Each request carries an id: the caller's ``X-Request-ID`` when sent, a fresh
one otherwise. The id is echoed on the response and stamped on error bodies.
It is also bound into the log context, so the row warnings of a CSV upload
carry the id of the request that sent the file.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import LogContext

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_request_id: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Id of the request being served, or "" outside a request."""
    return _request_id.get()


def _client_address(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _access_log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assign the request id and write one access-log line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        token = _request_id.set(request_id)
        started = time.perf_counter()
        try:
            with LogContext(request_id=request_id):
                response = await call_next(request)
        except Exception as e:
            logger.error(
                f"{request.method} {request.url.path} raised {type(e).__name__}",
                extra={"request_id": request_id, "path": request.url.path, "method": request.method},
            )
            raise
        finally:
            _request_id.reset(token)

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.log(
            _access_log_level(response.status_code),
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({duration_ms:.1f}ms) client={_client_address(request)}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
