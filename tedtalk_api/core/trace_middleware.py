"""
TED Talk API - Trace ID Middleware

Generates and manages trace IDs for request tracing and debugging.
Every request gets a unique trace_id that flows through responses and the
API envelope metadata.

Usage:
    from tedtalk_api.core.trace_middleware import get_trace_id

    trace_id = get_trace_id()  # Returns current request's trace ID
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

_trace_id_var: ContextVar[str] = ContextVar("trace_id", default="no-trace")


def get_trace_id() -> str:
    """
    Get the current request's trace ID.

    Returns:
        The trace ID for the current request, or "no-trace" outside a request.
    """
    return _trace_id_var.get()


def set_trace_id(trace_id: str) -> None:
    """Set the trace ID for the current context (middleware and tests)."""
    _trace_id_var.set(trace_id)


class TraceMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a trace ID to every request.

    - Reuses an incoming X-Trace-ID header (distributed tracing) or mints a UUID
    - Stores it in a context variable for downstream access
    - Adds X-Trace-ID header to the response
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = request.headers.get("X-Trace-ID") or str(uuid.uuid4())
        token = _trace_id_var.set(trace_id)
        try:
            response = await call_next(request)
            response.headers["X-Trace-ID"] = trace_id
            return response
        finally:
            _trace_id_var.reset(token)
