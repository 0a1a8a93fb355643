"""
TED Talk API - Read response envelope

Successful GETs wrap their payload as

    {"ok": true, "data": <talk | talks | page | speakers | stats>,
     "meta": {"trace_id": "...", "timestamp": "..."}}

Failures never use this shape; they carry ``core.errors.ErrorResponse``. The
CSV import answers with its own flat 202 body.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from ..core.trace_middleware import get_trace_id

T = TypeVar("T")


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResponseMeta(BaseModel):
    trace_id: str = Field(..., description="Matches the X-Trace-ID response header")
    timestamp: str = Field(default_factory=_utc_timestamp, description="ISO 8601, UTC")


class ApiResponse(BaseModel, Generic[T]):
    """A read result plus the trace id of the request that produced it."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": True,
                "data": {"total_talks": 5440},
                "meta": {"trace_id": "9b2f0c1e", "timestamp": "2024-03-01T12:00:00+00:00"},
            }
        }
    )

    ok: bool = True
    data: T
    meta: ResponseMeta


def api_response(data: T) -> ApiResponse[T]:
    """Wrap ``data`` with the current request's trace id."""
    return ApiResponse(data=data, meta=ResponseMeta(trace_id=get_trace_id()))
