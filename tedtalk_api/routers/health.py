"""
TED Talk API - Health Check Router

Probe endpoints for monitoring and load balancers. None of them require
authentication.

Key endpoints:
- GET /api/health  - Liveness: 200 whenever the process is up
- GET /api/ready   - Readiness: 200 only if SELECT 1 succeeds within 2s
- GET /api/version - Build and environment information
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..api import ApiResponse, api_response
from ..core.config import get_settings
from ..db import check_db_ready, get_pool_health

READINESS_DB_TIMEOUT = 2.0

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


class HealthData(BaseModel):
    """Health check data payload for ApiResponse envelope."""

    status: str
    timestamp: str
    environment: str


class ReadinessResponse(BaseModel):
    """Readiness probe response - indicates service is ready to accept traffic."""

    ready: bool
    status: str
    timestamp: str
    database: str
    latency_ms: float | None = None
    error: str | None = None
    pool_initialized: bool
    pool_init_attempts: int
    schema_ready: bool


class VersionData(BaseModel):
    """Service version payload."""

    service: str
    version: str
    environment: str


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get(
    "/health",
    response_model=ApiResponse[HealthData],
    summary="Basic health check",
    description="Returns OK if the service is running. No authentication required.",
)
async def health_check() -> ApiResponse[HealthData]:
    """
    Liveness probe. Never touches the database.

    Returns standard API envelope with:
        data.status: "ok" if service is running
        data.timestamp: ISO 8601 UTC timestamp
        data.environment: Current environment (dev/staging/prod)
        meta.trace_id: Request trace ID for debugging
    """
    settings = get_settings()
    data = HealthData(status="ok", timestamp=_utc_now(), environment=settings.environment)
    return api_response(data=data)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Service is ready to accept traffic"},
        503: {"description": "Service is not ready - DB unreachable or unhealthy"},
    },
    summary="Readiness probe",
    description="Returns 200 only if DB is reachable and SELECT 1 succeeds within 2s.",
)
async def readiness_check() -> JSONResponse:
    """
    Readiness probe focused on database connectivity.

    Returns 503 Service Unavailable if the pool was never opened (including
    when DATABASE_URL is unset), the database is unreachable, or the query
    times out.
    """
    pool_health = get_pool_health()

    is_ready, db_status = await check_db_ready(timeout=READINESS_DB_TIMEOUT)

    latency_ms: float | None = None
    if "ms)" in db_status:
        try:
            latency_ms = float(db_status.split("(")[1].rstrip("ms)"))
        except (IndexError, ValueError):
            latency_ms = None

    response_data = ReadinessResponse(
        ready=is_ready,
        status="ready" if is_ready else "not_ready",
        timestamp=_utc_now(),
        database=db_status,
        latency_ms=latency_ms,
        error=pool_health.last_error if not is_ready else None,
        pool_initialized=pool_health.initialized,
        pool_init_attempts=pool_health.init_attempts,
        schema_ready=pool_health.schema_ready,
    )

    if not is_ready:
        logger.warning(
            f"Readiness check failed: db={db_status}, "
            f"initialized={pool_health.initialized}, "
            f"error={pool_health.last_error}"
        )

    return JSONResponse(
        status_code=200 if is_ready else 503,
        content=response_data.model_dump(),
    )


@router.get(
    "/version",
    response_model=ApiResponse[VersionData],
    summary="Service version",
)
async def version_info() -> ApiResponse[VersionData]:
    settings = get_settings()
    return api_response(
        data=VersionData(
            service="tedtalk-api",
            version=__version__,
            environment=settings.environment,
        )
    )
