"""
TED Talk API - FastAPI Application

Main application entry point. Creates the FastAPI app, wires up routers,
opens the database pool and bootstraps the schema on startup.

Run with: uvicorn tedtalk_api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .core.config import configure_logging, get_settings, validate_required_env
from .core.errors import setup_error_handlers
from .core.middleware import RequestLoggingMiddleware
from .core.trace_middleware import TraceMiddleware
from .db import close_db_pool, ensure_schema, init_db_pool
from .routers.health import router as health_router
from .routers.talks import router as talks_router

# Configure logging before anything else
configure_logging()
logger = logging.getLogger(__name__)

# Fail fast on unsafe configuration (e.g. default passwords in prod)
try:
    validate_required_env(fail_fast=True)
except RuntimeError as e:
    logging.error(f"Configuration validation failed: {e}")
    raise


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    - Startup: open the database pool and create the ted_talk table if missing
    - Shutdown: close the database pool

    Startup never fails on database problems so health probes stay reachable.
    """
    logger.info(f"Starting TED Talk API v{__version__}")

    try:
        await init_db_pool()
        await ensure_schema()
    except Exception as e:
        logger.error(f"Database startup failed: {type(e).__name__}: {e}")

    yield

    logger.info("Shutting down TED Talk API...")
    await close_db_pool()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application with:
    - CORS middleware (outermost)
    - Trace ID and request logging middleware
    - Structured error handlers
    - Health and talks routers

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app = FastAPI(
        title="TED Talk API",
        description=(
            "REST API for TED talk records: CSV bulk import, speaker influence "
            "analytics and paginated queries. HTTP Basic auth (ADMIN, USER)."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added = outermost
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(TraceMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Trace-ID"],
    )
    logger.info(f"[CORS] Allowed origins: {settings.cors_allowed_origins}")

    setup_error_handlers(app)

    app.include_router(health_router, prefix="/api")
    app.include_router(talks_router, prefix="/api")

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """Root endpoint - service info."""
        return {
            "service": "TED Talk API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        """Simple health check at root level for load balancers."""
        return {
            "service": "TED Talk API",
            "status": "ok",
        }

    logger.info(f"FastAPI app created: {app.title}")

    return app


# Create the application instance
app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "tedtalk_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
