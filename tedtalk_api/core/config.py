"""
TED Talk API - Configuration

Single source of truth for runtime configuration. Values come from environment
variables, with an optional env file (``ENV_FILE``, default ``.env``).

Environment variables:
----------------------
  DATABASE_URL          - Postgres connection string (pool is skipped when unset)
  ENVIRONMENT           - dev | staging | prod (default: dev)
  LOG_LEVEL             - DEBUG | INFO | WARNING | ERROR (default: INFO)
  ADMIN_USERNAME        - HTTP Basic user with ADMIN + USER roles
  ADMIN_PASSWORD
  USER_USERNAME         - HTTP Basic user with USER role
  USER_PASSWORD
  CORS_ORIGINS          - Comma-separated CORS origins
  HOST / PORT           - uvicorn bind address
  MAX_UPLOAD_BYTES      - CSV upload size limit (default: 10 MiB)
  DB_POOL_MIN_SIZE      - psycopg pool lower bound
  DB_POOL_MAX_SIZE      - psycopg pool upper bound

Usage:
------
    from tedtalk_api.core.config import get_settings

    settings = get_settings()
    print(settings.database_url)
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# Shipped credentials; refused in prod by validate_required_env()
_DEFAULT_PASSWORDS = {"admin123", "user123"}


class Settings(BaseSettings):
    """
    Application settings.

    Loads from environment variables with fallback to the env file named by
    ENV_FILE. Keys are case-insensitive.
    """

    model_config = SettingsConfigDict(
        env_file=os.environ.get("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # DATABASE
    # =========================================================================

    DATABASE_URL: str | None = Field(
        default=None,
        description="Postgres connection string",
    )
    DB_POOL_MIN_SIZE: int = Field(default=1, ge=0, description="Minimum pool connections")
    DB_POOL_MAX_SIZE: int = Field(default=10, ge=1, description="Maximum pool connections")

    # =========================================================================
    # ENVIRONMENT CONTROL
    # =========================================================================

    ENVIRONMENT: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Deployment environment",
    )
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # =========================================================================
    # HTTP BASIC AUTHENTICATION
    # =========================================================================

    ADMIN_USERNAME: str = Field(default="admin", description="Admin account name")
    ADMIN_PASSWORD: str = Field(default="admin123", description="Admin account password")
    USER_USERNAME: str = Field(default="user", description="Read-only account name")
    USER_PASSWORD: str = Field(default="user123", description="Read-only account password")

    # =========================================================================
    # CORS / SERVER
    # =========================================================================

    CORS_ORIGINS: str | None = Field(default=None, description="Comma-separated CORS origins")
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8080, description="Server port")

    # =========================================================================
    # CSV IMPORT
    # =========================================================================

    MAX_UPLOAD_BYTES: int = Field(
        default=DEFAULT_MAX_UPLOAD_BYTES,
        gt=0,
        description="Maximum accepted CSV size in bytes",
    )

    # =========================================================================
    # VALIDATION & NORMALIZATION
    # =========================================================================

    @model_validator(mode="before")
    @classmethod
    def _normalize_values(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Strip stray quotes/whitespace and normalize ENVIRONMENT aliases."""
        for key, value in list(values.items()):
            if isinstance(value, str):
                values[key] = value.strip().strip('"').strip("'").strip()

        env_key = next((k for k in ("ENVIRONMENT", "environment") if k in values), None)
        if env_key:
            raw = str(values[env_key]).lower().strip()
            if raw == "production":
                logger.warning("ENVIRONMENT='production' is deprecated; use 'prod'. Normalizing.")
                values[env_key] = "prod"
            elif raw == "development":
                logger.warning("ENVIRONMENT='development' is deprecated; use 'dev'. Normalizing.")
                values[env_key] = "dev"
            elif raw not in ("dev", "staging", "prod"):
                raise ValueError(
                    f"ENVIRONMENT='{raw}' is invalid. Must be one of: dev, staging, prod"
                )
            else:
                values[env_key] = raw

        if "DATABASE_URL" in values and values["DATABASE_URL"] == "":
            values["DATABASE_URL"] = None

        return values

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "Settings":
        if self.DB_POOL_MIN_SIZE > self.DB_POOL_MAX_SIZE:
            raise ValueError(
                f"DB_POOL_MIN_SIZE ({self.DB_POOL_MIN_SIZE}) exceeds "
                f"DB_POOL_MAX_SIZE ({self.DB_POOL_MAX_SIZE})"
            )
        return self

    # =========================================================================
    # PROPERTY ALIASES
    # =========================================================================

    @property
    def database_url(self) -> str | None:
        return self.DATABASE_URL

    @property
    def environment(self) -> Literal["dev", "staging", "prod"]:
        return self.ENVIRONMENT

    @property
    def log_level(self) -> str:
        return self.LOG_LEVEL

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.ENVIRONMENT == "dev"

    @property
    def cors_allowed_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        if self.CORS_ORIGINS:
            origins = []
            for o in self.CORS_ORIGINS.replace(",", " ").split():
                o = o.strip().rstrip("/")
                if o and o.startswith("http"):
                    origins.append(o)
            if origins:
                return origins
        return ["http://localhost:3000", "http://localhost:5173"]


# =========================================================================
# SINGLETON & FACTORY
# =========================================================================


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def reset_settings() -> None:
    """Clear the cached settings (for testing)."""
    get_settings.cache_clear()


# =========================================================================
# LOGGING CONFIGURATION
# =========================================================================


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure application logging based on settings.

    In production, uses structured JSON logging for observability.
    In development, uses colored console output.
    """
    from .logging import configure_structured_logging

    if settings is None:
        settings = get_settings()

    configure_structured_logging(
        level=settings.LOG_LEVEL,
        json_output=settings.is_production,
        service_name="tedtalk-api",
    )

    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)


# =========================================================================
# STARTUP VALIDATION
# =========================================================================


def validate_required_env(fail_fast: bool = True) -> dict[str, Any]:
    """
    Check the effective configuration for problems.

    Returns a report dict with ``ok``, ``errors`` and ``warnings``. In prod,
    the shipped default passwords are an error; elsewhere they only warn.

    Raises:
        RuntimeError: If errors were found and fail_fast is True
    """
    settings = get_settings()
    errors: list[str] = []
    warnings: list[str] = []

    if not settings.DATABASE_URL:
        warnings.append("DATABASE_URL is not set; database-backed endpoints will fail")

    defaults_in_use = [
        name
        for name, value in (
            ("ADMIN_PASSWORD", settings.ADMIN_PASSWORD),
            ("USER_PASSWORD", settings.USER_PASSWORD),
        )
        if value in _DEFAULT_PASSWORDS
    ]
    if defaults_in_use:
        message = f"Default credentials in use: {', '.join(defaults_in_use)}"
        if settings.is_production:
            errors.append(message)
        else:
            warnings.append(message)

    if settings.ADMIN_USERNAME == settings.USER_USERNAME:
        errors.append("ADMIN_USERNAME and USER_USERNAME must differ")

    for warning in warnings:
        logger.warning(warning)

    report = {"ok": not errors, "errors": errors, "warnings": warnings}

    if errors and fail_fast:
        raise RuntimeError("Configuration invalid:\n  " + "\n  ".join(errors))

    return report
