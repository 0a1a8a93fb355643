"""
TED Talk API - Core Module

Contains configuration, security, middleware and shared error handling.
"""

from .errors import (
    CsvImportError,
    DatabaseError,
    ErrorResponse,
    NotFoundError,
    TalkApiError,
    setup_error_handlers,
)
from .middleware import RequestLoggingMiddleware, get_request_id
from .security import AuthContext, get_current_user, require_role

__all__ = [
    # Security
    "AuthContext",
    "get_current_user",
    "require_role",
    # Middleware
    "RequestLoggingMiddleware",
    "get_request_id",
    # Errors
    "CsvImportError",
    "DatabaseError",
    "ErrorResponse",
    "NotFoundError",
    "TalkApiError",
    "setup_error_handlers",
]
