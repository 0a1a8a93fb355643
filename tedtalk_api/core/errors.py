"""
TED Talk API - Error Handling

Structured error responses for API consistency.
Provides clear distinction between 4xx (client) and 5xx (server) errors,
plus the business exceptions raised by the import pipeline and query layer.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .middleware import get_request_id

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Models
# =============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information for debugging."""

    field: str | None = None
    message: str
    code: str | None = None


class ErrorResponse(BaseModel):
    """
    Standardized error response format.

    All API errors return this structure for consistency.
    """

    error: str  # Machine-readable error code
    message: str  # Human-readable error message
    status_code: int  # HTTP status code
    request_id: str | None = None  # Correlation ID for debugging
    details: list[ErrorDetail] | None = None  # Additional error details


# =============================================================================
# Error Codes
# =============================================================================

# Client errors (4xx)
ERROR_VALIDATION = "validation_error"
ERROR_NOT_FOUND = "not_found"
ERROR_UNAUTHORIZED = "unauthorized"
ERROR_FORBIDDEN = "forbidden"
ERROR_BAD_REQUEST = "bad_request"
ERROR_INVALID_FILE_FORMAT = "invalid_file_format"
ERROR_FILE_TOO_LARGE = "file_too_large"
ERROR_MISSING_COLUMN = "missing_csv_column"
ERROR_INVALID_CSV = "invalid_csv_content"
ERROR_NO_VALID_RECORDS = "no_valid_records"

# Server errors (5xx)
ERROR_INTERNAL = "internal_error"
ERROR_DATABASE = "database_error"
ERROR_SERVICE_UNAVAILABLE = "service_unavailable"


# =============================================================================
# Business Exceptions
# =============================================================================


class TalkApiError(Exception):
    """Base exception for business logic errors surfaced to API callers."""

    def __init__(
        self,
        message: str,
        error_code: str = ERROR_INTERNAL,
        status_code: int = 500,
        details: list[ErrorDetail] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details


class NotFoundError(TalkApiError):
    """Resource not found."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            error_code=ERROR_NOT_FOUND,
            status_code=404,
        )


class DatabaseError(TalkApiError):
    """Database operation failed."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(
            message=message,
            error_code=ERROR_DATABASE,
            status_code=503,
        )


class CsvImportError(TalkApiError):
    """A CSV import failed as a whole; nothing was written."""

    def __init__(
        self,
        message: str,
        error_code: str = ERROR_BAD_REQUEST,
        status_code: int = 400,
    ):
        super().__init__(message=message, error_code=error_code, status_code=status_code)


class InvalidFileFormatError(CsvImportError):
    """Uploaded file name does not carry a .csv/.CSV extension."""

    def __init__(self, filename: str | None):
        super().__init__(
            message="Invalid file format. Only CSV files are accepted",
            error_code=ERROR_INVALID_FILE_FORMAT,
        )
        self.filename = filename


class FileTooLargeError(CsvImportError):
    """Uploaded content exceeds the configured size limit."""

    def __init__(self, limit_bytes: int):
        super().__init__(
            message=f"File size exceeds maximum limit of {limit_bytes // (1024 * 1024)} MB",
            error_code=ERROR_FILE_TOO_LARGE,
        )
        self.limit_bytes = limit_bytes


class MissingColumnError(CsvImportError):
    """The header row lacks a required column."""

    def __init__(self, column: str):
        super().__init__(
            message=f"Missing required CSV column: {column}",
            error_code=ERROR_MISSING_COLUMN,
        )
        self.column = column


class InvalidCsvContentError(CsvImportError):
    """Content could not be decoded or tokenized as CSV."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code=ERROR_INVALID_CSV)


class NoValidRecordsError(CsvImportError):
    """Every data row was skipped (or there were none)."""

    def __init__(self, skipped: int = 0, warnings: list[str] | None = None):
        super().__init__(
            message="No valid records found in CSV file",
            error_code=ERROR_NO_VALID_RECORDS,
            status_code=422,
        )
        self.skipped = skipped
        self.warnings = list(warnings or [])


class InvalidRowError(ValueError):
    """A single CSV row failed validation. Caught by the importer, never surfaced."""

    def __init__(self, reason: str, row_number: int):
        super().__init__(reason)
        self.reason = reason
        self.row_number = row_number


# =============================================================================
# Exception Handlers
# =============================================================================


def create_error_response(
    status_code: int,
    error: str,
    message: str,
    details: list[ErrorDetail] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    request_id = get_request_id()

    response = ErrorResponse(
        error=error,
        message=message,
        status_code=status_code,
        request_id=request_id if request_id else None,
        details=details,
    )

    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(exclude_none=True),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle FastAPI/Starlette HTTP exceptions.

    Maps standard HTTP errors to our error format. Auth challenges
    (WWW-Authenticate) are passed through.
    """
    error_map = {
        400: ERROR_BAD_REQUEST,
        401: ERROR_UNAUTHORIZED,
        403: ERROR_FORBIDDEN,
        404: ERROR_NOT_FOUND,
        422: ERROR_VALIDATION,
        500: ERROR_INTERNAL,
        503: ERROR_SERVICE_UNAVAILABLE,
    }

    fallback = ERROR_BAD_REQUEST if exc.status_code < 500 else ERROR_INTERNAL
    error_code = error_map.get(exc.status_code, fallback)

    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={
                "request_id": get_request_id(),
                "path": request.url.path,
                "status_code": exc.status_code,
            },
        )

    if isinstance(exc.detail, dict):
        message = exc.detail.get("message", str(exc.detail))
    else:
        message = str(exc.detail)

    return create_error_response(
        status_code=exc.status_code,
        error=error_code,
        message=message,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors.

    Converts validation errors to structured format with field-level details.
    """
    details = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field = ".".join(str(x) for x in loc) if loc else None

        details.append(
            ErrorDetail(
                field=field,
                message=error.get("msg", "Validation error"),
                code=error.get("type", "validation"),
            )
        )

    logger.warning(
        f"Validation error on {request.url.path}: {len(details)} errors",
        extra={
            "request_id": get_request_id(),
            "path": request.url.path,
            "count": len(details),
        },
    )

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        error=ERROR_VALIDATION,
        message="Request validation failed",
        details=details,
    )


async def talk_api_error_handler(request: Request, exc: TalkApiError) -> JSONResponse:
    """Render business exceptions with their own status and error code."""
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        f"{type(exc).__name__} on {request.url.path}: {exc.message}",
        extra={
            "request_id": get_request_id(),
            "path": request.url.path,
            "status_code": exc.status_code,
            "error_code": exc.error_code,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        error=exc.error_code,
        message=exc.message,
        details=exc.details,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unhandled exceptions.

    Logs the full traceback but returns a generic error to the client.
    """
    request_id = get_request_id()

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc,
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error=ERROR_INTERNAL,
        message="An unexpected error occurred. Please try again later.",
    )


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handlers(app: FastAPI) -> None:
    """
    Register all error handlers with the FastAPI app.

    Call this in create_app() after creating the FastAPI instance.
    """
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(TalkApiError, talk_api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Error handlers registered")
