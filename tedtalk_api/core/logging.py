"""
TED Talk API - Logging

One root handler on stdout. In prod each record is a JSON line; elsewhere it is
a short colored line for a terminal.

Fields bound with ``LogContext`` (the upload's filename, the request id, the
service name) are attached to every record emitted inside the block, so the
per-row warnings of an import can be traced back to the upload that caused
them. ``log_timing`` reports how long an import or a ranking took.

Usage:
    logger = logging.getLogger(__name__)

    with LogContext(filename="talks.csv"):
        logger.warning("Skipping invalid row 4", extra={"row": 4})
"""

from __future__ import annotations

import inspect
import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Iterator, Mapping, TypeVar

_bound_fields: ContextVar[Mapping[str, Any]] = ContextVar("log_fields", default={})

# Attributes passed through ``extra=`` that belong in the JSON line
RECORD_FIELDS = (
    "request_id",
    "filename",
    "row",
    "records_imported",
    "records_skipped",
    "limit",
    "count",
    "duration_ms",
    "status",
    "status_code",
    "error_code",
    "path",
    "method",
)

# Shown inline on console lines
CONSOLE_FIELDS = ("request_id", "filename")


def current_fields() -> dict[str, Any]:
    """Fields bound by the enclosing LogContext blocks."""
    return dict(_bound_fields.get())


@contextmanager
def LogContext(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to every record logged inside the block."""
    token = _bound_fields.set({**_bound_fields.get(), **fields})
    try:
        yield
    finally:
        _bound_fields.reset(token)


class JsonLineFormatter(logging.Formatter):
    """
    Render a record as one JSON object, e.g.

        {"timestamp": "...", "level": "INFO", "logger": "tedtalk_api.ingest.csv_import",
         "message": "CSV import completed for file: talks.csv", "service": "tedtalk-api",
         "filename": "talks.csv", "records_imported": 120, "records_skipped": 2}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(current_fields())
        for name in RECORD_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger [request_id=.. filename=..] message`` with a colored level."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        fields = current_fields()
        bound = " ".join(f"{name}={fields[name]}" for name in CONSOLE_FIELDS if name in fields)
        color = self.LEVEL_COLORS.get(record.levelname, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        line = f"{clock} {color}{record.levelname:<8}{self.RESET} {record.name}"
        if bound:
            line += f" [{bound}]"
        line += f" {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_structured_logging(
    level: str = "INFO",
    json_output: bool = True,
    service_name: str = "tedtalk-api",
) -> None:
    """Replace the root handlers with a single stdout handler."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonLineFormatter() if json_output else ConsoleFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    _bound_fields.set({**_bound_fields.get(), "service": service_name})


T = TypeVar("T")


def log_timing(
    logger: logging.Logger,
    operation: str,
    level: int = logging.INFO,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Log ``"<operation> completed"`` with ``duration_ms``, or a warning naming
    the exception when the call raises. Works on plain and async functions.
    """

    def finished(started: float, error: Exception | None = None) -> None:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if error is None:
            logger.log(
                level,
                f"{operation} completed",
                extra={"duration_ms": duration_ms, "status": "success"},
            )
        else:
            logger.warning(
                f"{operation} failed: {type(error).__name__}: {error}",
                extra={"duration_ms": duration_ms, "status": "error"},
            )

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def timed_async(*args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    finished(started, e)
                    raise
                finished(started)
                return result

            return timed_async  # type: ignore[return-value]

        @wraps(func)
        def timed(*args: Any, **kwargs: Any) -> T:
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                finished(started, e)
                raise
            finished(started)
            return result

        return timed

    return decorator
