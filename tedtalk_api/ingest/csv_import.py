"""
tedtalk_api/ingest/csv_import.py
================================
CSV bulk import of talk records.

Whole-file checks run first and fail fast:
1. File name ends with ``.csv`` or ``.CSV``
2. Content fits the size limit
3. Header carries all of title, author, date, views, likes, link

Rows are then parsed one by one. A bad row is skipped with a warning
(``"row <n>: <reason>"``, header = row 1) and never aborts the batch. Valid
records are persisted with a single ``save_all`` call. If no row survives the
whole import fails with ``NoValidRecordsError`` and nothing is written.

Usage:
    from tedtalk_api.ingest.csv_import import CsvImportService

    service = CsvImportService(store)
    outcome = await service.import_csv("talks.csv", content)
    print(outcome.records_imported, outcome.warnings)
"""

from __future__ import annotations

import calendar
import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from ..core.config import DEFAULT_MAX_UPLOAD_BYTES
from ..core.errors import (
    FileTooLargeError,
    InvalidCsvContentError,
    InvalidFileFormatError,
    InvalidRowError,
    MissingColumnError,
    NoValidRecordsError,
)
from ..core.logging import LogContext, log_timing
from ..models import ImportOutcome, Talk
from ..repository import TalkStore

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

REQUIRED_COLUMNS = ("title", "author", "date", "views", "likes", "link")

ACCEPTED_EXTENSIONS = (".csv", ".CSV")

DATE_PATTERN = "MMMM yyyy"

# Full English month names, exact case
MONTHS: Dict[str, int] = {name: index for index, name in enumerate(calendar.month_name) if name}

_DATE_RE = re.compile(r"^([A-Za-z]+) (\d{4})$", re.ASCII)
_INTEGER_RE = re.compile(r"^[+-]?\d+$", re.ASCII)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


# =============================================================================
# Field Parsers
# =============================================================================


def is_valid_csv_filename(filename: Optional[str]) -> bool:
    """True when the name ends with ``.csv`` or ``.CSV`` (mixed case is rejected)."""
    return filename is not None and filename.endswith(ACCEPTED_EXTENSIONS)


def require_text(value: Optional[str], field_name: str) -> str:
    """Trim a required text cell; empty or missing is an error."""
    trimmed = (value or "").strip()
    if not trimmed:
        raise ValueError(f"{field_name} cannot be empty")
    return trimmed


def parse_count(value: Optional[str], field_name: str) -> int:
    """
    Parse a views/likes cell as a signed 64-bit integer.

    Negative values are accepted.
    """
    raw = value or ""
    trimmed = raw.strip()
    if not trimmed:
        raise ValueError(f"{field_name} cannot be empty")
    if not _INTEGER_RE.match(trimmed):
        raise ValueError(f"{field_name} must be a valid number, got: {raw}")
    number = int(trimmed)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"{field_name} must be a valid number, got: {raw}")
    return number


def parse_month_year(value: Optional[str]) -> datetime:
    """
    Parse ``"<FullMonthName> <yyyy>"`` into the first day of that month.

    Month names must match exactly, so "december 2020" and "Dec 2020" fail.
    """
    raw = value or ""
    trimmed = raw.strip()
    if not trimmed:
        raise ValueError("date cannot be empty")

    match = _DATE_RE.match(trimmed)
    month = MONTHS.get(match.group(1)) if match else None
    year = int(match.group(2)) if match else 0
    if month is None or not datetime.min.year <= year <= datetime.max.year:
        raise ValueError(f"Invalid date format '{raw}', expected {DATE_PATTERN}")

    return datetime(year, month, 1)


def parse_row(row: Dict[Optional[str], Optional[str]], row_number: int) -> Talk:
    """
    Convert one CSV row into a Talk.

    Raises:
        InvalidRowError: the first field that fails validation
    """
    try:
        return Talk(
            title=require_text(row.get("title"), "title"),
            author=require_text(row.get("author"), "author"),
            date=parse_month_year(row.get("date")),
            views=parse_count(row.get("views"), "views"),
            likes=parse_count(row.get("likes"), "likes"),
            link=require_text(row.get("link"), "link"),
        )
    except ValueError as e:
        raise InvalidRowError(str(e), row_number) from e


# =============================================================================
# CSV Parser
# =============================================================================


@dataclass(slots=True)
class ParseResult:
    """Valid talks and per-row warnings from one CSV document."""

    talks: List[Talk] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.warnings)


def decode_content(content: bytes) -> str:
    """
    Decode upload bytes as UTF-8, dropping a leading BOM.

    Invalid byte sequences become U+FFFD so a cp1252 export still imports.
    """
    return content.decode("utf-8-sig", errors="replace")


def _allow_fields_up_to(length: int) -> None:
    # csv refuses any cell above field_size_limit() (131072 by default)
    if length > csv.field_size_limit():
        csv.field_size_limit(length)


def validate_headers(fieldnames: Optional[List[str]]) -> None:
    """Raise MissingColumnError for the first required column not in the header."""
    present = {name.strip() for name in fieldnames or [] if name is not None}
    for column in REQUIRED_COLUMNS:
        if column not in present:
            raise MissingColumnError(column)


def parse_csv(text: str) -> ParseResult:
    """
    Parse CSV text into talks, collecting a warning for each skipped row.

    Raises:
        MissingColumnError: header lacks a required column (or there is no header)
        InvalidCsvContentError: the text is not well-formed CSV
    """
    result = ParseResult()
    _allow_fields_up_to(len(text))
    reader = csv.DictReader(io.StringIO(text, newline=""))

    try:
        fieldnames = reader.fieldnames
        validate_headers(fieldnames)
        if fieldnames is not None:
            reader.fieldnames = [name.strip() for name in fieldnames]

        # header is row 1, so the first data row is row 2
        for row_number, row in enumerate(reader, start=2):
            try:
                result.talks.append(parse_row(row, row_number))
            except InvalidRowError as e:
                result.warnings.append(f"row {row_number}: {e.reason}")
                logger.warning(
                    f"Skipping invalid row {row_number}: {e.reason}",
                    extra={"row": row_number},
                )
            except Exception as e:
                result.warnings.append(f"row {row_number}: unexpected error: {type(e).__name__}: {e}")
                logger.warning(
                    f"Skipping row {row_number} due to unexpected error: {type(e).__name__}: {e}",
                    extra={"row": row_number},
                )
    except csv.Error as e:
        raise InvalidCsvContentError(f"Malformed CSV content: {e}") from e

    return result


# =============================================================================
# Import Service
# =============================================================================


class AsyncReadable(Protocol):
    """Anything with an async ``read(size)``, e.g. FastAPI's UploadFile."""

    async def read(self, size: int = -1) -> bytes: ...


class CsvImportService:
    """
    Validates, parses and persists a CSV upload.

    Warnings and counters are local to each call and returned in the
    ImportOutcome, so concurrent imports never share state.
    """

    def __init__(self, store: TalkStore, max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES):
        self.store = store
        self.max_bytes = max_bytes

    def _check_filename(self, filename: Optional[str]) -> None:
        if not is_valid_csv_filename(filename):
            logger.warning(f"Rejected upload with invalid file name: {filename!r}")
            raise InvalidFileFormatError(filename)

    def _check_size(self, size: int) -> None:
        if size > self.max_bytes:
            logger.warning(f"File size {size} exceeds maximum allowed size {self.max_bytes}")
            raise FileTooLargeError(self.max_bytes)

    async def import_stream(self, filename: Optional[str], stream: AsyncReadable) -> ImportOutcome:
        """
        Import from a readable upload.

        The name is checked before anything is read, and at most
        ``max_bytes + 1`` bytes are pulled from the stream.
        """
        self._check_filename(filename)
        content = await stream.read(self.max_bytes + 1)
        return await self.import_csv(filename, content)  # type: ignore[arg-type]

    @log_timing(logger, "CSV import")
    async def import_csv(self, filename: str, content: bytes) -> ImportOutcome:
        """
        Import CSV bytes.

        Returns:
            ImportOutcome with imported/skipped counts and ordered warnings

        Raises:
            InvalidFileFormatError, FileTooLargeError, MissingColumnError,
            InvalidCsvContentError, NoValidRecordsError
        """
        with LogContext(filename=filename):
            self._check_filename(filename)
            self._check_size(len(content))

            logger.info(f"Starting CSV import for file: {filename} ({len(content)} bytes)")
            parsed = parse_csv(decode_content(content))

            if not parsed.talks:
                logger.warning(
                    "No valid records found in CSV file",
                    extra={"records_skipped": parsed.skipped},
                )
                raise NoValidRecordsError(skipped=parsed.skipped, warnings=parsed.warnings)

            logger.info(
                f"Importing {len(parsed.talks)} valid records from CSV (skipped: {parsed.skipped})"
            )
            saved = await self.store.save_all(parsed.talks)

            outcome = ImportOutcome(
                records_imported=len(saved),
                records_skipped=parsed.skipped,
                warnings=parsed.warnings,
            )
            logger.info(
                f"CSV import completed for file: {filename}",
                extra={
                    "records_imported": outcome.records_imported,
                    "records_skipped": outcome.records_skipped,
                },
            )
            return outcome
