"""
TED Talk API - Domain Models

Plain dataclasses shared by the import pipeline, the ranking engine and the
query layer. HTTP shapes live next to their routers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union


@dataclass(slots=True)
class Talk:
    """
    One talk record.

    ``id`` is None until the store assigns it. ``date`` only carries month and
    year; it is always the 1st of the month at midnight.
    """

    title: str
    author: str
    date: datetime
    views: int
    likes: int
    link: str
    id: Optional[int] = None

    @property
    def year(self) -> int:
        return self.date.year


@dataclass(frozen=True, slots=True)
class InfluentialSpeaker:
    """Aggregated engagement for one author."""

    author: str
    talk_count: int
    total_views: int
    total_likes: int
    average_engagement: float


@dataclass(slots=True)
class ImportOutcome:
    """Counts and warnings from one CSV import call."""

    records_imported: int
    records_skipped: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return self.records_imported + self.records_skipped

    def as_result(self) -> CsvImportResult:
        """Map the outcome onto the closed result union."""
        if self.records_imported == 0:
            return ImportFailure(
                error_message="No valid records found in CSV file",
                warnings=list(self.warnings),
            )
        if self.records_skipped == 0:
            return ImportSuccess(records_imported=self.records_imported)
        return ImportPartialSuccess(
            records_imported=self.records_imported,
            records_skipped=self.records_skipped,
            warnings=list(self.warnings),
        )


# =============================================================================
# Import Result Variants
# =============================================================================


@dataclass(frozen=True, slots=True)
class ImportSuccess:
    """Every data row was imported."""

    records_imported: int

    def __post_init__(self) -> None:
        if self.records_imported < 0:
            raise ValueError("records_imported cannot be negative")


@dataclass(frozen=True, slots=True)
class ImportPartialSuccess:
    """Some rows were imported, the rest skipped with warnings."""

    records_imported: int
    records_skipped: int
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.records_imported < 0 or self.records_skipped < 0:
            raise ValueError("Record counts cannot be negative")


@dataclass(frozen=True, slots=True)
class ImportFailure:
    """Nothing was imported."""

    error_message: str
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.error_message or not self.error_message.strip():
            raise ValueError("error_message cannot be blank")


CsvImportResult = Union[ImportSuccess, ImportPartialSuccess, ImportFailure]


def status_message(result: CsvImportResult) -> str:
    """Human-readable summary of an import result."""
    match result:
        case ImportSuccess(records_imported=imported):
            return f"Successfully imported {imported} records"
        case ImportPartialSuccess(records_imported=imported, records_skipped=skipped):
            return f"Imported {imported} records, skipped {skipped} due to errors"
        case ImportFailure(error_message=message):
            return f"Import failed: {message}"
    raise TypeError(f"Unknown import result: {type(result).__name__}")


def is_successful(result: CsvImportResult) -> bool:
    """True when at least one record was imported."""
    return not isinstance(result, ImportFailure)
