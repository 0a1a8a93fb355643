"""
Tests for domain models and the import result union.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from tedtalk_api.models import (
    ImportFailure,
    ImportOutcome,
    ImportPartialSuccess,
    ImportSuccess,
    Talk,
    is_successful,
    status_message,
)


class TestImportOutcome:
    """ImportOutcome maps onto exactly one result variant."""

    def test_no_skips_is_success(self) -> None:
        result = ImportOutcome(records_imported=4).as_result()

        assert result == ImportSuccess(records_imported=4)

    def test_some_skips_is_partial(self) -> None:
        outcome = ImportOutcome(records_imported=3, records_skipped=1, warnings=["row 2: x"])

        result = outcome.as_result()

        assert isinstance(result, ImportPartialSuccess)
        assert result.records_skipped == 1
        assert result.warnings == ["row 2: x"]

    def test_nothing_imported_is_failure(self) -> None:
        result = ImportOutcome(records_imported=0, records_skipped=2, warnings=["a", "b"]).as_result()

        assert isinstance(result, ImportFailure)
        assert result.error_message == "No valid records found in CSV file"

    def test_total_records(self) -> None:
        assert ImportOutcome(records_imported=3, records_skipped=2).total_records == 5


class TestResultVariants:
    """Variant validation and summaries."""

    def test_status_messages(self) -> None:
        assert status_message(ImportSuccess(5)) == "Successfully imported 5 records"
        assert (
            status_message(ImportPartialSuccess(3, 2))
            == "Imported 3 records, skipped 2 due to errors"
        )
        assert status_message(ImportFailure("boom")) == "Import failed: boom"

    def test_is_successful(self) -> None:
        assert is_successful(ImportSuccess(1)) is True
        assert is_successful(ImportPartialSuccess(1, 1)) is True
        assert is_successful(ImportFailure("boom")) is False

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValueError):
            ImportSuccess(-1)
        with pytest.raises(ValueError):
            ImportPartialSuccess(1, -1)

    @pytest.mark.parametrize("message", ["", "   "])
    def test_blank_failure_message_rejected(self, message: str) -> None:
        with pytest.raises(ValueError):
            ImportFailure(message)

    def test_unknown_result_type(self) -> None:
        with pytest.raises(TypeError):
            status_message("not a result")  # type: ignore[arg-type]


class TestTalk:
    def test_year(self) -> None:
        talk = Talk(
            title="t", author="a", date=datetime(2019, 3, 1), views=1, likes=1, link="l"
        )

        assert talk.year == 2019
        assert talk.id is None
