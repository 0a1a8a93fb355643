"""
Tests for tedtalk_api.core.logging.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from tedtalk_api.core.logging import (
    ConsoleFormatter,
    JsonLineFormatter,
    LogContext,
    current_fields,
    log_timing,
)


def _record(message: str = "hello", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("tedtalk_api.test", level, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonLineFormatter:
    def test_basic_fields(self) -> None:
        payload = json.loads(JsonLineFormatter().format(_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "tedtalk_api.test"
        assert payload["message"] == "hello"
        assert payload["timestamp"].endswith("+00:00")

    def test_import_counters_from_extra(self) -> None:
        record = _record(records_imported=12, records_skipped=1, row=4, unrelated="ignored")

        payload = json.loads(JsonLineFormatter().format(record))

        assert payload["records_imported"] == 12
        assert payload["records_skipped"] == 1
        assert payload["row"] == 4
        assert "unrelated" not in payload

    def test_bound_filename_is_included(self) -> None:
        with LogContext(filename="talks.csv"):
            payload = json.loads(JsonLineFormatter().format(_record()))

        assert payload["filename"] == "talks.csv"

    def test_exception_is_rendered(self) -> None:
        try:
            raise ValueError("bad row")
        except ValueError:
            record = logging.LogRecord(
                "tedtalk_api.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )

        payload = json.loads(JsonLineFormatter().format(record))

        assert "ValueError: bad row" in payload["exception"]


class TestLogContext:
    def test_nested_blocks_restore_fields(self) -> None:
        before = current_fields()

        with LogContext(filename="a.csv"):
            with LogContext(request_id="req-1"):
                assert current_fields()["filename"] == "a.csv"
                assert current_fields()["request_id"] == "req-1"
            assert "request_id" not in current_fields()

        assert current_fields() == before

    def test_console_line_shows_bound_fields(self) -> None:
        with LogContext(filename="talks.csv", request_id="req-1"):
            line = ConsoleFormatter().format(_record("parsed"))

        assert "[request_id=req-1 filename=talks.csv]" in line
        assert line.endswith("parsed")


class TestLogTiming:
    @pytest.mark.asyncio
    async def test_async_success(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tedtalk_api.test.timing")

        @log_timing(logger, "Speaker influence ranking")
        async def rank() -> int:
            return 7

        with caplog.at_level(logging.INFO, logger="tedtalk_api.test.timing"):
            assert await rank() == 7

        assert "Speaker influence ranking completed" in caplog.text
        assert caplog.records[-1].status == "success"

    def test_sync_failure_reraises(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tedtalk_api.test.timing")

        @log_timing(logger, "CSV import")
        def run() -> None:
            raise KeyError("boom")

        with caplog.at_level(logging.INFO, logger="tedtalk_api.test.timing"):
            with pytest.raises(KeyError):
                run()

        assert "CSV import failed: KeyError" in caplog.text
        assert caplog.records[-1].status == "error"
