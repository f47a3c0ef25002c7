"""
Tests for utility functions.
"""

import logging
from datetime import datetime

import pytest

from aoi_coverage.utils import format_duration, get_current_utc, parse_datetime, setup_logging


class TestParseDatetime:

    @pytest.mark.parametrize("text,expected", [
        ("2025-11-08 12:30:00", datetime(2025, 11, 8, 12, 30)),
        ("2025-11-08 12:30", datetime(2025, 11, 8, 12, 30)),
        ("2025-11-08T12:30:00Z", datetime(2025, 11, 8, 12, 30)),
        ("2025-11-08T12:30:00.500000Z", datetime(2025, 11, 8, 12, 30, 0, 500000)),
        ("2025-11-08", datetime(2025, 11, 8)),
        ("2025-11-08T14:30:00+02:00", datetime(2025, 11, 8, 12, 30)),
    ])
    def test_formats(self, text: str, expected: datetime) -> None:
        assert parse_datetime(text) == expected

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_datetime("next tuesday")


def test_get_current_utc_is_naive() -> None:
    assert get_current_utc().tzinfo is None


@pytest.mark.parametrize("seconds,expected", [(30, "30.0s"), (90, "1.5m"), (5400, "1.5h")])
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


class TestSetupLogging:

    def test_level(self, monkeypatch) -> None:
        monkeypatch.delenv("AOI_COVERAGE_LOG_LEVEL", raising=False)
        setup_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("AOI_COVERAGE_LOG_LEVEL", "ERROR")
        setup_logging("DEBUG")
        assert logging.getLogger().level == logging.ERROR

    def test_log_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv("AOI_COVERAGE_LOG_LEVEL", raising=False)
        log_file = tmp_path / "run.log"

        setup_logging("INFO", str(log_file))
        logging.getLogger("aoi_coverage.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "hello" in log_file.read_text()
