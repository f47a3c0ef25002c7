"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides:
- Custom markers for test categorization
- Shared fixtures for TLE data, AOIs and mocked HTTP sessions
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Tuple
from unittest.mock import MagicMock

import pytest
import requests
from _pytest.config import Config

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# =============================================================================
# FIXTURES - Common test setup
# =============================================================================


@pytest.fixture
def sample_tle_lines() -> Tuple[str, str]:
    """Sample TLE data for ICEYE-X44."""
    return (
        "1 62707U 25009DC  25306.22031033  .00004207  00000+0  39848-3 0  9995",
        "2 62707  97.7269  23.9854 0002193 135.9671 224.1724 14.94137357 66022",
    )


@pytest.fixture
def sample_tle_text(sample_tle_lines: Tuple[str, str]) -> str:
    """Three-line TLE text with several satellites."""
    return (
        "ISS (ZARYA)\n"
        "1 25544U 98067A   24001.00000000  .00002182  00000-0  40864-4 0  9990\n"
        "2 25544  51.6461 339.7939 0001220  92.8340 267.3124 15.49309239426382\n"
        "ICEYE-X44\n"
        f"{sample_tle_lines[0]}\n"
        f"{sample_tle_lines[1]}\n"
    )


@pytest.fixture
def base_datetime() -> datetime:
    """Standard base datetime for tests, a few days after the ICEYE-X44 epoch."""
    return datetime(2025, 11, 8, 0, 0, 0)


@pytest.fixture
def iberia_aoi() -> Any:
    """AOI over the Iberian peninsula, centered at 40N."""
    from aoi_coverage.geo import BoundingBox

    return BoundingBox(west=-10.0, south=35.0, east=5.0, north=45.0)


@pytest.fixture
def text_response() -> Callable[..., MagicMock]:
    """Factory for fake requests responses carrying text or JSON."""

    def make(text: str = "", json_data: Any = None, status_code: int = 200) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.text = text
        response.json.return_value = json_data
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
        else:
            response.raise_for_status.return_value = None
        return response

    return make


@pytest.fixture
def mock_session() -> MagicMock:
    """A requests.Session stand-in; configure .get / .post per test."""
    return MagicMock(spec=requests.Session)
