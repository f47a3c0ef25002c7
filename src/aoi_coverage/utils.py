"""
Shared helpers: logging setup, datetime parsing and duration formatting.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging
import os
import sys

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "AOI_COVERAGE_LOG_LEVEL"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Tried in order before falling back to ISO 8601 with an offset
DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%d",
)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure the root logger for command-line runs.

    Result rows are written to stdout, so log records go to stderr and,
    optionally, to a file.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path

    Environment Variables:
        AOI_COVERAGE_LOG_LEVEL: Overrides ``level`` when set
    """
    level = os.environ.get(LOG_LEVEL_ENV) or level
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    logger.debug(f"Logging configured at {logging.getLevelName(log_level)} level")


def parse_datetime(date_string: str) -> datetime:
    """
    Parse a datetime string into a naive UTC datetime.

    Raises:
        ValueError: If no known format matches
    """
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(date_string, fmt)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(date_string)
    except ValueError:
        raise ValueError(f"Could not parse datetime string: {date_string}") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def get_current_utc() -> datetime:
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    if seconds < 3600:
        return f"{seconds / 60:.1f}m"
    return f"{seconds / 3600:.1f}h"
