"""
Result rows and value types produced by the engine.

Timestamps are timezone-naive UTC datetimes throughout, matching what the
propagator expects.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar
import re

from .errors import FetchError

T = TypeVar("T")

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


class Level(str, Enum):
    """Tri-state confidence signal. Never a probability."""
    OK = "ok"
    WARN = "warn"
    NO = "no"


def format_utc(timestamp: datetime) -> str:
    """Format a naive UTC datetime as ISO-8601 with a Z suffix."""
    return timestamp.replace(microsecond=0).isoformat() + "Z"


def _parse_month(value: str) -> datetime:
    match = _MONTH_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid month {value!r}; expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {value!r}; month must be 01-12")
    return datetime(year, month, 1)


def _next_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return datetime(moment.year + 1, 1, 1)
    return datetime(moment.year, moment.month + 1, 1)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open UTC interval [start, end)."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Time window start {self.start} is after end {self.end}")

    @classmethod
    def from_month_range(cls, start_month: str, end_month: str) -> "TimeWindow":
        """
        Build a window from a start/end "YYYY-MM" pair.

        The window runs from the first instant of the start month to the
        first instant of the month following the end month.

        Raises:
            ValueError: If a month is malformed or start is after end
        """
        start = _parse_month(start_month)
        end_first = _parse_month(end_month)
        if start > end_first:
            raise ValueError(f"Start month {start_month} is after end month {end_month}")
        return cls(start=start, end=_next_month(end_first))

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp < self.end

    def to_datetime_interval(self) -> str:
        """
        Render as a catalog datetime interval.

        Catalog intervals are closed, so the end is pulled back by one second.
        """
        last = max(self.start, self.end - timedelta(seconds=1))
        return f"{format_utc(self.start)}/{format_utc(last)}"


@dataclass(frozen=True)
class CoverageIndicator:
    """One leveled row of the coverage index."""

    name: str
    family: str
    sensors_text: str
    level: Level
    reason: str
    note: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "family": self.family,
            "sensorsText": self.sensors_text,
            "level": self.level.value,
            "reason": self.reason,
            "note": self.note,
        }


@dataclass(frozen=True)
class PassWindow:
    """Contiguous run of AOI-hit samples."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Pass window start {self.start} is after end {self.end}")

    def to_dict(self) -> Dict[str, str]:
        return {"start": format_utc(self.start), "end": format_utc(self.end)}


@dataclass
class PassResult:
    """Pass prediction row for one tracked satellite."""

    name: str
    level: Level
    description: str
    windows: List[PassWindow] = field(default_factory=list)
    dwell_minutes: float = 0.0
    tle_epoch: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "level": self.level.value,
            "description": self.description,
            "windows": [w.to_dict() for w in self.windows],
            "dwellMinutes": round(self.dwell_minutes, 1),
            "tleEpoch": format_utc(self.tle_epoch) if self.tle_epoch else None,
        }


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """
    Outcome of a network call: either a value or a FetchError.

    Callers branch on ``ok`` instead of catching exceptions.
    """

    value: Optional[T] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: FetchError) -> "FetchResult[T]":
        return cls(error=error)
