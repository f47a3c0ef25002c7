"""
Pass window aggregation.

Turns a time-ordered stream of hit / no-hit samples into contiguous
visibility windows.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Tuple
import logging

from .models import PassWindow

logger = logging.getLogger(__name__)

DEFAULT_STEP_SECONDS = 60

# Sampling stops once this many windows have been emitted
MAX_COMPUTED_WINDOWS = 6

# Windows surfaced in a result row
SURFACED_WINDOWS = 5


class _State(Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"


class PassWindowAggregator:
    """
    Two-state machine over (timestamp, hit) samples.

    OUTSIDE -> INSIDE on a hit (window opens at that sample);
    INSIDE -> OUTSIDE on a miss (window closes at that sample). A window
    still open when the horizon is reached is closed at the horizon by
    ``finish``.
    """

    def __init__(self, max_windows: int = MAX_COMPUTED_WINDOWS) -> None:
        if max_windows < 1:
            raise ValueError(f"max_windows must be >= 1, got {max_windows}")
        self.max_windows = max_windows
        self.windows: List[PassWindow] = []
        self.hit_count = 0
        self._state = _State.OUTSIDE
        self._window_start: Optional[datetime] = None
        self._last_timestamp: Optional[datetime] = None

    @property
    def inside(self) -> bool:
        return self._state is _State.INSIDE

    @property
    def done(self) -> bool:
        """True once the window cap is reached; further samples are ignored."""
        return len(self.windows) >= self.max_windows

    def add(self, timestamp: datetime, hit: bool) -> None:
        """
        Feed one sample.

        Raises:
            ValueError: If timestamps are not strictly increasing
        """
        if self._last_timestamp is not None and timestamp <= self._last_timestamp:
            raise ValueError(
                f"Samples must be strictly increasing: {timestamp} after {self._last_timestamp}"
            )
        self._last_timestamp = timestamp

        if self.done:
            return

        if hit:
            self.hit_count += 1
            if self._state is _State.OUTSIDE:
                self._state = _State.INSIDE
                self._window_start = timestamp
        elif self._state is _State.INSIDE:
            self._emit(timestamp)

    def finish(self, horizon_end: datetime) -> List[PassWindow]:
        """Close any open window at the horizon and return all windows."""
        if self._state is _State.INSIDE and not self.done:
            self._emit(max(horizon_end, self._window_start))
        return self.windows

    def dwell_minutes(self, step_seconds: float = DEFAULT_STEP_SECONDS) -> float:
        """Coarse time-in-AOI estimate from the number of hit samples."""
        return self.hit_count * step_seconds / 60.0

    def _emit(self, end: datetime) -> None:
        self.windows.append(PassWindow(start=self._window_start, end=end))
        self._state = _State.OUTSIDE
        self._window_start = None


def aggregate_windows(
    samples: Iterable[Tuple[datetime, bool]],
    horizon_end: datetime,
    max_windows: int = MAX_COMPUTED_WINDOWS,
) -> List[PassWindow]:
    """
    Aggregate a finite sample sequence into pass windows.

    Args:
        samples: (timestamp, hit) pairs, strictly increasing in time
        horizon_end: Timestamp that closes a window still open at the end
        max_windows: Cap on emitted windows

    Returns:
        List of PassWindow in time order
    """
    aggregator = PassWindowAggregator(max_windows=max_windows)
    for timestamp, hit in samples:
        aggregator.add(timestamp, hit)
        if aggregator.done:
            break
    return aggregator.finish(horizon_end)
