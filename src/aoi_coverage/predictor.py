"""
Pass prediction over an AOI.

For each tracked satellite the orbit is propagated over a future
horizon at a fixed step, every sample is hit-tested against the AOI with
the simplified swath model, and hits are aggregated into pass windows.
Exactly one PassResult is produced per configured satellite, whatever
fails along the way.
"""

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import threading
import time

import numpy as np

from .config import SatelliteCatalog, TrackedSatellite
from .errors import ElementParseError, NameMatchError
from .geo import BoundingBox
from .models import Level, PassResult
from .orbit import SatelliteOrbit
from .passes import (
    DEFAULT_STEP_SECONDS,
    MAX_COMPUTED_WINDOWS,
    SURFACED_WINDOWS,
    PassWindowAggregator,
)
from .swath import approx_hits
from .tle import OrbitalElements, TLEStore, find_element_set, name_matches, parse_element_sets
from .utils import format_duration, get_current_utc

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 14

# Samples propagated before each vectorized hit-test
SAMPLE_CHUNK_SIZE = 120


class PassPredictor:
    """
    Estimates pass windows for the satellites of a SatelliteCatalog.

    Satellites are grouped by TLE source so each source is fetched once;
    sources and satellites are processed sequentially in configuration
    order.
    """

    def __init__(
        self,
        store: TLEStore,
        catalog: SatelliteCatalog,
        step_seconds: int = DEFAULT_STEP_SECONDS,
        max_windows: int = MAX_COMPUTED_WINDOWS,
        surfaced_windows: int = SURFACED_WINDOWS,
    ) -> None:
        if step_seconds <= 0:
            raise ValueError(f"step_seconds must be > 0, got {step_seconds}")
        self.store = store
        self.catalog = catalog
        self.step_seconds = step_seconds
        self.max_windows = max_windows
        self.surfaced_windows = surfaced_windows

    def _group_by_source(self) -> "OrderedDict[str, List[Tuple[int, TrackedSatellite]]]":
        groups: "OrderedDict[str, List[Tuple[int, TrackedSatellite]]]" = OrderedDict()
        for index, sat in enumerate(self.catalog.satellites):
            groups.setdefault(sat.tle_source, []).append((index, sat))
        return groups

    def estimate(
        self,
        aoi: BoundingBox,
        start_time: Optional[datetime] = None,
        horizon_days: float = DEFAULT_HORIZON_DAYS,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], Any]] = None,
    ) -> List[PassResult]:
        """
        Estimate pass windows over an AOI.

        Args:
            aoi: AOI bounding box
            start_time: Start of the horizon (naive UTC, default: now)
            horizon_days: Horizon length in days
            cancel_event: Optional event; once set, remaining satellites
                get a "cancelled" row
            progress_callback: Optional callback(completed, total)

        Returns:
            One PassResult per configured satellite, in configuration order
        """
        if horizon_days <= 0:
            raise ValueError(f"horizon_days must be > 0, got {horizon_days}")

        started = time.monotonic()
        start = start_time or get_current_utc().replace(microsecond=0)
        end = start + timedelta(days=horizon_days)
        total = len(self.catalog.satellites)
        results: Dict[int, PassResult] = {}

        def record(index: int, result: PassResult) -> None:
            results[index] = result
            if progress_callback:
                progress_callback(len(results), total)

        for source_key, members in self._group_by_source().items():
            if cancel_event is not None and cancel_event.is_set():
                for index, sat in members:
                    record(index, PassResult(sat.name, Level.WARN, "Estimation cancelled."))
                continue

            fetched = self.store.try_fetch_elements(
                self.catalog.source_url(source_key), source_key, self.catalog.ttl_hours
            )
            if not fetched.ok:
                for index, sat in members:
                    record(
                        index,
                        PassResult(
                            sat.name,
                            Level.WARN,
                            f"TLE fetch failed for source '{source_key}': {fetched.error.reason}",
                        ),
                    )
                continue

            element_sets = parse_element_sets(fetched.value)
            logger.info(f"Parsed {len(element_sets)} element sets from source '{source_key}'")

            for index, sat in members:
                if cancel_event is not None and cancel_event.is_set():
                    record(index, PassResult(sat.name, Level.WARN, "Estimation cancelled."))
                    continue
                record(
                    index,
                    self._estimate_satellite(sat, source_key, element_sets, aoi, start, end, horizon_days, cancel_event),
                )

        ordered = [results[i] for i in range(total)]
        found = sum(1 for r in ordered if r.level is Level.OK)
        logger.info(
            f"Pass estimation finished in {format_duration(time.monotonic() - started)}: "
            f"{found}/{total} satellites with windows"
        )
        return ordered

    def _estimate_satellite(
        self,
        sat: TrackedSatellite,
        source_key: str,
        element_sets: List[OrbitalElements],
        aoi: BoundingBox,
        start: datetime,
        end: datetime,
        horizon_days: float,
        cancel_event: Optional[threading.Event],
    ) -> PassResult:
        lookup = sat.lookup_name
        try:
            elements = find_element_set(element_sets, lookup)
            if elements is None:
                raise NameMatchError(f"TLE name '{lookup}' not found in source '{source_key}'.")
            orbit = SatelliteOrbit(elements)
        except NameMatchError as e:
            logger.warning(str(e))
            return PassResult(sat.name, Level.WARN, str(e))
        except ElementParseError as e:
            logger.warning(f"Element parse failed for {sat.name}: {e}")
            return PassResult(sat.name, Level.WARN, f"Element parse failed: {e}", tle_epoch=elements.epoch)

        aggregator, propagated, cancelled = self._sample(orbit, aoi, sat.swath_km, start, end, cancel_event)
        if cancelled:
            # Open window never reached its end; keep only the closed ones
            return PassResult(
                sat.name,
                Level.WARN,
                "Estimation cancelled.",
                windows=aggregator.windows[: self.surfaced_windows],
                tle_epoch=elements.epoch,
            )

        windows = aggregator.finish(end)
        dwell = aggregator.dwell_minutes(self.step_seconds)

        notes = []
        if elements.name.upper() != lookup.strip().upper():
            candidates = name_matches(element_sets, lookup)
            if len(candidates) > 1:
                notes.append(
                    f"Ambiguous TLE name '{lookup}' matched {len(candidates)} sets; using '{elements.name}'."
                )

        if propagated == 0:
            level = Level.WARN
            description = "Propagation produced no positions (element set may be decayed or stale)."
        elif windows:
            level = Level.WARN if notes else Level.OK
            description = (
                f"{len(windows)} pass window(s) in the next {horizon_days:g} days; "
                f"~{dwell:.0f} min in AOI (reference only)."
            )
        else:
            level = Level.WARN if notes else Level.NO
            description = f"No pass over the AOI in the next {horizon_days:g} days."

        if notes:
            description = " ".join(notes + [description])

        return PassResult(
            name=sat.name,
            level=level,
            description=description,
            windows=windows[: self.surfaced_windows],
            dwell_minutes=dwell,
            tle_epoch=elements.epoch,
        )

    def _sample(
        self,
        orbit: SatelliteOrbit,
        aoi: BoundingBox,
        swath_km: float,
        start: datetime,
        end: datetime,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[PassWindowAggregator, int, bool]:
        """
        Propagate at a fixed step over [start, end) and feed the aggregator.

        Returns:
            Tuple of (aggregator, number of samples with a position,
            whether sampling stopped on cancellation)
        """
        aggregator = PassWindowAggregator(max_windows=self.max_windows)
        step = timedelta(seconds=self.step_seconds)
        propagated = 0
        cancelled = False
        timestamp = start

        while timestamp < end and not aggregator.done:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Sampling cancelled for {orbit.satellite_name}")
                cancelled = True
                break

            times, lats, lons = [], [], []
            while timestamp < end and len(times) < SAMPLE_CHUNK_SIZE:
                point = orbit.propagate(timestamp)
                if point is not None:
                    times.append(timestamp)
                    lats.append(point.latitude)
                    lons.append(point.longitude)
                timestamp += step

            if not times:
                continue
            propagated += len(times)

            hits = approx_hits(np.array(lats), np.array(lons), aoi, swath_km)
            for sample_time, hit in zip(times, hits):
                aggregator.add(sample_time, bool(hit))
                if aggregator.done:
                    break

        return aggregator, propagated, cancelled
