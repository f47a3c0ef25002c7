"""
Coverage index assembly and row serialization.

Rule rows come first (one per configured provider), followed by open
catalog probe rows when a time window is available.
"""

from typing import Any, Dict, Iterable, List, Optional
import logging
import threading

from .catalog import OPEN_COLLECTIONS, CatalogClient
from .config import CoverageRule, OpenCollection
from .geo import BoundingBox
from .models import CoverageIndicator, TimeWindow
from .rules import evaluate_rules

logger = logging.getLogger(__name__)


def build_coverage_index(
    rules: List[CoverageRule],
    aoi: BoundingBox,
    time_window: Optional[TimeWindow] = None,
    prober: Optional[CatalogClient] = None,
    collections: Optional[List[OpenCollection]] = None,
    geometry: Optional[Dict[str, Any]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[CoverageIndicator]:
    """
    Build the ordered coverage indicator list for an AOI.

    Args:
        rules: Provider coverage rules
        aoi: AOI bounding box
        time_window: Search period; probe rows are only added when given
        prober: Catalog client; probe rows are only added when given
        collections: Open collections to probe (default: OPEN_COLLECTIONS)
        geometry: Optional GeoJSON geometry for "intersects" searches
        cancel_event: Optional cancellation flag

    Returns:
        Rule rows followed by probe rows
    """
    indicators = evaluate_rules(rules, aoi, cancel_event=cancel_event)

    if time_window is None or prober is None:
        logger.info("Skipping open catalog probe (no time window or no catalog client)")
        return indicators

    probe_collections = OPEN_COLLECTIONS if collections is None else collections
    indicators.extend(
        prober.probe_indicators(probe_collections, aoi, time_window, geometry, cancel_event=cancel_event)
    )
    return indicators


def to_rows(items: Iterable[Any]) -> List[Dict[str, Any]]:
    """Serialize result objects to plain dictionaries for the presentation layer."""
    return [item.to_dict() for item in items]
