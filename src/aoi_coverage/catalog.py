"""
Open spatiotemporal catalog (STAC) access.

Provides a minimal existence probe (limit=1 searches) that feeds the
coverage index, and a scene search that groups catalog items by
satellite and acquisition date.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import threading

import requests

from .config import OpenCollection
from .errors import FetchError
from .geo import BoundingBox
from .models import CoverageIndicator, FetchResult, Level, TimeWindow
from .utils import parse_datetime

logger = logging.getLogger(__name__)

EARTH_SEARCH_URL = "https://earth-search.aws.element84.com/v1"
DEFAULT_TIMEOUT_SECONDS = 30
SCENE_SEARCH_LIMIT = 200

PROBE_NOTE = "Best-effort open-archive signal; not a guarantee of availability."

OPEN_COLLECTIONS: List[OpenCollection] = [
    OpenCollection(key="s2", title="Sentinel-2", collection="sentinel-2-l2a"),
    OpenCollection(key="s1", title="Sentinel-1", collection="sentinel-1-grd"),
    OpenCollection(key="ls", title="Landsat", collection="landsat-c2-l2"),
]


@dataclass
class CatalogScene:
    """One catalog item reduced to what the result list needs."""

    satellite: str
    acquired_at: Optional[datetime]
    feature: Dict[str, Any]


@dataclass
class SceneGroup:
    """Scenes of one satellite on one UTC date."""

    satellite: str
    date: str
    times: List[Optional[datetime]] = field(default_factory=list)
    features: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.features)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "satellite": self.satellite,
            "date": self.date,
            "count": self.count,
            "times": [t.isoformat() + "Z" if t else None for t in self.times],
        }


def scene_satellite_name(feature: Dict[str, Any], fallback: Optional[str] = None) -> str:
    """Satellite name from item properties: platform, then constellation, then fallback."""
    props = feature.get("properties") or {}
    return props.get("platform") or props.get("constellation") or fallback or "Unknown satellite"


def _scene_datetime(feature: Dict[str, Any]) -> Optional[datetime]:
    value = (feature.get("properties") or {}).get("datetime")
    if not value:
        return None
    try:
        return parse_datetime(value)
    except ValueError:
        return None


def group_scenes(scenes: List[CatalogScene]) -> List[SceneGroup]:
    """
    Merge scenes by satellite and UTC date, newest date first.

    Scenes without a parseable datetime are grouped under "Unknown",
    listed after all dated groups.
    """
    groups: "OrderedDict[tuple, SceneGroup]" = OrderedDict()
    for scene in scenes:
        date_key = scene.acquired_at.date().isoformat() if scene.acquired_at else "Unknown"
        key = (scene.satellite, date_key)
        group = groups.get(key)
        if group is None:
            group = groups[key] = SceneGroup(satellite=scene.satellite, date=date_key)
        group.times.append(scene.acquired_at)
        group.features.append(scene.feature)

    # sorted() is stable, so same-date groups keep arrival order; undated groups go last
    return sorted(groups.values(), key=lambda g: (g.date != "Unknown", g.date), reverse=True)


class CatalogClient:
    """
    Client for a STAC API ``/search`` endpoint.

    Requests are issued one at a time, in collection order.
    """

    def __init__(
        self,
        endpoint: str = EARTH_SEARCH_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def search_url(self) -> str:
        return f"{self.endpoint}/search"

    def _search_body(
        self,
        collection: str,
        aoi: BoundingBox,
        time_window: Optional[TimeWindow],
        geometry: Optional[Dict[str, Any]],
        limit: int,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "collections": [collection],
            "datetime": time_window.to_datetime_interval() if time_window else "..",
            "limit": limit,
        }
        if geometry is not None:
            body["intersects"] = geometry
        else:
            body["bbox"] = aoi.as_list()
        return body

    def search(
        self,
        collection: str,
        aoi: BoundingBox,
        time_window: Optional[TimeWindow] = None,
        geometry: Optional[Dict[str, Any]] = None,
        limit: int = 1,
    ) -> List[Dict[str, Any]]:
        """
        Run one catalog search and return its features.

        Raises:
            FetchError: On network error, non-success status or a body
                that is not a JSON feature collection
        """
        body = self._search_body(collection, aoi, time_window, geometry, limit)
        try:
            response = self.session.post(self.search_url, json=body, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise FetchError(self.search_url, str(e)) from e
        except ValueError as e:
            raise FetchError(self.search_url, f"invalid JSON response: {e}") from e

        features = payload.get("features") if isinstance(payload, dict) else None
        if features is None:
            return []
        if not isinstance(features, list):
            raise FetchError(self.search_url, "'features' is not a list")
        return features

    def try_search(self, *args: Any, **kwargs: Any) -> FetchResult[List[Dict[str, Any]]]:
        try:
            return FetchResult.success(self.search(*args, **kwargs))
        except FetchError as e:
            return FetchResult.failure(e)

    def probe(
        self,
        collection_keys: List[str],
        aoi: BoundingBox,
        time_window: TimeWindow,
        geometry: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, bool]:
        """
        Check whether any item exists per collection.

        A failed search counts as not found; it is logged, never raised.

        Returns:
            Mapping of collection key to found flag, in input order
        """
        found: Dict[str, bool] = {}
        for key in collection_keys:
            result = self.try_search(key, aoi, time_window, geometry, limit=1)
            if result.ok:
                found[key] = len(result.value) > 0
            else:
                logger.warning(f"Existence probe for '{key}' failed: {result.error}")
                found[key] = False
        return found

    def probe_indicators(
        self,
        collections: List[OpenCollection],
        aoi: BoundingBox,
        time_window: TimeWindow,
        geometry: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[CoverageIndicator]:
        """Probe each open collection and fold the result into an indicator row."""
        indicators = []
        for item in collections:
            if cancel_event is not None and cancel_event.is_set():
                indicators.append(self._indicator(item, Level.WARN, "Probe cancelled."))
                continue

            found = self.probe([item.collection], aoi, time_window, geometry)[item.collection]
            if found:
                reason = f"Open catalog has items in {item.collection} for this AOI and period."
            else:
                reason = f"No items found in {item.collection} for this AOI and period."
            indicators.append(self._indicator(item, Level.OK if found else Level.NO, reason))
        return indicators

    @staticmethod
    def _indicator(item: OpenCollection, level: Level, reason: str) -> CoverageIndicator:
        return CoverageIndicator(
            name=item.title,
            family="Open archive",
            sensors_text=item.collection,
            level=level,
            reason=reason,
            note=PROBE_NOTE,
        )

    def search_scenes(
        self,
        collection: OpenCollection,
        aoi: BoundingBox,
        time_window: Optional[TimeWindow] = None,
        geometry: Optional[Dict[str, Any]] = None,
        limit: int = SCENE_SEARCH_LIMIT,
    ) -> List[CatalogScene]:
        """
        Fetch catalog items for one collection as scenes.

        Raises:
            FetchError: If the search fails
        """
        features = self.search(collection.collection, aoi, time_window, geometry, limit=limit)
        scenes = [
            CatalogScene(
                satellite=scene_satellite_name(f, collection.title),
                acquired_at=_scene_datetime(f),
                feature=f,
            )
            for f in features
        ]
        logger.info(f"Found {len(scenes)} scenes in {collection.collection}")
        return scenes
