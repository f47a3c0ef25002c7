"""
Geographic primitives shared by the coverage and pass estimation paths.

All functions are pure and work on WGS84 degrees. Bounding boxes are
assumed not to cross the antimeridian (west <= east); crossing boxes are
not unwrapped anywhere.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

# Latitude clamp used ahead of any cos(lat) division
MAX_ABS_LATITUDE = 89.999


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned bounding box in degrees.

    This is the unit used by every internal AOI predicate; richer polygon
    geometry is only forwarded to catalog searches.
    """

    west: float
    south: float
    east: float
    north: float

    def validate(self) -> "BoundingBox":
        """
        Check latitude ordering and coordinate ranges.

        Returns:
            self, for chaining

        Raises:
            ValueError: If the box is not a valid WGS84 box
        """
        for lat in (self.south, self.north):
            if not -90 <= lat <= 90:
                raise ValueError(f"Invalid latitude: {lat}. Must be between -90 and 90 degrees.")
        for lon in (self.west, self.east):
            if not -180 <= lon <= 180:
                raise ValueError(f"Invalid longitude: {lon}. Must be between -180 and 180 degrees.")
        if self.south > self.north:
            raise ValueError(f"South edge ({self.south}) is north of north edge ({self.north})")
        if self.west > self.east:
            # Antimeridian crossing is a known limitation, not an error
            logger.warning(
                f"Bounding box west ({self.west}) > east ({self.east}); "
                f"antimeridian-crossing boxes are not unwrapped"
            )
        return self

    def as_list(self) -> List[float]:
        """Return [west, south, east, north], the catalog bbox order."""
        return [self.west, self.south, self.east, self.north]

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> "BoundingBox":
        """Create from a [west, south, east, north] sequence."""
        if len(values) != 4:
            raise ValueError(f"Bounding box needs 4 values (west, south, east, north), got {len(values)}")
        west, south, east, north = (float(v) for v in values)
        return cls(west=west, south=south, east=east, north=north)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoundingBox":
        return cls(
            west=float(data["west"]),
            south=float(data["south"]),
            east=float(data["east"]),
            north=float(data["north"]),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"west": self.west, "south": self.south, "east": self.east, "north": self.north}


def bbox_intersects(a: BoundingBox, b: BoundingBox) -> bool:
    """
    Test whether two bounding boxes overlap.

    Boxes that only touch along an edge count as intersecting. Longitudes
    are compared directly, without antimeridian unwrapping.
    """
    return not (
        b.west > a.east
        or b.east < a.west
        or b.south > a.north
        or b.north < a.south
    )


def bbox_center(b: BoundingBox) -> Tuple[float, float]:
    """
    Arithmetic midpoint of a bounding box.

    Returns:
        Tuple of (latitude, longitude)
    """
    return ((b.south + b.north) / 2.0, (b.west + b.east) / 2.0)


def normalize_longitude(lon: float) -> float:
    """Fold a longitude into [-180, 180]."""
    if -180.0 <= lon <= 180.0:
        return lon
    folded = ((lon + 180.0) % 360.0) - 180.0
    # 180 and -180 are the same meridian; keep the sign of the input
    if folded == -180.0 and lon > 0:
        return 180.0
    return folded


def clamp_latitude(lat: float) -> float:
    """Clamp a latitude away from the poles."""
    return max(-MAX_ABS_LATITUDE, min(MAX_ABS_LATITUDE, lat))


def _iter_positions(coordinates: Any) -> Iterable[Tuple[float, float]]:
    """Yield (lon, lat) pairs from arbitrarily nested GeoJSON coordinates."""
    if not isinstance(coordinates, (list, tuple)) or not coordinates:
        return
    if isinstance(coordinates[0], (int, float)):
        if len(coordinates) >= 2:
            yield float(coordinates[0]), float(coordinates[1])
        return
    for item in coordinates:
        yield from _iter_positions(item)


def _iter_geometry_positions(geojson: Dict[str, Any]) -> Iterable[Tuple[float, float]]:
    if not isinstance(geojson, dict):
        raise ValueError(f"GeoJSON member must be an object, got {type(geojson).__name__}")
    geo_type = geojson.get("type")
    if geo_type == "FeatureCollection":
        for feature in geojson.get("features") or []:
            yield from _iter_geometry_positions(feature)
    elif geo_type == "Feature":
        geometry = geojson.get("geometry")
        if geometry:
            yield from _iter_geometry_positions(geometry)
    elif geo_type == "GeometryCollection":
        for geometry in geojson.get("geometries") or []:
            yield from _iter_geometry_positions(geometry)
    else:
        yield from _iter_positions(geojson.get("coordinates"))


def bbox_from_geometry(geojson: Dict[str, Any]) -> BoundingBox:
    """
    Extract the bounding box of a GeoJSON object.

    Accepts bare geometries (Polygon, MultiPolygon, ...), Features and
    FeatureCollections.

    Raises:
        ValueError: If the object is not GeoJSON-shaped or contains no
            coordinates
    """
    positions = list(_iter_geometry_positions(geojson))
    if not positions:
        raise ValueError(f"GeoJSON object of type {geojson.get('type')!r} has no coordinates")

    lons = [lon for lon, _ in positions]
    lats = [lat for _, lat in positions]
    return BoundingBox(west=min(lons), south=min(lats), east=max(lons), north=max(lats))
