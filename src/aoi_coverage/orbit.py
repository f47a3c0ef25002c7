"""
Satellite orbit propagation from TLE data.

Thin adapter over the orbit-predictor library (SGP4): a predictor is
built once per satellite, then evaluated at each sample timestamp.
"""

from datetime import datetime, timezone
from typing import NamedTuple, Optional
import logging

from orbit_predictor.sources import get_predictor_from_tle_lines  # type: ignore[import-untyped]

from .errors import ElementParseError
from .geo import clamp_latitude, normalize_longitude
from .tle import OrbitalElements, TLELines

logger = logging.getLogger(__name__)


class GeodeticPoint(NamedTuple):
    """Sub-satellite point in degrees."""
    latitude: float
    longitude: float
    altitude_km: float


def _as_naive_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is not None:
        return timestamp.astimezone(timezone.utc).replace(tzinfo=None)
    return timestamp


class SatelliteOrbit:
    """
    TLE-based orbit propagation for one satellite.

    Construction parses the element lines; evaluation never raises and
    returns None for timestamps the propagator cannot handle.
    """

    def __init__(self, elements: OrbitalElements) -> None:
        """
        Initialize satellite orbit from an element set.

        Args:
            elements: Named TLE pair

        Raises:
            ElementParseError: If the propagator rejects the element lines
        """
        self.elements = elements
        self.satellite_name = elements.name

        try:
            lines = TLELines(line1=elements.line1, line2=elements.line2)
            self.predictor = get_predictor_from_tle_lines((lines.line1, lines.line2))
        except Exception as e:
            logger.error(f"Failed to initialize orbit for {elements.name}: {e}")
            raise ElementParseError(f"Invalid TLE data for satellite {elements.name}: {e}") from e

        logger.debug(f"Loaded orbit for satellite: {elements.name}")

    def propagate(self, timestamp: datetime) -> Optional[GeodeticPoint]:
        """
        Sub-satellite point at a timestamp.

        Args:
            timestamp: UTC datetime (naive UTC or timezone-aware)

        Returns:
            GeodeticPoint in degrees, or None when no solution exists
        """
        try:
            position = self.predictor.get_position(_as_naive_utc(timestamp))
            lat, lon, alt = position.position_llh
        except Exception as e:
            logger.debug(f"No position for {self.satellite_name} at {timestamp}: {e}")
            return None

        if alt <= 0:
            # Decayed or far outside the element set's validity
            return None

        return GeodeticPoint(clamp_latitude(lat), normalize_longitude(lon), alt)
