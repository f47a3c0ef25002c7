"""
Simplified sensor swath hit-test.

The swath is modelled as an inflation of the AOI bounding box by the
swath half-width, converted to degrees at the sample latitude. This is a
reference-only heuristic, not a footprint intersection.
"""

import math

import numpy as np

from .geo import BoundingBox

# Kilometres per degree of latitude (spherical approximation)
KM_PER_DEGREE = 111.0

# Floor on cos(latitude) so the longitude delta stays finite near the poles
MIN_COS_LAT = 0.2


def swath_deltas(
    lat: float,
    swath_km: float,
    km_per_degree: float = KM_PER_DEGREE,
    min_cos_lat: float = MIN_COS_LAT,
) -> tuple:
    """
    Convert a swath half-width to degree deltas at a latitude.

    Returns:
        Tuple of (dlat_deg, dlon_deg)
    """
    dlat = swath_km / km_per_degree
    dlon = swath_km / (km_per_degree * max(min_cos_lat, math.cos(math.radians(lat))))
    return dlat, dlon


def approx_hit(
    lat: float,
    lon: float,
    aoi: BoundingBox,
    swath_km: float,
    km_per_degree: float = KM_PER_DEGREE,
    min_cos_lat: float = MIN_COS_LAT,
) -> bool:
    """
    Test whether a sub-satellite point's swath reaches the AOI.

    Args:
        lat, lon: Sub-satellite point (degrees)
        aoi: AOI bounding box
        swath_km: Swath half-width in kilometres

    Returns:
        True if the point lies inside the AOI inflated by the swath
    """
    dlat, dlon = swath_deltas(lat, swath_km, km_per_degree, min_cos_lat)
    return (
        aoi.south - dlat <= lat <= aoi.north + dlat
        and aoi.west - dlon <= lon <= aoi.east + dlon
    )


def approx_hits(
    lats: np.ndarray,
    lons: np.ndarray,
    aoi: BoundingBox,
    swath_km: float,
    km_per_degree: float = KM_PER_DEGREE,
    min_cos_lat: float = MIN_COS_LAT,
) -> np.ndarray:
    """Vectorized approx_hit over arrays of sample points."""
    lats = np.asarray(lats, dtype=float)
    lons = np.asarray(lons, dtype=float)

    dlat = swath_km / km_per_degree
    dlon = swath_km / (km_per_degree * np.maximum(min_cos_lat, np.cos(np.radians(lats))))

    in_lat = (lats >= aoi.south - dlat) & (lats <= aoi.north + dlat)
    in_lon = (lons >= aoi.west - dlon) & (lons <= aoi.east + dlon)
    return in_lat & in_lon
