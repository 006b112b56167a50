"""
Geographic helpers for spatial aggregation.

Distances use the haversine great-circle formula; grid binning uses the
flat-earth metres-per-degree approximation.
"""

import math
from typing import Iterable, Tuple

from heatcore.utils.constants import EARTH_RADIUS_M, MAX_GRID_LATITUDE, METERS_PER_DEGREE_LAT


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters"""
    rlat1, rlon1, rlat2, rlon2 = map(math.radians, (lat1, lon1, lat2, lon2))
    dlat, dlon = rlat2 - rlat1, rlon2 - rlon1
    a = math.sin(dlat/2)**2 + math.cos(rlat1)*math.cos(rlat2)*math.sin(dlon/2)**2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def lat_delta_deg(meters: float) -> float:
    """Latitude span in degrees covering ``meters``."""
    return meters / METERS_PER_DEGREE_LAT


def lng_delta_deg(meters: float, latitude: float) -> float:
    """
    Longitude span in degrees covering ``meters`` at ``latitude``.

    Latitude is capped just short of the poles so the span stays finite.
    """
    lat = max(-MAX_GRID_LATITUDE, min(MAX_GRID_LATITUDE, latitude))
    return meters / (METERS_PER_DEGREE_LAT * math.cos(lat * math.pi / 180.0))


def wrap_longitude(lng: float) -> float:
    """Fold a longitude into [-180, 180]; in-range values are returned as is."""
    if -180.0 <= lng <= 180.0:
        return lng
    return (lng + 180.0) % 360.0 - 180.0


def unwrap_longitude(lng: float, reference: float) -> float:
    """Shift ``lng`` by whole turns so it lies within 180 degrees of ``reference``."""
    return lng + 360.0 * round((reference - lng) / 360.0)


def bounds(points: Iterable[Tuple[float, float]]) -> Tuple[float, float, float, float]:
    """Return (south, west, north, east) over (lat, lng) pairs."""
    lats, lngs = [], []
    for lat, lng in points:
        lats.append(lat)
        lngs.append(lng)
    if not lats:
        return 0.0, 0.0, 0.0, 0.0
    return min(lats), min(lngs), max(lats), max(lngs)
