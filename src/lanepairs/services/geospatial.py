"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Any, Tuple, Union

EARTH_RADIUS_MILES = 3958.7613
MILES_PER_DEGREE_LAT = 69.0

Coordinate = Union[Tuple[float, float], Any]


def _lat_lon(point: Coordinate) -> tuple[float, float]:
    if hasattr(point, "latitude") and hasattr(point, "longitude"):
        return point.latitude, point.longitude
    lat, lon = point
    return lat, lon


def _finite(*values: Any) -> bool:
    try:
        return all(math.isfinite(float(value)) for value in values)
    except (TypeError, ValueError):
        return False


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula.

    Returns ``math.inf`` when any component is missing or not finite, which
    callers treat as outside every radius.
    """

    if not _finite(lat1, lon1, lat2, lon2):
        return math.inf
    lat1, lon1, lat2, lon2 = float(lat1), float(lon1), float(lat2), float(lon2)

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push near-antipodal points just past 1.0
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_miles(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two ``(lat, lon)`` pairs or objects with coordinates."""

    lat1, lon1 = _lat_lon(a)
    lat2, lon2 = _lat_lon(b)
    return haversine_miles(lat1, lon1, lat2, lon2)


def within_radius(a: Coordinate, b: Coordinate, radius_miles: float) -> bool:
    return distance_miles(a, b) <= radius_miles


def bounding_box(lat: float, lon: float, radius_miles: float) -> tuple[float, float, float, float]:
    """Return ``(min_lat, max_lat, min_lon, max_lon)`` enclosing the radius around a point.

    The box is a pre-filter for directory queries; exact filtering still uses the
    haversine distance.
    """

    d_lat = radius_miles / MILES_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6:
        d_lon = 180.0
    else:
        d_lon = min(180.0, radius_miles / (MILES_PER_DEGREE_LAT * cos_lat))
    return lat - d_lat, lat + d_lat, lon - d_lon, lon + d_lon
