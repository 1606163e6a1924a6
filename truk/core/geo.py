"""
Geographic helpers shared by offers, housing and mutual aid.
"""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0

# One degree of latitude is roughly 111 km
KM_PER_DEGREE = 111.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def within_radius(
    origin_lat: float,
    origin_lng: float,
    lat: float | None,
    lng: float | None,
    radius_km: float,
) -> bool:
    """True when (lat, lng) is set and lies within ``radius_km`` of the origin."""
    if lat is None or lng is None:
        return False
    return haversine_km(origin_lat, origin_lng, lat, lng) <= radius_km


def bounding_box(lat: float, lng: float, radius_km: float) -> tuple[float, float, float, float]:
    """
    Coarse box around a point, used as a SQL pre-filter.

    Longitude degrees shrink with cos(lat), so the box widens towards the
    poles to stay a superset of the circle. Returns
    (min_lat, max_lat, min_lng, max_lng).
    """
    delta_lat = radius_km / KM_PER_DEGREE
    delta_lng = min(radius_km / (KM_PER_DEGREE * max(math.cos(math.radians(lat)), 1e-6)), 180.0)
    return lat - delta_lat, lat + delta_lat, lng - delta_lng, lng + delta_lng
