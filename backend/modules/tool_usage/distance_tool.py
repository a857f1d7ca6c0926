"""
modules/tool_usage/distance_tool.py
-------------------------------------
Great-circle maths used by the directions fallback and the food-place
proximity query.  No external HTTP calls are made.

Config knob (config.py):
  FALLBACK_MINUTES_PER_KM -- pace used for fallback durations (default: 12)
"""

from __future__ import annotations

import math

from schemas.route import GeoPoint

# ---------------------------------------------------------------------------
# Pure maths
# ---------------------------------------------------------------------------

_EARTH_RADIUS_KM = 6371.0
_KM_PER_DEGREE_LAT = 111.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (Haversine formula) in km."""
    r = _EARTH_RADIUS_KM
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return 2 * r * math.asin(math.sqrt(a))


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def fallback_minutes(km: float, minutes_per_km: float) -> int:
    """Whole-minute estimate at a fixed pace, rounded half-up like the client UI."""
    return int(math.floor(km * minutes_per_km + 0.5))


def bounding_box(center: GeoPoint, radius_km: float) -> tuple[float, float, float, float]:
    """
    Approximate lat/lon box around *center*: (min_lat, max_lat, min_lon, max_lon).

    One degree of latitude is taken as 111 km; longitude degrees shrink with
    cos(latitude).  Stores use it as the coarse pre-filter of the "food places
    within radius" query and then apply the exact distance_km() cut.
    """
    d_lat = radius_km / _KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(center.latitude))
    d_lon = radius_km / (_KM_PER_DEGREE_LAT * cos_lat) if cos_lat > 1e-12 else 180.0
    return (
        center.latitude - d_lat,
        center.latitude + d_lat,
        center.longitude - d_lon,
        center.longitude + d_lon,
    )


def in_box(point: GeoPoint, box: tuple[float, float, float, float]) -> bool:
    if point.latitude is None or point.longitude is None:
        return False
    min_lat, max_lat, min_lon, max_lon = box
    return min_lat <= point.latitude <= max_lat and min_lon <= point.longitude <= max_lon
