"""Geographic helpers used by the nearby-seller search and directions.

Distances are great-circle distances computed with the haversine
formula on a spherical Earth of radius 6371 km.
"""
from __future__ import annotations

import math
from typing import NamedTuple

EARTH_RADIUS_KM = 6371.0


class Coordinates(NamedTuple):
    latitude: float
    longitude: float


DEFAULT_COORDINATES = {
    "new_york": Coordinates(40.7128, -74.0060),
    "los_angeles": Coordinates(34.0522, -118.2437),
    "chicago": Coordinates(41.8781, -87.6298),
    "houston": Coordinates(29.7604, -95.3698),
    "phoenix": Coordinates(33.4484, -112.0740),
    "philadelphia": Coordinates(39.9526, -75.1652),
    "san_antonio": Coordinates(29.4241, -98.4936),
    "san_diego": Coordinates(32.7157, -117.1611),
    "dallas": Coordinates(32.7767, -96.7970),
    "san_jose": Coordinates(37.3382, -121.8863),
    "default": Coordinates(40.7128, -74.0060),
}


def is_valid_coordinates(latitude, longitude) -> bool:
    """Return True for finite numbers inside the usual lat/lng ranges."""
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        return False
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(latitude: float, longitude: float, radius_km: float) -> tuple[float, float, float, float]:
    """Return ``(min_lat, max_lat, min_lng, max_lng)`` enclosing the radius.

    The box is a cheap pre-filter for a database query; callers still
    apply the exact haversine distance afterwards. Near the poles the
    longitude span covers the whole circle.
    """
    angular = radius_km / EARTH_RADIUS_KM
    d_lat = math.degrees(angular)
    min_lat = max(-90.0, latitude - d_lat)
    max_lat = min(90.0, latitude + d_lat)
    if max_lat >= 90.0 or min_lat <= -90.0:
        return min_lat, max_lat, -180.0, 180.0
    # widest longitude offset of the circle, reached away from the centre's parallel
    ratio = math.sin(angular) / math.cos(math.radians(latitude))
    if ratio >= 1.0:
        return min_lat, max_lat, -180.0, 180.0
    d_lng = math.degrees(math.asin(ratio))
    return min_lat, max_lat, longitude - d_lng, longitude + d_lng


def default_coordinates(address: str | None = None) -> Coordinates:
    """Guess coordinates from a city name in the address.

    Used when a seller signs up without a map pin. Unknown addresses get
    the default city.
    """
    if not address:
        return DEFAULT_COORDINATES["default"]
    lowered = address.lower()
    for city, coords in DEFAULT_COORDINATES.items():
        if city != "default" and city.replace("_", " ") in lowered:
            return coords
    return DEFAULT_COORDINATES["default"]


def format_coordinates(latitude: float, longitude: float) -> str:
    return f"{latitude:.6f}, {longitude:.6f}"
