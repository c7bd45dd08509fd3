"""OpenRouteService directions client.

Buyers ask for the walking (or driving, cycling...) distance and
duration to a seller. The route is fetched from OpenRouteService's
``/directions/<profile>`` endpoint as GeoJSON; coordinates go out as
``[lng, lat]`` and come back swapped to ``(lat, lng)`` for the map.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from .errors import NotFoundError, RateLimitError, ServiceUnavailableError, ValidationError
from .geo import Coordinates, is_valid_coordinates
from .util.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openrouteservice.org/v2"
DEFAULT_PROFILE = "foot-walking"

ROUTING_PROFILES = {
    "driving": "driving-car",
    "walking": "foot-walking",
    "cycling": "cycling-regular",
    "heavy_vehicle": "driving-hgv",
    "wheelchair": "wheelchair",
}

NO_API_KEY = "OpenRouteService API key is required"
RATE_LIMIT_EXCEEDED = "Rate limit exceeded. Please try again later."
INVALID_COORDINATES = "Invalid coordinates provided"
ROUTE_NOT_FOUND = "No route found between the specified points"
NETWORK_ERROR = "Network error. Please check your connection."
ROUTING_ERROR = "Unable to calculate route. Please try again."


@dataclass
class Route:
    distance_km: float
    duration_min: float
    coordinates: list[tuple[float, float]] = field(default_factory=list)
    profile: str = DEFAULT_PROFILE

    def to_dict(self) -> dict:
        return {
            "distance_km": round(self.distance_km, 3),
            "duration_min": round(self.duration_min, 1),
            "profile": self.profile,
            "coordinates": [list(point) for point in self.coordinates],
        }


class DirectionsClient:
    """Thin synchronous wrapper around the OpenRouteService directions API."""

    def __init__(self, api_key: Optional[str], base_url: str = DEFAULT_BASE_URL,
                 profile: str = DEFAULT_PROFILE, timeout: float = 10.0,
                 rate_limiter: Optional[RateLimiter] = None,
                 transport: Optional[httpx.BaseTransport] = None) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.rate_limiter = rate_limiter
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def route(self, start: Coordinates, end: Coordinates, profile: Optional[str] = None) -> Route:
        """Return the route from ``start`` to ``end``.

        Raises ``ServiceUnavailableError`` when unconfigured or the
        provider is unreachable, ``ValidationError`` for bad input,
        ``RateLimitError`` when over quota and ``NotFoundError`` when the
        provider finds no route.
        """
        if not self.api_key:
            raise ServiceUnavailableError(NO_API_KEY)
        profile = profile or self.profile
        if profile not in ROUTING_PROFILES.values():
            raise ValidationError(
                f"Unknown routing profile '{profile}'.", fields={"profile": profile}
            )
        for point in (start, end):
            if not is_valid_coordinates(point[0], point[1]):
                raise ValidationError(INVALID_COORDINATES, fields={"coordinates": list(point)})
        if self.rate_limiter is not None and not self.rate_limiter.is_allowed("directions"):
            raise RateLimitError(RATE_LIMIT_EXCEEDED, retry_after=self.rate_limiter.retry_after("directions"))

        body = {
            "coordinates": [[start[1], start[0]], [end[1], end[0]]],
            "format": "geojson",
        }
        headers = {
            "Accept": "application/json, application/geo+json, application/gpx+xml, img/png; charset=utf-8",
            "Authorization": self.api_key,
            "Content-Type": "application/json; charset=utf-8",
        }
        url = f"{self.base_url}/directions/{profile}/geojson"
        try:
            response = self._http.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Directions request failed: %s", exc)
            raise ServiceUnavailableError(NETWORK_ERROR) from exc

        if response.status_code == 429:
            raise RateLimitError(RATE_LIMIT_EXCEEDED)
        if response.status_code == 404:
            raise NotFoundError(ROUTE_NOT_FOUND)
        if response.status_code >= 400:
            logger.warning("Directions provider returned HTTP %s: %s", response.status_code, response.text[:200])
            raise ServiceUnavailableError(ROUTING_ERROR)

        return self._parse(response.json(), profile)

    @staticmethod
    def _parse(payload: dict, profile: str) -> Route:
        features = payload.get("features") or []
        if not features:
            raise NotFoundError(ROUTE_NOT_FOUND)
        feature = features[0]
        props = feature.get("properties") or {}
        summary = props.get("summary") or {}
        segments = props.get("segments") or []
        if segments:
            distance_m = sum(segment.get("distance", 0) for segment in segments)
            duration_s = sum(segment.get("duration", 0) for segment in segments)
        else:
            distance_m = summary.get("distance", 0)
            duration_s = summary.get("duration", 0)
        coords = (feature.get("geometry") or {}).get("coordinates") or []
        return Route(
            distance_km=distance_m / 1000,
            duration_min=duration_s / 60,
            coordinates=[(point[1], point[0]) for point in coords],
            profile=profile,
        )
