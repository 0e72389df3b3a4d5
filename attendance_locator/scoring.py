"""
Quality scoring for reverse-geocoding results.

The score is a weighted sum of four terms, each on a 0-100 scale:

    30%  provider reliability prior
    40%  address completeness
    20%  distance between the matched feature and the query point
    10%  provider response latency

Terms without data (no distance, no latency) contribute nothing. The function
is pure: it reads only its arguments and the constant tables below.
"""
import math
from typing import Dict, Optional

from .models.location import Coordinates, LocationResult

EARTH_RADIUS_M = 6371000.0

PROVIDER_RELIABILITY: Dict[str, int] = {
    "cache": 95,
    "google": 90,
    "mapbox": 85,
    "here": 80,
    "nominatim": 75,
    "opencage": 70,
    "fallback": 10,
}
DEFAULT_RELIABILITY = 50

COMPONENT_POINTS: Dict[str, int] = {
    "house_number": 20,
    "street": 25,
    "neighborhood": 15,
    "city": 20,
    "state": 10,
    "country": 10,
}

RELIABILITY_WEIGHT = 0.3
COMPLETENESS_WEIGHT = 0.4
DISTANCE_WEIGHT = 0.2
LATENCY_WEIGHT = 0.1

# Linear falloff: 0 points at or beyond these values
MAX_SCORED_DISTANCE_M = 1000.0
MAX_SCORED_LATENCY_MS = 5000.0


def calculate_distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle (haversine) distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (math.sin(d_phi / 2) ** 2
         + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def completeness_points(result: LocationResult) -> int:
    components = result.components
    return sum(
        points for attr, points in COMPONENT_POINTS.items()
        if getattr(components, attr, None)
    )


def _distance_for(result: LocationResult, origin: Coordinates) -> Optional[float]:
    if result.distance_m is not None:
        return result.distance_m
    if result.resolved_coordinates is not None:
        resolved = result.resolved_coordinates
        return calculate_distance_m(origin.lat, origin.lng, resolved.lat, resolved.lng)
    return None


def score_location(result: LocationResult, origin: Coordinates) -> int:
    """Combine reliability, completeness, distance and latency into 0..100."""
    score = PROVIDER_RELIABILITY.get(result.source, DEFAULT_RELIABILITY) * RELIABILITY_WEIGHT
    score += completeness_points(result) * COMPLETENESS_WEIGHT

    distance = _distance_for(result, origin)
    if distance is not None:
        distance_score = max(0.0, 100.0 * (1 - distance / MAX_SCORED_DISTANCE_M))
        score += distance_score * DISTANCE_WEIGHT

    if result.response_time_ms is not None:
        latency_score = max(0.0, 100.0 * (1 - result.response_time_ms / MAX_SCORED_LATENCY_MS))
        score += latency_score * LATENCY_WEIGHT

    return int(round(min(100.0, max(0.0, score))))
