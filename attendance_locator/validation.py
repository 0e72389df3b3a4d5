"""Coordinate validation and display helpers."""
import math
from numbers import Real
from typing import Dict

from .models.location import Coordinates, LocationResult


def is_valid_coordinates(lat, lng) -> bool:
    """True iff both values are finite real numbers inside the WGS84 range."""
    for value in (lat, lng):
        # bool is an int subclass but never a coordinate
        if isinstance(value, bool) or not isinstance(value, Real):
            return False
        if not math.isfinite(value):
            return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def format_coordinates(lat, lng) -> str:
    """Fixed-point rendering used whenever no place name can be produced."""
    try:
        return f"{float(lat):.6f}, {float(lng):.6f}"
    except (TypeError, ValueError):
        return f"{lat}, {lng}"


def format_location_for_display(result: LocationResult) -> str:
    """Append a quality marker to the resolved name."""
    score = result.quality_score or 0
    if score > 80:
        indicator = "✓"
    elif score > 50:
        indicator = "~"
    else:
        indicator = "?"
    return f"{result.name} {indicator}"


def assess_location_accuracy(coords: Coordinates) -> Dict[str, str]:
    """Classify the GPS accuracy radius of a device fix."""
    accuracy = coords.accuracy if coords.accuracy is not None else math.inf

    if accuracy <= 5:
        return {"level": "excellent", "description": "Very precise location (±5m)"}
    if accuracy <= 20:
        return {"level": "good", "description": "Good location accuracy (±20m)"}
    if accuracy <= 100:
        return {"level": "fair", "description": "Fair location accuracy (±100m)"}
    return {"level": "poor", "description": "Poor location accuracy (>100m)"}
