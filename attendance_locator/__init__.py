"""Multi-provider reverse geocoding for attendance check-ins."""

from .exceptions import InvalidCoordinatesError, LocationServiceError
from .location_service import LocationService
from .models.location import (
    Confidence,
    Coordinates,
    LocationComponents,
    LocationResult,
    LocationSource,
    LocationType,
)
from .scoring import score_location
from .validation import (
    assess_location_accuracy,
    format_coordinates,
    format_location_for_display,
    is_valid_coordinates,
)

__all__ = [
    "Confidence",
    "Coordinates",
    "InvalidCoordinatesError",
    "LocationComponents",
    "LocationResult",
    "LocationService",
    "LocationServiceError",
    "LocationSource",
    "LocationType",
    "assess_location_accuracy",
    "format_coordinates",
    "format_location_for_display",
    "is_valid_coordinates",
    "score_location",
]
