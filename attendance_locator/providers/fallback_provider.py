"""
Coordinates-only provider of last resort.

Performs no network I/O and cannot fail, so consensus resolution always has
something to return. The synthesized name carries the rounded coordinates and
a coarse region label from a small bounding-box table.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from ..models.location import (
    Confidence,
    Coordinates,
    LocationResult,
    LocationSource,
    LocationType,
)

logger = logging.getLogger(__name__)

FALLBACK_QUALITY_SCORE = 15
UNKNOWN_REGION = "Unknown Region"

# (region, min_lat, max_lat, min_lng, max_lng); smaller boxes first so they
# win over the larger regions that contain them
REGION_BOUNDS: Tuple[Tuple[str, float, float, float, float], ...] = (
    ("Singapore/Malaysia", 1.0, 7.0, 103.0, 105.0),
    ("Indonesia", -11.0, 6.0, 95.0, 141.0),
)


def find_region(lat: float, lng: float) -> str:
    for region, min_lat, max_lat, min_lng, max_lng in REGION_BOUNDS:
        if min_lat <= lat <= max_lat and min_lng <= lng <= max_lng:
            return region
    return UNKNOWN_REGION


def approximate_location_name(lat: float, lng: float) -> str:
    lat_dir = "N" if lat >= 0 else "S"
    lng_dir = "E" if lng >= 0 else "W"
    return (
        f"Approximate Location: {abs(lat):.4f}°{lat_dir}, "
        f"{abs(lng):.4f}°{lng_dir} ({find_region(lat, lng)})"
    )


class FallbackProvider:
    """Always-available provider that synthesizes an approximate name."""

    name = LocationSource.FALLBACK
    requires_network = False

    def __init__(self, priority: int = 999):
        self.priority = priority
        self.stats = {"total_requests": 0}

    @property
    def is_configured(self) -> bool:
        return True

    @property
    def is_available(self) -> bool:
        return True

    @property
    def health_score(self) -> int:
        return 100

    async def resolve(self, lat: float, lng: float) -> Optional[LocationResult]:
        return self.build(lat, lng)

    def build(self, lat: float, lng: float) -> LocationResult:
        """Synchronous variant used when a timeout leaves no time to await."""
        self.stats["total_requests"] += 1
        logger.info(f"Using fallback location for ({lat}, {lng})")
        return LocationResult(
            name=approximate_location_name(lat, lng),
            confidence=Confidence.LOW,
            source=LocationSource.FALLBACK,
            coordinates=Coordinates(lat=lat, lng=lng),
            quality_score=FALLBACK_QUALITY_SCORE,
            location_type=LocationType.UNKNOWN,
            distance_m=0.0,
            response_time_ms=1.0,
        )

    async def close(self) -> None:
        pass

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "priority": self.priority,
            "configured": True,
            **self.stats,
        }
