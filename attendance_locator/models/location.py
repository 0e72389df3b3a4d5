"""
Location value objects shared by providers, caches and the service facade.

A LocationResult always carries the original query coordinates; where a
provider reports the position of the matched feature it is kept separately in
``resolved_coordinates`` and only used for the distance term of the scorer.
"""
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class LocationType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"
    LANDMARK = "landmark"
    UNKNOWN = "unknown"


class LocationSource:
    """Provenance tags that are not provider names."""
    CACHE = "cache"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Coordinates:
    """A device fix in WGS84 degrees, optionally with GPS metadata."""
    lat: float
    lng: float
    accuracy: Optional[float] = None  # meters
    altitude: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None


@dataclass(frozen=True)
class LocationComponents:
    """Structured address parts. A missing part means unknown."""
    house_number: Optional[str] = None
    street: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(asdict(self).values())


@dataclass(frozen=True)
class LocationResult:
    """Resolved location for a coordinate pair."""
    name: str
    confidence: Confidence
    source: str
    coordinates: Coordinates
    quality_score: Optional[int] = None
    components: LocationComponents = field(default_factory=LocationComponents)
    location_type: LocationType = LocationType.UNKNOWN
    distance_m: Optional[float] = None
    response_time_ms: Optional[float] = None
    resolved_coordinates: Optional[Coordinates] = None

    def with_source(self, source: str) -> "LocationResult":
        return replace(self, source=source)

    def with_quality_score(self, quality_score: int) -> "LocationResult":
        return replace(self, quality_score=quality_score)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (useful for JSON serialisation)."""
        components = {k: v for k, v in asdict(self.components).items() if v is not None}
        data: Dict[str, Any] = {
            "name": self.name,
            "confidence": self.confidence.value,
            "source": self.source,
            "coordinates": {"lat": self.coordinates.lat, "lng": self.coordinates.lng},
            "components": components,
            "quality_score": self.quality_score,
            "location_type": self.location_type.value,
            "distance_m": self.distance_m,
            "response_time_ms": self.response_time_ms,
        }
        if self.coordinates.accuracy is not None:
            data["coordinates"]["accuracy"] = self.coordinates.accuracy
        return data
