"""
API Models for the location endpoints
Pydantic models for type-safe location API responses
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from .location import LocationResult


class CoordinatesModel(BaseModel):
    lat: float = Field(..., description="Latitude in WGS84 degrees")
    lng: float = Field(..., description="Longitude in WGS84 degrees")
    accuracy: Optional[float] = Field(None, description="GPS accuracy radius in meters")


class LocationComponentsModel(BaseModel):
    """Structured address parts; omitted parts are unknown"""
    house_number: Optional[str] = None
    street: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None


class LocationResponse(BaseModel):
    """Full resolved location"""
    name: str = Field(..., description="Human-readable place name")
    display_name: str = Field(..., description="Name followed by a quality marker")
    confidence: str = Field(..., description="high, medium or low")
    source: str = Field(..., description="Provider name, cache or fallback")
    coordinates: CoordinatesModel = Field(..., description="The query coordinates")
    components: LocationComponentsModel = Field(default_factory=LocationComponentsModel)
    quality_score: Optional[int] = Field(None, ge=0, le=100, description="0-100 ranking score")
    location_type: str = Field("unknown", description="residential, commercial, industrial, landmark or unknown")
    distance_m: Optional[float] = Field(None, description="Distance from query to matched feature")
    response_time_ms: Optional[float] = Field(None, description="Provider response latency")

    @classmethod
    def from_result(cls, result: LocationResult, display_name: str) -> "LocationResponse":
        return cls(display_name=display_name, **result.to_dict())


class LocationNameResponse(BaseModel):
    name: str = Field(..., description="Resolved name, or fixed-point coordinates for invalid input")
    latitude: float
    longitude: float


class SuggestionsResponse(BaseModel):
    suggestions: List[LocationResponse] = Field(..., description="Provider results, best first")
    count: int = Field(..., description="Number of suggestions")


class ProviderHealthModel(BaseModel):
    name: str
    priority: int
    configured: bool
    available: bool
    health_score: int = Field(..., ge=0, le=100)
    consecutive_failures: int = Field(..., ge=0)


class ProviderHealthResponse(BaseModel):
    providers: List[ProviderHealthModel]
    available_count: int = Field(..., description="Providers currently eligible, fallback included")


class CacheStatsResponse(BaseModel):
    tiers: Dict[str, Dict[str, Any]] = Field(..., description="Per-tier size, capacity and counters")
