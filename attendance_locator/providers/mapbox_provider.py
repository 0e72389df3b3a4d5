"""
Mapbox Geocoding API (v5) reverse-geocoding provider.

Requires an access token; without one the provider reports itself
unavailable. Address parts come from the feature itself and its ``context``
hierarchy (neighborhood, locality/place, region, country, postcode).
"""
import logging
from typing import Any, Optional

from ..models.location import LocationComponents, LocationResult
from .base_provider import BaseGeocodingProvider, parse_point
from .parsing import classify_location_type, clean

logger = logging.getLogger(__name__)


class MapboxProvider(BaseGeocodingProvider):

    name = "mapbox"

    def __init__(
        self,
        circuit_breaker,
        access_token: Optional[str] = None,
        base_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places",
        language: str = "en",
        priority: int = 2,
        timeout_seconds: float = 8.0,
        min_interval_seconds: float = 0.1,
        **kwargs
    ):
        super().__init__(
            circuit_breaker,
            priority=priority,
            timeout_seconds=timeout_seconds,
            min_interval_seconds=min_interval_seconds,
            **kwargs
        )
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.language = language

        if not access_token:
            logger.warning("Mapbox access token not configured - provider unavailable")

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    async def _fetch(self, lat: float, lng: float) -> Any:
        return await self._get_json(
            f"{self.base_url}/{lng},{lat}.json",
            params={
                "access_token": self.access_token,
                "types": "address,poi",
                "language": self.language,
                "limit": 1,
            }
        )

    def parse_response(
        self, payload: Any, lat: float, lng: float, response_time_ms: float
    ) -> Optional[LocationResult]:
        features = payload.get("features") if isinstance(payload, dict) else None
        if not features:
            return None

        feature = features[0]
        properties = feature.get("properties") or {}
        place_types = feature.get("place_type") or []

        parts = {}
        for item in feature.get("context") or []:
            context_id = item.get("id") or ""
            text = clean(item.get("text"))
            if context_id.startswith("neighborhood"):
                parts["neighborhood"] = text
            elif context_id.startswith("locality"):
                parts["city"] = text
            elif context_id.startswith("place"):
                parts.setdefault("city", text)
            elif context_id.startswith("district"):
                parts["district"] = text
            elif context_id.startswith("region"):
                parts["state"] = text
            elif context_id.startswith("postcode"):
                parts["postal_code"] = text
            elif context_id.startswith("country"):
                parts["country"] = text
                short_code = clean(item.get("short_code"))
                parts["country_code"] = short_code.upper() if short_code else None

        if "address" in place_types:
            parts["street"] = clean(feature.get("text"))
            parts["house_number"] = clean(feature.get("address"))
        else:
            # POI features carry their street address as a property
            parts["street"] = clean(properties.get("address"))

        categories = (properties.get("category") or "").split(",")
        center = feature.get("center") or []

        return self.build_result(
            lat,
            lng,
            LocationComponents(**parts),
            formatted_name=feature.get("place_name") or feature.get("text"),
            location_type=classify_location_type([c.strip() for c in categories] + list(place_types)),
            response_time_ms=response_time_ms,
            resolved_point=parse_point(center[1], center[0]) if len(center) == 2 else None,
        )
