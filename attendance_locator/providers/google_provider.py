"""
Google Maps Geocoding API reverse-geocoding provider.

Requires an API key. The API reports failures in a ``status`` field of an
HTTP 200 body, so the status is checked before the results are parsed.
"""
import logging
from typing import Any, Optional

from ..exceptions import ProviderRateLimitError, ProviderResponseError
from ..models.location import LocationComponents, LocationResult
from .base_provider import BaseGeocodingProvider, parse_point
from .parsing import classify_location_type, clean

logger = logging.getLogger(__name__)

# Google address component type -> LocationComponents field, first match wins
COMPONENT_TYPES = (
    ("street_number", "house_number"),
    ("route", "street"),
    ("neighborhood", "neighborhood"),
    ("sublocality", "neighborhood"),
    ("locality", "city"),
    ("administrative_area_level_2", "district"),
    ("administrative_area_level_1", "state"),
    ("country", "country"),
    ("postal_code", "postal_code"),
)


class GoogleMapsProvider(BaseGeocodingProvider):

    name = "google"

    def __init__(
        self,
        circuit_breaker,
        api_key: Optional[str] = None,
        base_url: str = "https://maps.googleapis.com/maps/api/geocode/json",
        language: str = "en",
        priority: int = 3,
        timeout_seconds: float = 8.0,
        min_interval_seconds: float = 1.2,
        **kwargs
    ):
        super().__init__(
            circuit_breaker,
            priority=priority,
            timeout_seconds=timeout_seconds,
            min_interval_seconds=min_interval_seconds,
            **kwargs
        )
        self.api_key = api_key
        self.base_url = base_url
        self.language = language

        if not api_key:
            logger.warning("Google Maps API key not configured - provider unavailable")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _fetch(self, lat: float, lng: float) -> Any:
        data = await self._get_json(
            self.base_url,
            params={
                "latlng": f"{lat},{lng}",
                "key": self.api_key,
                "language": self.language,
                "result_type": "street_address|premise|subpremise|neighborhood|locality",
            }
        )

        status = data.get("status") if isinstance(data, dict) else None
        if status == "OVER_QUERY_LIMIT":
            raise ProviderRateLimitError(self.name)
        if status not in ("OK", "ZERO_RESULTS"):
            message = data.get("error_message", "") if isinstance(data, dict) else ""
            raise ProviderResponseError(f"google status {status}: {message}".strip(), self.name)
        return data

    def parse_response(
        self, payload: Any, lat: float, lng: float, response_time_ms: float
    ) -> Optional[LocationResult]:
        results = payload.get("results") if isinstance(payload, dict) else None
        if not results:
            return None

        best = results[0]
        parts = {}
        for component in best.get("address_components") or []:
            types = component.get("types") or []
            for google_type, field_name in COMPONENT_TYPES:
                if google_type in types:
                    parts.setdefault(field_name, clean(component.get("long_name")))
                    if google_type == "country":
                        parts.setdefault("country_code", clean(component.get("short_name")))
                    break

        location = (best.get("geometry") or {}).get("location") or {}

        return self.build_result(
            lat,
            lng,
            LocationComponents(**parts),
            formatted_name=best.get("formatted_address"),
            location_type=classify_location_type(best.get("types") or []),
            response_time_ms=response_time_ms,
            resolved_point=parse_point(location.get("lat"), location.get("lng")),
        )
