"""
OpenStreetMap Nominatim reverse-geocoding provider.

Public instance usage policy allows one request per second and requires an
identifying User-Agent. No credential is needed.
"""
import logging
from typing import Any, Optional

from ..models.location import LocationComponents, LocationResult
from .base_provider import BaseGeocodingProvider, parse_point
from .parsing import classify_location_type, clean

logger = logging.getLogger(__name__)


class NominatimProvider(BaseGeocodingProvider):

    name = "nominatim"

    def __init__(
        self,
        circuit_breaker,
        base_url: str = "https://nominatim.openstreetmap.org/reverse",
        user_agent: str = "AttendanceTracker/2.0 (Location Services)",
        accept_language: str = "en,id;q=0.9",
        zoom: int = 18,
        priority: int = 1,
        timeout_seconds: float = 10.0,
        min_interval_seconds: float = 1.0,
        **kwargs
    ):
        super().__init__(
            circuit_breaker,
            priority=priority,
            timeout_seconds=timeout_seconds,
            min_interval_seconds=min_interval_seconds,
            **kwargs
        )
        self.base_url = base_url
        self.user_agent = user_agent
        self.accept_language = accept_language
        self.zoom = zoom

    async def _fetch(self, lat: float, lng: float) -> Any:
        return await self._get_json(
            self.base_url,
            params={
                "format": "json",
                "lat": lat,
                "lon": lng,
                "zoom": self.zoom,
                "addressdetails": 1,
                "extratags": 1,
                "namedetails": 1,
            },
            headers={
                "User-Agent": self.user_agent,
                "Accept-Language": self.accept_language,
            }
        )

    def parse_response(
        self, payload: Any, lat: float, lng: float, response_time_ms: float
    ) -> Optional[LocationResult]:
        if not isinstance(payload, dict) or payload.get("error") or not payload.get("display_name"):
            return None

        address = payload.get("address") or {}
        country_code = clean(address.get("country_code"))

        components = LocationComponents(
            house_number=clean(address.get("house_number")),
            street=clean(address.get("road") or address.get("pedestrian") or address.get("footway")),
            neighborhood=clean(
                address.get("neighbourhood") or address.get("suburb") or address.get("quarter")
            ),
            city=clean(
                address.get("city") or address.get("town")
                or address.get("village") or address.get("municipality")
            ),
            district=clean(address.get("county") or address.get("district")),
            state=clean(address.get("state") or address.get("province")),
            country=clean(address.get("country")),
            postal_code=clean(address.get("postcode")),
            country_code=country_code.upper() if country_code else None,
        )

        return self.build_result(
            lat,
            lng,
            components,
            formatted_name=payload.get("display_name"),
            location_type=classify_location_type([payload.get("type"), payload.get("category")]),
            response_time_ms=response_time_ms,
            resolved_point=parse_point(payload.get("lat"), payload.get("lon")),
        )
