"""
Base reverse-geocoding provider.

Every provider shares one contract: ``resolve(lat, lng)`` returns a scored
LocationResult or None and never raises. Subclasses only describe how to
fetch the upstream payload and how to parse it; the base class owns rate
limiting, timeouts, retries, health bookkeeping and scoring.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import httpx

from ..circuit_breakers.health_circuit_breaker import HealthScoreCircuitBreaker
from ..error_handling import retry_with_backoff
from ..exceptions import (
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderTransientError,
)
from ..logging_config import get_provider_logger
from ..models.location import Coordinates, LocationComponents, LocationResult, LocationType
from ..scoring import calculate_distance_m, score_location
from ..utils.rate_limiter import MinIntervalRateLimiter
from ..validation import format_coordinates
from .parsing import build_location_name, confidence_from_components

logger = logging.getLogger(__name__)


class BaseGeocodingProvider(ABC):
    """Abstract base class for upstream reverse-geocoding services."""

    name: str = "unknown"
    requires_network: bool = True

    def __init__(
        self,
        circuit_breaker: HealthScoreCircuitBreaker,
        priority: int = 50,
        timeout_seconds: float = 10.0,
        min_interval_seconds: float = 0.0,
        client: Optional[httpx.AsyncClient] = None,
        retry_attempts: int = 0,
        retry_base_delay: float = 0.5
    ):
        self.circuit_breaker = circuit_breaker
        self.priority = priority
        self.timeout_seconds = timeout_seconds
        self.rate_limiter = MinIntervalRateLimiter(min_interval_seconds)
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self._client = client

        self.stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "timeouts": 0,
        }
        self.circuit_breaker.register(self.name)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialized HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._client

    async def close(self) -> None:
        """Close HTTP client resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_configured(self) -> bool:
        """False when a required credential is missing."""
        return True

    @property
    def is_available(self) -> bool:
        return self.is_configured and self.circuit_breaker.is_available(self.name)

    @property
    def health_score(self) -> int:
        return self.circuit_breaker.health_score(self.name)

    async def resolve(self, lat: float, lng: float) -> Optional[LocationResult]:
        """
        Reverse-geocode one coordinate pair.

        Failures (timeout, HTTP error, malformed or empty payload) cost the
        provider health and yield None. Success earns health back.
        """
        if not self.is_configured:
            logger.debug(f"{self.name} not configured, skipping ({lat}, {lng})")
            return None

        self.stats["total_requests"] += 1
        log = get_provider_logger(self.name, lat, lng)

        async def attempt() -> Optional[LocationResult]:
            return await self._attempt(lat, lng)
        attempt.__name__ = f"{self.name}.resolve"

        try:
            result = await retry_with_backoff(
                attempt,
                max_retries=self.retry_attempts,
                base_delay=self.retry_base_delay,
                exceptions=(ProviderTransientError,)
            )
        except ProviderTimeoutError as e:
            self.stats["timeouts"] += 1
            log.warning(f"{e} for ({lat}, {lng})")
            self._record_failure()
            return None
        except ProviderError as e:
            log.warning(f"{self.name} failed for ({lat}, {lng}): {e}")
            self._record_failure()
            return None
        except Exception as e:
            log.error(f"{self.name} unexpected error for ({lat}, {lng}): {e}", exc_info=True)
            self._record_failure()
            return None

        if result is None:
            log.debug(f"{self.name} returned no result for ({lat}, {lng})")
            self._record_failure()
            return None

        self.stats["successful_requests"] += 1
        self.circuit_breaker.record_success(self.name)
        log.debug(
            f"{self.name} resolved ({lat}, {lng}) to '{result.name}'",
            extra={
                "quality_score": result.quality_score,
                "response_time_ms": result.response_time_ms,
            }
        )
        return result

    async def _attempt(self, lat: float, lng: float) -> Optional[LocationResult]:
        await self.rate_limiter.wait_if_needed()

        start_time = time.perf_counter()
        payload = await self._fetch(lat, lng)
        response_time_ms = (time.perf_counter() - start_time) * 1000

        return self.parse_response(payload, lat, lng, response_time_ms)

    def _record_failure(self) -> None:
        self.stats["failed_requests"] += 1
        self.circuit_breaker.record_failure(self.name)

    async def _get_json(
        self,
        url: str,
        params: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """GET a JSON document, translating transport problems to ProviderErrors."""
        try:
            response = await asyncio.wait_for(
                self.client.get(url, params=params, headers=headers),
                timeout=self.timeout_seconds
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise ProviderTimeoutError(self.name, self.timeout_seconds)
        except httpx.HTTPError as e:
            raise ProviderTransientError(f"{self.name} request failed: {e}", self.name)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise ProviderRateLimitError(
                self.name, int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if response.status_code >= 500:
            raise ProviderTransientError(f"{self.name} HTTP {response.status_code}", self.name)
        if response.status_code >= 400:
            raise ProviderResponseError(f"{self.name} HTTP {response.status_code}", self.name)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(f"{self.name} returned malformed JSON: {e}", self.name)

    def build_result(
        self,
        lat: float,
        lng: float,
        components: LocationComponents,
        formatted_name: Optional[str],
        location_type: LocationType,
        response_time_ms: float,
        resolved_point: Optional[Tuple[float, float]] = None
    ) -> LocationResult:
        """Assemble and score a result from parsed components."""
        origin = Coordinates(lat=lat, lng=lng)

        resolved_coordinates = None
        distance_m = None
        if resolved_point is not None:
            resolved_coordinates = Coordinates(lat=resolved_point[0], lng=resolved_point[1])
            distance_m = calculate_distance_m(lat, lng, resolved_point[0], resolved_point[1])

        result = LocationResult(
            name=build_location_name(components, formatted_name) or format_coordinates(lat, lng),
            confidence=confidence_from_components(components),
            source=self.name,
            coordinates=origin,
            components=components,
            location_type=location_type,
            distance_m=distance_m,
            response_time_ms=response_time_ms,
            resolved_coordinates=resolved_coordinates,
        )
        return result.with_quality_score(score_location(result, origin))

    @abstractmethod
    async def _fetch(self, lat: float, lng: float) -> Any:
        """Issue the upstream request and return the decoded JSON payload."""

    @abstractmethod
    def parse_response(
        self, payload: Any, lat: float, lng: float, response_time_ms: float
    ) -> Optional[LocationResult]:
        """Turn an upstream payload into a LocationResult, or None if it holds no place."""

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "priority": self.priority,
            "configured": self.is_configured,
            **self.stats,
            "rate_limiter": self.rate_limiter.get_usage_stats(),
        }


def parse_point(lat_value, lng_value) -> Optional[Tuple[float, float]]:
    """Parse an upstream (lat, lng) pair that may arrive as strings."""
    try:
        return float(lat_value), float(lng_value)
    except (TypeError, ValueError):
        return None
