"""
Location Service - public entry point of the location resolver.

Checks the cache tiers top-down, runs consensus resolution on a miss and writes
the result back to the tier its quality score selects. One instance is meant
to live for the whole process and be passed to whatever hosts it.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from .circuit_breakers.health_circuit_breaker import HealthScoreCircuitBreaker
from .consensus import ConsensusResolver, ResolutionProgress
from .exceptions import InvalidCoordinatesError
from .models.location import Coordinates, LocationResult, LocationSource
from .providers.base_provider import BaseGeocodingProvider
from .providers.fallback_provider import FallbackProvider
from .providers.google_provider import GoogleMapsProvider
from .providers.mapbox_provider import MapboxProvider
from .providers.nominatim_provider import NominatimProvider
from .scoring import score_location
from .services.cache_tiers import CacheTierManager
from .validation import format_coordinates, is_valid_coordinates

logger = logging.getLogger(__name__)


class LocationService:
    """
    Reverse-geocoding facade with tiered caching and provider consensus.

    Args:
        providers: Network providers, in any order (they are sorted by priority)
        cache: Cache tier manager; a default-sized one is created if omitted
        fallback: Provider of last resort
        resolver: Consensus resolver; built from providers and fallback if omitted
        resolution_timeout: Default overall budget in seconds, None for no limit
    """

    def __init__(
        self,
        providers: Sequence[BaseGeocodingProvider],
        cache: Optional[CacheTierManager] = None,
        fallback: Optional[FallbackProvider] = None,
        resolver: Optional[ConsensusResolver] = None,
        resolution_timeout: Optional[float] = 15.0
    ):
        self.fallback = fallback or FallbackProvider()
        self.resolver = resolver or ConsensusResolver(providers, self.fallback)
        self.providers = self.resolver.providers
        self.cache = cache or CacheTierManager.from_defaults()
        self.resolution_timeout = resolution_timeout

        logger.info(
            f"LocationService initialized with providers {[p.name for p in self.providers]}"
        )

    @classmethod
    def from_settings(
        cls,
        settings,
        client: Optional[httpx.AsyncClient] = None,
        timer: Callable[[], float] = time.monotonic
    ) -> "LocationService":
        """Build the full provider/cache/consensus graph from Settings."""
        circuit_breaker = HealthScoreCircuitBreaker(
            initial_score=settings.HEALTH_INITIAL_SCORE,
            success_increment=settings.HEALTH_SUCCESS_INCREMENT,
            failure_penalty=settings.HEALTH_FAILURE_PENALTY,
            min_healthy_score=settings.HEALTH_MIN_SCORE,
        )
        common = {
            "client": client,
            "retry_attempts": settings.PROVIDER_RETRY_ATTEMPTS,
            "retry_base_delay": settings.PROVIDER_RETRY_BASE_DELAY,
        }
        providers = [
            NominatimProvider(
                circuit_breaker,
                base_url=settings.NOMINATIM_BASE_URL,
                user_agent=settings.NOMINATIM_USER_AGENT,
                accept_language=settings.NOMINATIM_ACCEPT_LANGUAGE,
                priority=settings.NOMINATIM_PRIORITY,
                timeout_seconds=settings.NOMINATIM_TIMEOUT_SECONDS,
                min_interval_seconds=settings.NOMINATIM_MIN_INTERVAL_SECONDS,
                **common
            ),
            MapboxProvider(
                circuit_breaker,
                access_token=settings.MAPBOX_ACCESS_TOKEN,
                base_url=settings.MAPBOX_BASE_URL,
                language=settings.PROVIDER_LANGUAGE,
                priority=settings.MAPBOX_PRIORITY,
                timeout_seconds=settings.MAPBOX_TIMEOUT_SECONDS,
                min_interval_seconds=settings.MAPBOX_MIN_INTERVAL_SECONDS,
                **common
            ),
            GoogleMapsProvider(
                circuit_breaker,
                api_key=settings.GOOGLE_MAPS_API_KEY,
                base_url=settings.GOOGLE_MAPS_BASE_URL,
                language=settings.PROVIDER_LANGUAGE,
                priority=settings.GOOGLE_MAPS_PRIORITY,
                timeout_seconds=settings.GOOGLE_MAPS_TIMEOUT_SECONDS,
                min_interval_seconds=settings.GOOGLE_MAPS_MIN_INTERVAL_SECONDS,
                **common
            ),
        ]
        fallback = FallbackProvider()
        resolver = ConsensusResolver(
            providers,
            fallback,
            fast_path_threshold=settings.CONSENSUS_FAST_PATH_THRESHOLD,
            candidate_min_quality=settings.CONSENSUS_CANDIDATE_MIN_QUALITY,
            max_parallel=settings.CONSENSUS_MAX_PARALLEL,
            agreement_bonus=settings.CONSENSUS_AGREEMENT_BONUS,
        )
        return cls(
            providers,
            cache=CacheTierManager.from_settings(settings, timer),
            fallback=fallback,
            resolver=resolver,
            resolution_timeout=settings.RESOLUTION_TIMEOUT_SECONDS,
        )

    async def get_location_name(self, lat, lng, timeout: Optional[float] = None) -> str:
        """
        Resolve coordinates to a display name. Never raises: invalid input
        yields the fixed-point coordinate string.
        """
        if not is_valid_coordinates(lat, lng):
            logger.warning(f"Invalid coordinates for name lookup: ({lat}, {lng})")
            return format_coordinates(lat, lng)

        try:
            result = await self.get_detailed_location(lat, lng, timeout=timeout)
            return result.name
        except Exception as e:
            logger.error(f"Location name lookup failed for ({lat}, {lng}): {e}", exc_info=True)
            return format_coordinates(lat, lng)

    async def get_detailed_location(self, lat, lng, timeout: Optional[float] = None) -> LocationResult:
        """
        Resolve coordinates to a full LocationResult.

        Raises:
            InvalidCoordinatesError: If the coordinates are not finite WGS84 values
        """
        if not is_valid_coordinates(lat, lng):
            raise InvalidCoordinatesError(lat, lng)

        cached = self.cache.lookup(lat, lng)
        if cached is not None:
            return cached

        result = await self._resolve_within(lat, lng, timeout)

        if result.quality_score is None:
            result = result.with_quality_score(score_location(result, Coordinates(lat=lat, lng=lng)))

        # fallback answers are not cached so a provider outage is not remembered
        if result.source != LocationSource.FALLBACK:
            self.cache.store(lat, lng, result)

        return result

    async def _resolve_within(self, lat: float, lng: float, timeout: Optional[float]) -> LocationResult:
        budget = timeout if timeout is not None else self.resolution_timeout
        progress = ResolutionProgress()
        try:
            return await asyncio.wait_for(self.resolver.resolve(lat, lng, progress), timeout=budget)
        except asyncio.TimeoutError:
            best = progress.best()
            if best is not None and (best.quality_score or 0) > self.resolver.candidate_min_quality:
                logger.warning(
                    f"Resolution timed out after {budget}s for ({lat}, {lng}), "
                    f"using best candidate from {best.source}"
                )
                return best
            logger.warning(f"Resolution timed out after {budget}s for ({lat}, {lng}), using fallback")
            return self.fallback.build(lat, lng)

    async def get_location_suggestions(self, lat, lng) -> List[LocationResult]:
        """
        Race the top providers and return every result, best first.
        Bypasses the cache and the fallback provider; nothing is cached.

        Raises:
            InvalidCoordinatesError: If the coordinates are not finite WGS84 values
        """
        if not is_valid_coordinates(lat, lng):
            raise InvalidCoordinatesError(lat, lng)
        return await self.resolver.suggest(lat, lng)

    def get_cache_stats(self, include_entries: bool = False) -> Dict[str, Dict[str, Any]]:
        return self.cache.get_stats(include_entries)

    def get_provider_health(self) -> List[Dict[str, Any]]:
        """Provider availability and health, in priority order."""
        statuses = []
        for provider in list(self.providers) + [self.fallback]:
            entry = {
                "name": provider.name,
                "priority": provider.priority,
                "configured": provider.is_configured,
                "available": provider.is_available,
                "health_score": provider.health_score,
                "consecutive_failures": 0,
            }
            circuit_breaker = getattr(provider, "circuit_breaker", None)
            if circuit_breaker is not None:
                entry["consecutive_failures"] = circuit_breaker.get_health(provider.name).consecutive_failures
            statuses.append(entry)
        return statuses

    def clear_cache(self) -> None:
        self.cache.clear()

    async def close(self) -> None:
        """Close provider HTTP clients."""
        for provider in self.providers:
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"Error closing provider {provider.name}: {e}")
        logger.info("LocationService closed")
