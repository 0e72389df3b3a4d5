"""
Shared test fixtures for the location resolver test suite.
Provides stub providers, result factories and a controllable clock.
"""
import asyncio
import logging

import pytest

from attendance_locator.circuit_breakers.health_circuit_breaker import HealthScoreCircuitBreaker
from attendance_locator.config import Settings
from attendance_locator.models.location import (
    Confidence,
    Coordinates,
    LocationComponents,
    LocationResult,
)
from attendance_locator.providers.base_provider import BaseGeocodingProvider
from attendance_locator.services.cache_tiers import CacheTierManager, LocationCacheTier

JAKARTA = (-6.2088, 106.8456)


class FakeTimer:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubProvider(BaseGeocodingProvider):
    """
    Provider whose upstream answers are scripted.

    Each call consumes the next scripted outcome; the last one repeats. An
    outcome is a LocationResult, None (empty answer) or an exception to raise.
    """

    def __init__(self, name, circuit_breaker, responses=None, priority=50, delay=0.0, configured=True):
        self.name = name
        self._configured = configured
        super().__init__(circuit_breaker, priority=priority, min_interval_seconds=0.0)
        self.responses = list(responses or [None])
        self.delay = delay
        self.calls = 0

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def _fetch(self, lat, lng):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def parse_response(self, payload, lat, lng, response_time_ms):
        return payload


def build_result(
    source="nominatim",
    quality=70,
    lat=JAKARTA[0],
    lng=JAKARTA[1],
    name=None,
    confidence=Confidence.MEDIUM,
    **components
) -> LocationResult:
    return LocationResult(
        name=name or f"{source} place",
        confidence=confidence,
        source=source,
        coordinates=Coordinates(lat=lat, lng=lng),
        quality_score=quality,
        components=LocationComponents(**components),
    )


@pytest.fixture(autouse=True)
def suppress_logging():
    """Keep test output readable."""
    logging.disable(logging.CRITICAL)
    yield
    logging.disable(logging.NOTSET)


@pytest.fixture
def settings():
    """Settings isolated from the developer's .env and credentials."""
    return Settings(
        _env_file=None,
        APP_ENV="test",
        MAPBOX_ACCESS_TOKEN=None,
        GOOGLE_MAPS_API_KEY=None,
        NOMINATIM_MIN_INTERVAL_SECONDS=0.0,
        MAPBOX_MIN_INTERVAL_SECONDS=0.0,
        GOOGLE_MAPS_MIN_INTERVAL_SECONDS=0.0,
    )


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def breaker():
    return HealthScoreCircuitBreaker()


@pytest.fixture
def make_result():
    return build_result


@pytest.fixture
def make_provider(breaker):
    """Factory for scripted providers sharing one circuit breaker."""
    def factory(name, responses=None, priority=50, **kwargs):
        return StubProvider(name, breaker, responses=responses, priority=priority, **kwargs)
    return factory


@pytest.fixture
def cache_manager(timer):
    return CacheTierManager(
        precise=LocationCacheTier("precise", 6, 10, 3600, timer),
        nearby=LocationCacheTier("nearby", 4, 10, 3600, timer),
        administrative=LocationCacheTier("administrative", 2, 10, 3600, timer),
    )
