import pytest
from unittest.mock import AsyncMock, patch

from attendance_locator.exceptions import InvalidCoordinatesError, ProviderTransientError
from attendance_locator.location_service import LocationService
from attendance_locator.models.location import LocationSource

# Enable async test support
pytest_plugins = ('pytest_asyncio',)

LAT, LNG = -6.2088, 106.8456


@pytest.fixture
def service_factory(cache_manager):
    def factory(providers, **kwargs):
        return LocationService(providers, cache=cache_manager, **kwargs)
    return factory


@pytest.mark.asyncio
class TestFallbackGuarantee:

    async def test_name_falls_back_when_every_provider_fails(self, make_provider, service_factory):
        providers = [
            make_provider("nominatim", [ProviderTransientError("down", "nominatim")], priority=1),
            make_provider("mapbox", [ProviderTransientError("down", "mapbox")], priority=2),
            make_provider("google", [None], priority=3),
        ]
        service = service_factory(providers)

        name = await service.get_location_name(LAT, LNG)

        assert name == "Approximate Location: 6.2088°S, 106.8456°E (Indonesia)"

    async def test_detailed_falls_back_and_is_not_cached(self, make_provider, service_factory):
        service = service_factory([make_provider("nominatim", [None], priority=1)])

        result = await service.get_detailed_location(LAT, LNG)

        assert result.source == LocationSource.FALLBACK
        assert result.quality_score == 15
        assert all(stats["size"] == 0 for stats in service.get_cache_stats().values())

    async def test_unexpected_error_yields_coordinates(self, make_provider, service_factory):
        service = service_factory([make_provider("nominatim", [None])])

        with patch.object(service.resolver, "resolve", AsyncMock(side_effect=RuntimeError("bug"))):
            name = await service.get_location_name(LAT, LNG)

        assert name == "-6.208800, 106.845600"


@pytest.mark.asyncio
class TestCaching:

    async def test_second_call_served_from_cache(self, make_provider, make_result, service_factory):
        provider = make_provider("nominatim", [make_result("nominatim", 90, name="12 Jalan Sudirman")], priority=1)
        service = service_factory([provider])

        first = await service.get_detailed_location(LAT, LNG)
        second = await service.get_detailed_location(LAT, LNG)

        assert first.source == "nominatim"
        assert second.source == LocationSource.CACHE
        assert second.name == first.name
        assert second.quality_score == first.quality_score
        assert provider.calls == 1

    async def test_high_quality_lands_in_precise_tier(self, make_provider, make_result, service_factory):
        service = service_factory([make_provider("google", [make_result("google", 95)], priority=1)])

        await service.get_detailed_location(LAT, LNG)

        stats = service.get_cache_stats()
        assert stats["precise"]["size"] == 1
        assert service.cache.precise.lookup(LAT, LNG) is not None

    async def test_low_quality_stays_out_of_precise_tier(self, make_provider, make_result, service_factory):
        service = service_factory([make_provider("nominatim", [make_result("nominatim", 40)], priority=1)])

        await service.get_detailed_location(LAT, LNG)

        stats = service.get_cache_stats()
        assert stats["precise"]["size"] == 0
        assert stats["administrative"]["size"] == 1

    async def test_missing_quality_score_is_computed(self, make_provider, make_result, service_factory):
        unscored = make_result("mapbox", None, city="Jakarta", country="Indonesia")
        service = service_factory([make_provider("mapbox", [unscored], priority=1)])

        with patch.object(service.resolver, "resolve", AsyncMock(return_value=unscored)):
            result = await service.get_detailed_location(LAT, LNG)

        # 85*0.3 + 30*0.4
        assert result.quality_score == 38

    async def test_clear_cache(self, make_provider, make_result, service_factory):
        provider = make_provider("google", [make_result("google", 95)], priority=1)
        service = service_factory([provider])
        await service.get_detailed_location(LAT, LNG)

        service.clear_cache()
        await service.get_detailed_location(LAT, LNG)

        assert provider.calls == 2


@pytest.mark.asyncio
class TestHealthThroughService:

    async def test_failing_provider_becomes_ineligible(self, breaker, make_provider, make_result, service_factory):
        provider = make_provider("nominatim", [None], priority=1)
        breaker.get_health("nominatim").health_score = 45
        service = service_factory([provider])

        for _ in range(5):
            await service.get_location_name(LAT, LNG)

        health = breaker.get_health("nominatim")
        assert health.health_score <= 20
        assert provider.is_available is False

        await service.get_location_name(LAT, LNG)
        assert provider.calls == 5

        provider.responses = [make_result("nominatim", 90)]
        await provider.resolve(LAT, LNG)

        assert health.health_score == 21
        assert health.consecutive_failures == 0

    async def test_provider_health_listing(self, make_provider, service_factory):
        providers = [
            make_provider("nominatim", [None], priority=1),
            make_provider("mapbox", [None], priority=2, configured=False),
        ]
        service = service_factory(providers)
        await service.get_location_name(LAT, LNG)

        listing = {entry["name"]: entry for entry in service.get_provider_health()}

        assert listing["nominatim"]["health_score"] == 95
        assert listing["nominatim"]["consecutive_failures"] == 1
        assert listing["mapbox"]["available"] is False
        assert listing["mapbox"]["configured"] is False
        assert listing["fallback"]["available"] is True


@pytest.mark.asyncio
class TestInvalidInput:

    async def test_name_returns_fixed_point_string(self, make_provider, service_factory):
        provider = make_provider("nominatim", [None])
        service = service_factory([provider])

        assert await service.get_location_name(91, 0) == "91.000000, 0.000000"
        assert provider.calls == 0

    async def test_detailed_raises(self, make_provider, service_factory):
        service = service_factory([make_provider("nominatim", [None])])

        with pytest.raises(InvalidCoordinatesError):
            await service.get_detailed_location(90.0001, 0)

    async def test_suggestions_raise(self, make_provider, service_factory):
        service = service_factory([make_provider("nominatim", [None])])

        with pytest.raises(InvalidCoordinatesError):
            await service.get_location_suggestions(float("nan"), 0)

    @pytest.mark.parametrize("lat,lng", [(90, 180), (-90, -180)])
    async def test_boundary_coordinates_are_resolved(self, make_provider, service_factory, lat, lng):
        service = service_factory([make_provider("nominatim", [None])])

        result = await service.get_detailed_location(lat, lng)

        assert result.name.startswith("Approximate Location:")


@pytest.mark.asyncio
class TestTimeout:

    async def test_timeout_without_candidates_uses_fallback(self, make_provider, make_result, service_factory):
        slow = make_provider("nominatim", [make_result("nominatim", 90)], priority=1, delay=5)
        service = service_factory([slow])

        result = await service.get_detailed_location(LAT, LNG, timeout=0.05)

        assert result.source == LocationSource.FALLBACK

    async def test_timeout_returns_best_candidate_so_far(self, make_provider, make_result, service_factory):
        quick = make_provider("nominatim", [make_result("nominatim", 45, name="Senayan")], priority=1)
        slow = make_provider("mapbox", [make_result("mapbox", 90)], priority=2, delay=5)
        service = service_factory([quick, slow])

        result = await service.get_detailed_location(LAT, LNG, timeout=0.2)

        assert result.name == "Senayan"
        assert result.source == "nominatim"

    async def test_default_timeout_from_constructor(self, make_provider, make_result, service_factory):
        slow = make_provider("nominatim", [make_result("nominatim", 90)], priority=1, delay=5)
        service = service_factory([slow], resolution_timeout=0.05)

        name = await service.get_location_name(LAT, LNG)

        assert name.startswith("Approximate Location:")


@pytest.mark.asyncio
class TestSuggestions:

    async def test_sorted_and_uncached(self, make_provider, make_result, service_factory):
        nominatim = make_provider("nominatim", [make_result("nominatim", 60)], priority=1)
        mapbox = make_provider("mapbox", [make_result("mapbox", 88)], priority=2)
        service = service_factory([nominatim, mapbox])

        first = await service.get_location_suggestions(LAT, LNG)
        second = await service.get_location_suggestions(LAT, LNG)

        assert [s.quality_score for s in first] == [88, 60]
        assert len(second) == 2
        assert nominatim.calls == 2
        assert all(stats["size"] == 0 for stats in service.get_cache_stats().values())

    async def test_empty_when_every_provider_fails(self, make_provider, service_factory):
        service = service_factory([make_provider("nominatim", [None])])

        assert await service.get_location_suggestions(LAT, LNG) == []


@pytest.mark.asyncio
class TestFromSettings:

    async def test_builds_provider_graph(self, settings):
        service = LocationService.from_settings(settings)

        assert [p.name for p in service.providers] == ["nominatim", "mapbox", "google"]
        availability = {p.name: p.is_available for p in service.providers}
        assert availability == {"nominatim": True, "mapbox": False, "google": False}
        assert service.resolution_timeout == settings.RESOLUTION_TIMEOUT_SECONDS
        assert service.cache.precise.maxsize == settings.PRECISE_CACHE_SIZE

        await service.close()

    async def test_credentials_enable_providers(self, settings):
        settings.MAPBOX_ACCESS_TOKEN = "pk.test"
        settings.GOOGLE_MAPS_API_KEY = "test-key"

        service = LocationService.from_settings(settings)

        assert all(p.is_available for p in service.providers)
        await service.close()
