import pytest
from unittest.mock import AsyncMock, MagicMock

from attendance_locator.consensus import ConsensusResolver, ResolutionProgress, results_agree
from attendance_locator.exceptions import ProviderTransientError

# Enable async test support
pytest_plugins = ('pytest_asyncio',)

LAT, LNG = -6.2088, 106.8456


@pytest.mark.asyncio
class TestFastPath:

    async def test_good_result_returns_immediately(self, make_provider, make_result):
        primary = make_provider("nominatim", [make_result("nominatim", 80)], priority=1)
        secondary = make_provider("mapbox", [make_result("mapbox", 90)], priority=2)
        resolver = ConsensusResolver([secondary, primary])

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "nominatim"
        assert result.quality_score == 80
        assert secondary.calls == 0
        assert resolver.stats["fast_path_hits"] == 1

    async def test_score_of_exactly_fifty_escalates(self, make_provider, make_result):
        primary = make_provider("nominatim", [make_result("nominatim", 50)], priority=1)
        secondary = make_provider("mapbox", [make_result("mapbox", 45)], priority=2)
        resolver = ConsensusResolver([primary, secondary])

        result = await resolver.resolve(LAT, LNG)

        assert secondary.calls == 1
        assert result.source == "nominatim"

    async def test_skips_circuit_broken_primary(self, breaker, make_provider, make_result):
        primary = make_provider("nominatim", [make_result("nominatim", 80)], priority=1)
        secondary = make_provider("mapbox", [make_result("mapbox", 75)], priority=2)
        breaker.get_health("nominatim").health_score = 20
        resolver = ConsensusResolver([primary, secondary])

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "mapbox"
        assert primary.calls == 0


@pytest.mark.asyncio
class TestBroadPath:

    async def test_failed_fast_path_escalates(self, make_provider, make_result):
        primary = make_provider("nominatim", [ProviderTransientError("down", "nominatim")], priority=1)
        secondary = make_provider("mapbox", [make_result("mapbox", 45)], priority=2)
        tertiary = make_provider("google", [make_result("google", 40)], priority=3)
        resolver = ConsensusResolver([primary, secondary, tertiary])

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "mapbox"
        assert primary.calls == 1
        assert secondary.calls == 1
        assert tertiary.calls == 1
        assert resolver.stats["broad_path_hits"] == 1

    async def test_weak_fast_path_result_stays_a_candidate(self, make_provider, make_result):
        primary = make_provider("nominatim", [make_result("nominatim", 48)], priority=1)
        secondary = make_provider("mapbox", [None], priority=2)
        resolver = ConsensusResolver([primary, secondary])

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "nominatim"
        assert primary.calls == 1

    async def test_candidates_at_or_below_floor_are_dropped(self, make_provider, make_result):
        primary = make_provider("nominatim", [make_result("nominatim", 30)], priority=1)
        secondary = make_provider("mapbox", [make_result("mapbox", 25)], priority=2)
        resolver = ConsensusResolver([primary, secondary])

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "fallback"
        assert resolver.stats["fallbacks"] == 1

    async def test_agreement_changes_the_winner(self, make_provider, make_result):
        primary = make_provider("nominatim", [make_result("nominatim", 35, city="Jakarta")], priority=1)
        secondary = make_provider("mapbox", [make_result("mapbox", 45, city="Bandung")], priority=2)
        tertiary = make_provider("google", [make_result("google", 40, city="Jakarta")], priority=3)
        resolver = ConsensusResolver([primary, secondary, tertiary])

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "google"
        # ranking bonus does not leak into the stored quality score
        assert result.quality_score == 40

    async def test_contenders_ranked_by_health_then_priority(self, breaker, make_provider):
        providers = [make_provider(f"p{i}", [None], priority=i) for i in range(1, 6)]
        breaker.get_health("p2").health_score = 50
        breaker.get_health("p5").health_score = 90
        resolver = ConsensusResolver(providers, max_parallel=3)

        assert [p.name for p in resolver.ranked_providers()] == ["p1", "p3", "p4", "p5", "p2"]

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "fallback"
        assert [p.calls for p in providers] == [1, 0, 1, 1, 1]

    async def test_one_provider_raising_does_not_abort_the_rest(self, make_provider, make_result):
        primary = make_provider("nominatim", [None], priority=1)
        broken = MagicMock()
        broken.name = "broken"
        broken.priority = 2
        broken.is_available = True
        broken.health_score = 100
        broken.resolve = AsyncMock(side_effect=RuntimeError("bug"))
        healthy = make_provider("google", [make_result("google", 60)], priority=3)
        resolver = ConsensusResolver([primary, broken, healthy])

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "google"
        broken.resolve.assert_awaited_once()

    async def test_no_providers_uses_fallback(self):
        resolver = ConsensusResolver([])

        result = await resolver.resolve(LAT, LNG)

        assert result.source == "fallback"
        assert result.name.startswith("Approximate Location:")


class TestRankCandidates:

    def test_agreement_boost_is_strictly_higher(self, make_result):
        resolver = ConsensusResolver([])
        lead = make_result("mapbox", 45, city="Jakarta")

        agreeing = resolver.rank_candidates([lead, make_result("google", 40, city="Jakarta")])
        disagreeing = resolver.rank_candidates([lead, make_result("google", 40, city="Bandung")])

        assert agreeing[0].result is lead
        assert agreeing[0].score > disagreeing[0].score
        assert agreeing[0].score == 55
        assert agreeing[0].agreeing_peers == 1

    def test_bonus_per_agreeing_peer(self, make_result):
        resolver = ConsensusResolver([], agreement_bonus=10)
        candidates = [
            make_result("nominatim", 40, street="Jalan Sudirman"),
            make_result("mapbox", 40, street="Jalan Sudirman", city="Jakarta"),
            make_result("google", 40, city="Jakarta"),
        ]

        ranked = resolver.rank_candidates(candidates)

        assert ranked[0].result.source == "mapbox"
        assert ranked[0].score == 60

    def test_missing_fields_never_agree(self, make_result):
        assert results_agree(make_result("mapbox", 40), make_result("google", 40)) is False

    def test_exact_string_match_only(self, make_result):
        assert results_agree(
            make_result("mapbox", 40, city="Jakarta"),
            make_result("google", 40, city="jakarta"),
        ) is False


@pytest.mark.asyncio
class TestSuggest:

    async def test_returns_all_successes_best_first(self, make_provider, make_result):
        providers = [
            make_provider("nominatim", [make_result("nominatim", 55)], priority=1),
            make_provider("mapbox", [make_result("mapbox", 85)], priority=2),
            make_provider("google", [None], priority=3),
        ]
        resolver = ConsensusResolver(providers)

        suggestions = await resolver.suggest(LAT, LNG)

        assert [s.source for s in suggestions] == ["mapbox", "nominatim"]

    async def test_never_includes_fallback(self, make_provider):
        resolver = ConsensusResolver([make_provider("nominatim", [None])])

        assert await resolver.suggest(LAT, LNG) == []


def test_progress_tracks_best_candidate(make_result):
    progress = ResolutionProgress()
    assert progress.best() is None

    progress.offer(None)
    progress.offer(make_result("nominatim", 35))
    progress.offer(make_result("mapbox", 60))
    progress.offer(make_result("google", 45))

    assert progress.best().source == "mapbox"
