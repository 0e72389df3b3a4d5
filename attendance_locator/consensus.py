"""
Consensus resolution across reverse-geocoding providers.

Two phases:

1. Fast path - ask the single highest-priority available provider and return
   its result straight away when it scores above ``fast_path_threshold``.
2. Broad path - ask up to ``max_parallel`` providers concurrently (healthiest
   first, priority breaking ties), keep every result scoring above
   ``candidate_min_quality`` and rank them with an agreement bonus: each peer
   sharing the same city, neighborhood or street adds ``agreement_bonus``.

If nothing survives, the fallback provider answers. Individual provider
failures never abort the resolution.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .models.location import LocationResult
from .providers.fallback_provider import FallbackProvider

logger = logging.getLogger(__name__)

AGREEMENT_FIELDS = ("city", "neighborhood", "street")


@dataclass
class RankedCandidate:
    """A candidate result and its effective ranking score after agreement boosts."""
    result: LocationResult
    score: int
    agreeing_peers: int = 0


class ResolutionProgress:
    """
    Collects results as they arrive so a caller that times out can still
    return the best candidate seen so far.
    """

    def __init__(self):
        self.candidates: List[LocationResult] = []

    def offer(self, result: Optional[LocationResult]) -> None:
        if result is not None:
            self.candidates.append(result)

    def best(self) -> Optional[LocationResult]:
        if not self.candidates:
            return None
        return max(self.candidates, key=lambda r: r.quality_score or 0)


def results_agree(first: LocationResult, second: LocationResult) -> bool:
    """True when two results share an exact non-empty city, neighborhood or street."""
    for attr in AGREEMENT_FIELDS:
        value = getattr(first.components, attr)
        if value and value == getattr(second.components, attr):
            return True
    return False


class ConsensusResolver:

    def __init__(
        self,
        providers: Sequence[Any],
        fallback: Optional[FallbackProvider] = None,
        fast_path_threshold: int = 50,
        candidate_min_quality: int = 30,
        max_parallel: int = 3,
        agreement_bonus: int = 10
    ):
        self.providers = sorted(providers, key=lambda p: p.priority)
        self.fallback = fallback or FallbackProvider()
        self.fast_path_threshold = fast_path_threshold
        self.candidate_min_quality = candidate_min_quality
        self.max_parallel = max_parallel
        self.agreement_bonus = agreement_bonus

        self.stats = {
            "resolutions": 0,
            "fast_path_hits": 0,
            "broad_path_hits": 0,
            "fallbacks": 0,
        }

        logger.info(
            f"ConsensusResolver initialized with {len(self.providers)} providers: "
            f"{[p.name for p in self.providers]}"
        )

    def eligible_providers(self) -> List[Any]:
        """Available providers in configured priority order."""
        return [p for p in self.providers if p.is_available]

    def ranked_providers(self, exclude: Sequence[Any] = ()) -> List[Any]:
        """Available providers, healthiest first, then by priority."""
        eligible = [p for p in self.eligible_providers() if p not in exclude]
        return sorted(eligible, key=lambda p: (-p.health_score, p.priority))

    async def resolve(
        self, lat: float, lng: float, progress: Optional[ResolutionProgress] = None
    ) -> LocationResult:
        """Resolve coordinates to the best available result. Never raises for provider failures."""
        if progress is None:
            progress = ResolutionProgress()
        self.stats["resolutions"] += 1

        tried = []
        carried: List[LocationResult] = []

        eligible = self.eligible_providers()
        if eligible:
            primary = eligible[0]
            tried.append(primary)
            result = await primary.resolve(lat, lng)
            progress.offer(result)
            if result is not None:
                if (result.quality_score or 0) > self.fast_path_threshold:
                    self.stats["fast_path_hits"] += 1
                    logger.debug(f"Fast path answered by {primary.name} ({result.quality_score})")
                    return result
                carried.append(result)

        contenders = self.ranked_providers(exclude=tried)[:self.max_parallel]
        if contenders:
            logger.debug(
                f"Broad path for ({lat}, {lng}) with {[p.name for p in contenders]}"
            )
        results = await self.race(lat, lng, contenders, progress)

        candidates = [
            r for r in carried + results
            if (r.quality_score or 0) > self.candidate_min_quality
        ]
        if candidates:
            best = self.rank_candidates(candidates)[0]
            self.stats["broad_path_hits"] += 1
            logger.debug(
                f"Consensus picked {best.result.source} '{best.result.name}' "
                f"(score {best.score}, {best.agreeing_peers} agreeing)"
            )
            return best.result

        self.stats["fallbacks"] += 1
        logger.warning(f"No provider produced a usable result for ({lat}, {lng}), using fallback")
        return await self.fallback.resolve(lat, lng)

    async def race(
        self,
        lat: float,
        lng: float,
        providers: Sequence[Any],
        progress: Optional[ResolutionProgress] = None
    ) -> List[LocationResult]:
        """Call providers concurrently and collect every non-null result."""
        if not providers:
            return []

        async def call(provider) -> Optional[LocationResult]:
            result = await provider.resolve(lat, lng)
            if progress is not None:
                progress.offer(result)
            return result

        outcomes = await asyncio.gather(
            *(call(p) for p in providers),
            return_exceptions=True
        )

        results = []
        for provider, outcome in zip(providers, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Provider {provider.name} raised during race: {outcome}")
                continue
            if outcome is not None:
                results.append(outcome)
        return results

    def rank_candidates(self, candidates: Sequence[LocationResult]) -> List[RankedCandidate]:
        """Score each candidate with its agreement bonus, best first."""
        ranked = []
        for i, candidate in enumerate(candidates):
            peers = sum(
                1 for j, other in enumerate(candidates)
                if j != i and results_agree(candidate, other)
            )
            ranked.append(RankedCandidate(
                result=candidate,
                score=(candidate.quality_score or 0) + peers * self.agreement_bonus,
                agreeing_peers=peers,
            ))
        # stable sort keeps provider order among equal scores
        ranked.sort(key=lambda c: c.score, reverse=True)
        return ranked

    async def suggest(self, lat: float, lng: float) -> List[LocationResult]:
        """Race the top non-fallback providers and return every result, best first."""
        contenders = self.ranked_providers()[:self.max_parallel]
        results = await self.race(lat, lng, contenders)
        return sorted(results, key=lambda r: r.quality_score or 0, reverse=True)

    def get_statistics(self) -> Dict[str, Any]:
        return dict(self.stats)
