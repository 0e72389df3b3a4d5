"""
Tiered location cache.

Three independent caches keyed by rounding the query coordinates to a fixed
number of decimals:

    precise         6 decimals (~0.1m)   results scoring > 80
    nearby          4 decimals (~10m)    results scoring > 50
    administrative  2 decimals (~1km)    everything else

Each tier combines two independent policies. TTL expiry is checked lazily when
an entry is read (an expired entry is a miss and is dropped). Capacity
eviction runs only when an insert would overflow the tier: an expired entry
is dropped first if there is one, otherwise the entry with the lowest access
count, oldest insertion first.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from cachetools import Cache

from ..models.location import LocationResult, LocationSource

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    result: LocationResult
    inserted_at: float
    access_count: int = 0


class LocationCacheTier(Cache):
    """Bounded, time-expiring cache of CacheEntry keyed by rounded coordinates."""

    def __init__(
        self,
        name: str,
        precision: int,
        maxsize: int,
        ttl_seconds: float,
        timer: Callable[[], float] = time.monotonic
    ):
        super().__init__(maxsize)
        self.name = name
        self.precision = precision
        self.ttl_seconds = ttl_seconds
        self.timer = timer

        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def make_key(self, lat: float, lng: float) -> str:
        return f"{lat:.{self.precision}f},{lng:.{self.precision}f}"

    def is_expired(self, entry: CacheEntry, now: Optional[float] = None) -> bool:
        if now is None:
            now = self.timer()
        return now - entry.inserted_at >= self.ttl_seconds

    def lookup(self, lat: float, lng: float) -> Optional[CacheEntry]:
        """Return the live entry for these coordinates, or None."""
        key = self.make_key(lat, lng)
        entry = self.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self.is_expired(entry):
            del self[key]
            self.expirations += 1
            self.misses += 1
            logger.debug(f"Expired {self.name} cache entry dropped: {key}")
            return None

        entry.access_count += 1
        self.hits += 1
        return entry

    def store(self, lat: float, lng: float, result: LocationResult) -> str:
        key = self.make_key(lat, lng)
        self[key] = CacheEntry(result=result, inserted_at=self.timer())
        return key

    def popitem(self) -> Tuple[str, CacheEntry]:
        """Evict one entry. Called by Cache only when an insert would overflow."""
        now = self.timer()
        victim_key = None
        victim_rank = None

        for key, entry in self.items():
            if self.is_expired(entry, now):
                victim_key = key
                break
            rank = (entry.access_count, entry.inserted_at)
            if victim_rank is None or rank < victim_rank:
                victim_key, victim_rank = key, rank

        if victim_key is None:
            raise KeyError(f"{self.name} cache is empty")

        self.evictions += 1
        logger.debug(f"Evicting {victim_key} from {self.name} cache")
        return victim_key, self.pop(victim_key)

    def clear(self) -> None:
        # MutableMapping.clear() would route through popitem() and count evictions
        for key in list(self.keys()):
            del self[key]

    def get_stats(self, include_entries: bool = False) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "size": len(self),
            "max_size": self.maxsize,
            "ttl_seconds": self.ttl_seconds,
            "precision": self.precision,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
        }
        if include_entries:
            now = self.timer()
            stats["entries"] = [
                {
                    "key": key,
                    "name": entry.result.name,
                    "source": entry.result.source,
                    "confidence": entry.result.confidence.value,
                    "quality_score": entry.result.quality_score,
                    "access_count": entry.access_count,
                    "age_seconds": round(now - entry.inserted_at, 3),
                }
                for key, entry in self.items()
            ]
        return stats


class CacheTierManager:
    """
    Owns the three cache tiers and the placement/lookup rules between them.

    Lookups walk the tiers from most to least precise and return the first
    hit, re-tagged with source ``cache``. Nearby-tier hits are only served
    when the stored result scores above ``nearby_min_read_quality``.
    """

    def __init__(
        self,
        precise: LocationCacheTier,
        nearby: LocationCacheTier,
        administrative: LocationCacheTier,
        precise_min_quality: int = 80,
        nearby_min_quality: int = 50,
        nearby_min_read_quality: int = 70
    ):
        self.precise = precise
        self.nearby = nearby
        self.administrative = administrative
        self.precise_min_quality = precise_min_quality
        self.nearby_min_quality = nearby_min_quality
        self.nearby_min_read_quality = nearby_min_read_quality

    @classmethod
    def from_settings(cls, settings, timer: Callable[[], float] = time.monotonic) -> "CacheTierManager":
        return cls(
            precise=LocationCacheTier(
                "precise", 6, settings.PRECISE_CACHE_SIZE, settings.PRECISE_CACHE_TTL_SECONDS, timer
            ),
            nearby=LocationCacheTier(
                "nearby", 4, settings.NEARBY_CACHE_SIZE, settings.NEARBY_CACHE_TTL_SECONDS, timer
            ),
            administrative=LocationCacheTier(
                "administrative", 2, settings.ADMIN_CACHE_SIZE, settings.ADMIN_CACHE_TTL_SECONDS, timer
            ),
            nearby_min_read_quality=settings.NEARBY_CACHE_MIN_READ_QUALITY,
        )

    @classmethod
    def from_defaults(cls, timer: Callable[[], float] = time.monotonic) -> "CacheTierManager":
        return cls(
            precise=LocationCacheTier("precise", 6, 500, 6 * 60 * 60, timer),
            nearby=LocationCacheTier("nearby", 4, 1000, 24 * 60 * 60, timer),
            administrative=LocationCacheTier("administrative", 2, 200, 7 * 24 * 60 * 60, timer),
        )

    @property
    def tiers(self) -> List[LocationCacheTier]:
        return [self.precise, self.nearby, self.administrative]

    def lookup(self, lat: float, lng: float) -> Optional[LocationResult]:
        for tier in self.tiers:
            entry = tier.lookup(lat, lng)
            if entry is None:
                continue
            if tier is self.nearby and (entry.result.quality_score or 0) <= self.nearby_min_read_quality:
                continue
            logger.debug(f"Cache hit in {tier.name} tier for ({lat}, {lng})")
            return entry.result.with_source(LocationSource.CACHE)
        return None

    def select_tier(self, quality_score: int) -> LocationCacheTier:
        if quality_score > self.precise_min_quality:
            return self.precise
        if quality_score > self.nearby_min_quality:
            return self.nearby
        return self.administrative

    def store(self, lat: float, lng: float, result: LocationResult) -> LocationCacheTier:
        """Write the result to the tier its quality score selects."""
        tier = self.select_tier(result.quality_score or 0)
        key = tier.store(lat, lng, result)
        logger.debug(f"Cached '{result.name}' in {tier.name} tier under {key}")
        return tier

    def clear(self) -> None:
        for tier in self.tiers:
            tier.clear()
        logger.info("All location cache tiers cleared")

    def get_stats(self, include_entries: bool = False) -> Dict[str, Dict[str, Any]]:
        return {tier.name: tier.get_stats(include_entries) for tier in self.tiers}
