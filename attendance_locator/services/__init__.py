"""Supporting services for the location resolver."""

from .cache_tiers import CacheEntry, CacheTierManager, LocationCacheTier

__all__ = ['CacheEntry', 'CacheTierManager', 'LocationCacheTier']
