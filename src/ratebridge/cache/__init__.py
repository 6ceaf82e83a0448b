"""Process-lifetime caching: TTL cache, last-known-good store, sweeper."""

from ratebridge.cache.sweeper import CacheSweeper
from ratebridge.cache.ttl import CacheEntry, LastKnownGoodCache, TTLCache

__all__ = [
    "CacheEntry",
    "CacheSweeper",
    "LastKnownGoodCache",
    "TTLCache",
]
