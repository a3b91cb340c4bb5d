"""Cache subsystem: session-scoped LRU cache with mode-qualified keys."""

from embedres.cache.keys import generate_cache_key
from embedres.cache.memory import ResourceCache
from embedres.cache.stats import CacheEntry, CacheStats

__all__ = [
    "ResourceCache",
    "CacheEntry",
    "CacheStats",
    "generate_cache_key",
]
