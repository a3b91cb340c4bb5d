"""In-memory LRU cache for resolved resources, bounded by count, bytes and TTL."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable

from embedres.cache.stats import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ENTRIES = 100
_DEFAULT_MAX_SIZE_MB = 50
_DEFAULT_TTL_MINUTES = 30

# A single entry may take at most this share of the byte budget
_MAX_ENTRY_FRACTION = 0.2
# perform_maintenance() trims harder above this fill level
_PRESSURE_THRESHOLD = 0.8
_PRESSURE_EVICT_FRACTION = 0.1


class ResourceCache:
    """In-memory LRU cache with count, size and TTL limits.

    Keys are opaque strings (see :func:`embedres.cache.keys.generate_cache_key`).
    All bookkeeping is guarded by a re-entrant lock so that concurrent
    resolutions can share one instance.
    """

    def __init__(
        self,
        max_entries: int = _DEFAULT_MAX_ENTRIES,
        max_total_size_mb: float = _DEFAULT_MAX_SIZE_MB,
        ttl_minutes: float = _DEFAULT_TTL_MINUTES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        if max_total_size_mb <= 0:
            raise ValueError(f"max_total_size_mb must be > 0, got {max_total_size_mb}")
        if ttl_minutes <= 0:
            raise ValueError(f"ttl_minutes must be > 0, got {ttl_minutes}")

        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_entries = max_entries
        self._max_size_bytes = int(max_total_size_mb * 1024 * 1024)
        self._max_entry_bytes = int(self._max_size_bytes * _MAX_ENTRY_FRACTION)
        self._ttl_seconds = ttl_minutes * 60
        self._clock = clock
        self._lock = threading.RLock()

        self._current_size_bytes = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def max_entry_bytes(self) -> int:
        return self._max_entry_bytes

    def get(self, key: str) -> str | bytes | None:
        entry = self.get_entry(key)
        return entry.content if entry is not None else None

    def get_entry(self, key: str) -> CacheEntry | None:
        """Look up an entry, counting a hit or a miss and refreshing recency."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            now = self._clock()
            if self._is_expired(entry, now):
                self._remove(key, evicted=True)
                self._misses += 1
                logger.debug("Cache entry %s expired", key)
                return None
            entry.last_accessed_at = now
            # Move to end (most recently used)
            self._store.move_to_end(key)
            self._hits += 1
            return entry

    def set(self, key: str, content: str | bytes, mime_type: str, filename: str = "") -> bool:
        """Store content. Returns False when the entry is too large to admit."""
        if not key or not content:
            return False

        with self._lock:
            now = self._clock()
            entry = CacheEntry(
                resource_id=key,
                content=content,
                mime_type=mime_type,
                created_at=now,
                last_accessed_at=now,
                filename=filename,
            )
            entry_size = entry.size_bytes
            if entry_size > self._max_entry_bytes:
                logger.info(
                    "Not caching %s: %d bytes exceeds per-entry limit of %d bytes",
                    key,
                    entry_size,
                    self._max_entry_bytes,
                )
                return False

            if key in self._store:
                self._remove(key, evicted=False)
            self._purge_expired(now)

            # Evict until there's room
            while self._store and (
                len(self._store) >= self._max_entries
                or self._current_size_bytes + entry_size > self._max_size_bytes
            ):
                self._evict_oldest()

            self._store[key] = entry
            self._current_size_bytes += entry_size
            return True

    def has(self, key: str) -> bool:
        """True if a live entry exists. Does not count as an access."""
        with self._lock:
            entry = self._store.get(key)
            return entry is not None and not self._is_expired(entry, self._clock())

    def remove(self, key: str) -> bool:
        with self._lock:
            if key not in self._store:
                return False
            self._remove(key, evicted=True)
            return True

    def clear(self) -> None:
        """Drop every entry and reset statistics."""
        with self._lock:
            self._store.clear()
            self._current_size_bytes = 0
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def get_stats(self) -> CacheStats:
        with self._lock:
            self._purge_expired(self._clock())
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._store),
                total_size_bytes=self._current_size_bytes,
            )

    def get_hit_ratio(self) -> float:
        """Hit ratio as a percentage; 0 when no lookups have happened."""
        with self._lock:
            total = self._hits + self._misses
            return self._hits / total * 100 if total > 0 else 0.0

    def perform_maintenance(self) -> int:
        """Purge expired entries, then trim the oldest 10% under pressure.

        Returns the number of entries removed.
        """
        with self._lock:
            removed = self._purge_expired(self._clock())
            under_pressure = (
                len(self._store) > self._max_entries * _PRESSURE_THRESHOLD
                or self._current_size_bytes > self._max_size_bytes * _PRESSURE_THRESHOLD
            )
            if under_pressure:
                for _ in range(int(len(self._store) * _PRESSURE_EVICT_FRACTION)):
                    self._evict_oldest()
                    removed += 1
            if removed:
                logger.debug("Cache maintenance removed %d entries", removed)
            return removed

    def cached_ids(self) -> list[str]:
        """Live keys, least recently used first."""
        with self._lock:
            self._purge_expired(self._clock())
            return list(self._store)

    @property
    def size_mb(self) -> float:
        return self._current_size_bytes / (1024 * 1024)

    def __len__(self) -> int:
        return len(self._store)

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return entry.age(now) >= self._ttl_seconds

    def _purge_expired(self, now: float) -> int:
        expired = [key for key, entry in self._store.items() if self._is_expired(entry, now)]
        for key in expired:
            self._remove(key, evicted=True)
        return len(expired)

    def _remove(self, key: str, evicted: bool) -> None:
        entry = self._store.pop(key, None)
        if entry is not None:
            self._current_size_bytes -= entry.size_bytes
            if evicted:
                self._evictions += 1

    def _evict_oldest(self) -> None:
        if self._store:
            key = next(iter(self._store))
            self._remove(key, evicted=True)
            logger.debug("Evicted least recently used entry %s", key)
