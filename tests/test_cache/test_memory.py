"""Tests for the in-memory resource cache."""

import threading

import pytest

from embedres.cache.memory import ResourceCache

_MB = 1024 * 1024


class TestResourceCache:
    def test_get_set(self, clock):
        cache = ResourceCache(clock=clock)
        assert cache.set("inline:k1", "data:image/png;base64,AAAA", "image/png") is True
        assert cache.get("inline:k1") == "data:image/png;base64,AAAA"

    def test_get_entry_keeps_metadata(self, clock):
        cache = ResourceCache(clock=clock)
        cache.set("local_file:k1", b"\x89PNG", "image/png", filename="photo.png")
        entry = cache.get_entry("local_file:k1")
        assert entry is not None
        assert entry.content == b"\x89PNG"
        assert entry.mime_type == "image/png"
        assert entry.filename == "photo.png"

    def test_get_miss(self, clock):
        cache = ResourceCache(clock=clock)
        assert cache.get("nonexistent") is None
        assert cache.get_stats().misses == 1

    def test_empty_content_rejected(self, clock):
        cache = ResourceCache(clock=clock)
        assert cache.set("k1", b"", "image/png") is False
        assert len(cache) == 0

    def test_replacing_key_keeps_size_consistent(self, clock):
        cache = ResourceCache(clock=clock)
        cache.set("k1", b"a" * 100, "image/png")
        cache.set("k1", b"b" * 40, "image/png")
        stats = cache.get_stats()
        assert stats.size == 1
        assert stats.total_size_bytes == 40
        assert cache.get("k1") == b"b" * 40

    @pytest.mark.parametrize("kwargs", [{"max_entries": 0}, {"max_total_size_mb": 0}, {"ttl_minutes": 0}])
    def test_invalid_bounds(self, kwargs):
        with pytest.raises(ValueError):
            ResourceCache(**kwargs)


class TestExpiry:
    def test_live_before_ttl(self, clock):
        cache = ResourceCache(ttl_minutes=1, clock=clock)
        cache.set("k1", "x", "image/png")
        clock.advance(59)
        assert cache.get("k1") == "x"

    def test_expired_at_ttl(self, clock):
        cache = ResourceCache(ttl_minutes=1, clock=clock)
        cache.set("k1", "x", "image/png")
        clock.advance(60)
        assert cache.get("k1") is None
        assert len(cache) == 0
        assert cache.get_stats().misses == 1

    def test_access_does_not_extend_ttl(self, clock):
        cache = ResourceCache(ttl_minutes=1, clock=clock)
        cache.set("k1", "x", "image/png")
        clock.advance(30)
        assert cache.get("k1") == "x"
        clock.advance(30)
        assert cache.get("k1") is None

    def test_has_ignores_expired_without_counting(self, clock):
        cache = ResourceCache(ttl_minutes=1, clock=clock)
        cache.set("k1", "x", "image/png")
        assert cache.has("k1") is True
        clock.advance(61)
        assert cache.has("k1") is False
        stats = cache.get_stats()
        assert stats.hits == 0
        assert stats.misses == 0


class TestEviction:
    def test_count_bound_evicts_lru(self, clock):
        cache = ResourceCache(max_entries=2, clock=clock)
        cache.set("k1", "a", "image/png")
        cache.set("k2", "b", "image/png")
        cache.set("k3", "c", "image/png")
        assert cache.get("k1") is None
        assert cache.get("k2") == "b"
        assert cache.get("k3") == "c"
        assert cache.get_stats().evictions == 1

    def test_access_promotes_entry(self, clock):
        cache = ResourceCache(max_entries=2, clock=clock)
        cache.set("k1", "a", "image/png")
        cache.set("k2", "b", "image/png")
        # k1 becomes most recently used, so k2 goes first
        cache.get("k1")
        cache.set("k3", "c", "image/png")
        assert cache.get("k1") == "a"
        assert cache.get("k2") is None

    def test_size_bound_evicts_lru(self, clock):
        # 1 MB budget, 200 KB per-entry limit
        cache = ResourceCache(max_total_size_mb=1, clock=clock)
        chunk = 150 * 1024
        for i in range(7):
            assert cache.set(f"k{i}", bytes([i]) * chunk, "image/png") is True
        stats = cache.get_stats()
        assert stats.total_size_bytes <= _MB
        assert stats.size == 6
        assert cache.get("k0") is None
        assert cache.get("k6") is not None

    def test_oversized_entry_not_admitted(self, clock):
        cache = ResourceCache(max_total_size_mb=1, clock=clock)
        cache.set("small", b"x" * 10, "image/png")
        too_big = b"x" * (cache.max_entry_bytes + 1)
        assert cache.set("big", too_big, "image/png") is False
        assert cache.get("big") is None
        # Nothing was evicted to make room
        assert cache.get("small") == b"x" * 10


class TestStatsAndMaintenance:
    def test_hit_ratio(self, clock):
        cache = ResourceCache(clock=clock)
        cache.set("k1", "a", "image/png")
        cache.get("k1")
        cache.get("k1")
        cache.get("k1")
        cache.get("missing")
        assert cache.get_hit_ratio() == 75.0
        assert cache.get_stats().hit_ratio == 75.0

    def test_hit_ratio_zero_without_lookups(self, clock):
        assert ResourceCache(clock=clock).get_hit_ratio() == 0.0

    def test_clear_resets_everything(self, clock):
        cache = ResourceCache(clock=clock)
        cache.set("k1", "a", "image/png")
        cache.get("k1")
        cache.clear()
        stats = cache.get_stats()
        assert len(cache) == 0
        assert stats.hits == 0
        assert stats.total_size_bytes == 0

    def test_remove(self, clock):
        cache = ResourceCache(clock=clock)
        cache.set("k1", "a", "image/png")
        assert cache.remove("k1") is True
        assert cache.remove("k1") is False

    def test_maintenance_purges_expired(self, clock):
        cache = ResourceCache(ttl_minutes=1, clock=clock)
        cache.set("k1", "a", "image/png")
        clock.advance(30)
        cache.set("k2", "b", "image/png")
        clock.advance(31)
        assert cache.perform_maintenance() == 1
        assert cache.cached_ids() == ["k2"]

    def test_maintenance_trims_under_pressure(self, clock):
        cache = ResourceCache(max_entries=20, clock=clock)
        for i in range(20):
            cache.set(f"k{i:02d}", "a", "image/png")
        # 20 of 20 slots used: oldest 10% go
        assert cache.perform_maintenance() == 2
        assert cache.cached_ids()[0] == "k02"

    def test_maintenance_idle_cache(self, clock):
        cache = ResourceCache(max_entries=20, clock=clock)
        cache.set("k1", "a", "image/png")
        assert cache.perform_maintenance() == 0


class TestThreadSafety:
    def test_concurrent_writers(self, clock):
        cache = ResourceCache(max_entries=50, clock=clock)

        def writer(prefix: str) -> None:
            for i in range(200):
                cache.set(f"{prefix}{i}", "x" * 10, "image/png")
                cache.get(f"{prefix}{i}")

        threads = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = cache.get_stats()
        assert stats.size <= 50
        assert stats.total_size_bytes == stats.size * 10
