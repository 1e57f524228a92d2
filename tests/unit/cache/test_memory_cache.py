"""Unit tests for MemoryCacheService."""

import time

import pytest

from shop_cache.cache.memory import MemoryCacheService
from shop_cache.monitoring.metrics import cache_evictions_total


def _assert_list_matches_map(cache: MemoryCacheService) -> None:
    """Walk the list both ways and compare with the lookup map."""
    forward = cache.keys()
    backward = []
    node = cache._tail.prev
    while node is not cache._head:
        backward.append(node.key)
        node = node.prev
    assert forward == list(reversed(backward))
    assert sorted(forward) == sorted(cache._map)


class TestMemoryCacheBasics:
    """Test get/set/delete/clear."""

    def test_cache_get_miss(self, memory_cache):
        """Test cache miss returns None."""
        assert memory_cache.get("nonexistent") is None

    def test_cache_set_and_get(self, memory_cache):
        """Test basic set and get, various value types."""
        memory_cache.set("key1", "value1")
        memory_cache.set("key2", 42)
        memory_cache.set("key3", {"nested": "dict"})
        memory_cache.set("key4", ["list", "items"])

        assert memory_cache.get("key1") == "value1"
        assert memory_cache.get("key2") == 42
        assert memory_cache.get("key3") == {"nested": "dict"}
        assert memory_cache.get("key4") == ["list", "items"]

    def test_get_returns_same_reference(self, memory_cache):
        """Test values are stored by reference, not copied."""
        product = {"id": "p1", "images": []}
        memory_cache.set("product:p1", product)
        assert memory_cache.get("product:p1") is product

    def test_delete_present_and_absent(self, memory_cache):
        """Test delete reports whether something was removed."""
        memory_cache.set("to_delete", "value")

        assert memory_cache.delete("to_delete") is True
        assert memory_cache.get("to_delete") is None
        assert memory_cache.delete("to_delete") is False
        assert memory_cache.delete("never-set") is False

    def test_clear_empties_fully(self, memory_cache):
        """Test clear removes every entry and resets the list."""
        for i in range(5):
            memory_cache.set(f"key{i}", f"value{i}")

        memory_cache.clear()

        assert memory_cache.get_stats().size == 0
        assert memory_cache.keys() == []
        for i in range(5):
            assert memory_cache.get(f"key{i}") is None
        assert memory_cache._head.next is memory_cache._tail
        assert memory_cache._tail.prev is memory_cache._head

        # still usable after clear
        memory_cache.set("again", 1)
        assert memory_cache.get("again") == 1

    def test_non_string_key_raises(self, memory_cache):
        """Test misuse surfaces as TypeError."""
        with pytest.raises(TypeError):
            memory_cache.get(1)
        with pytest.raises(TypeError):
            memory_cache.set(None, "value")
        with pytest.raises(TypeError):
            memory_cache.delete(b"bytes")

    def test_invalid_capacity(self):
        """Test capacity below one is rejected."""
        with pytest.raises(ValueError):
            MemoryCacheService(capacity=0)


class TestMemoryCacheEviction:
    """Test capacity and LRU ordering."""

    def test_capacity_never_exceeded(self, clock):
        """Test inserting C+1 distinct keys evicts exactly the first one."""
        cache = MemoryCacheService(capacity=3, clock=clock)
        for i in range(4):
            cache.set(f"key{i}", i)
            assert len(cache) <= 3

        assert cache.get("key0") is None
        assert [cache.get(f"key{i}") for i in range(1, 4)] == [1, 2, 3]
        assert cache_evictions_total.total() == 1

    def test_get_refreshes_recency(self, clock):
        """Test a read protects the entry from eviction."""
        cache = MemoryCacheService(capacity=2, clock=clock)
        cache.set("A", "a")
        cache.set("B", "b")
        cache.get("A")
        cache.set("C", "c")

        assert cache.get("A") == "a"
        assert cache.get("B") is None
        assert cache.get("C") == "c"

    def test_lru_eviction_after_mixed_access(self, clock):
        """Test LRU eviction when several entries were touched."""
        cache = MemoryCacheService(capacity=3, clock=clock)
        cache.set("key1", "value1")
        cache.set("key2", "value2")
        cache.set("key3", "value3")
        cache.get("key1")
        cache.get("key3")

        cache.set("key4", "value4")

        assert cache.get("key1") == "value1"
        assert cache.get("key2") is None
        assert cache.get("key3") == "value3"
        assert cache.get("key4") == "value4"

    def test_update_in_place_does_not_evict(self, clock):
        """Test re-setting an existing key at capacity keeps it."""
        cache = MemoryCacheService(capacity=1, clock=clock)
        cache.set("A", "v1")
        cache.set("A", "v2")

        assert cache.get("A") == "v2"
        assert len(cache) == 1
        assert cache_evictions_total.total() == 0

    def test_update_promotes_to_most_recent(self, clock):
        """Test set on an existing key moves it to the front."""
        cache = MemoryCacheService(capacity=2, clock=clock)
        cache.set("A", 1)
        cache.set("B", 2)
        cache.set("A", 3)
        cache.set("C", 4)

        assert cache.get("B") is None
        assert cache.get("A") == 3

    def test_keys_ordered_most_recent_first(self, memory_cache):
        """Test list order mirrors recency."""
        memory_cache.set("a", 1)
        memory_cache.set("b", 2)
        memory_cache.set("c", 3)
        memory_cache.get("a")

        assert memory_cache.keys() == ["a", "c", "b"]

    def test_list_and_map_stay_consistent(self, clock):
        """Test map/list agreement across a mixed workload."""
        cache = MemoryCacheService(capacity=4, clock=clock)
        for i in range(10):
            cache.set(f"k{i % 6}", i, ttl_seconds=5 if i % 3 else 1)
            if i % 2:
                cache.get(f"k{(i + 1) % 6}")
            if i % 4 == 0:
                cache.delete(f"k{(i + 2) % 6}")
            clock.advance(0.7)
            _assert_list_matches_map(cache)
        cache.cleanup()
        _assert_list_matches_map(cache)


class TestMemoryCacheExpiry:
    """Test TTL behaviour."""

    def test_ttl_expiration(self, memory_cache, clock):
        """Test an entry disappears once its TTL has passed."""
        memory_cache.set("expires", "value", ttl_seconds=1)
        assert memory_cache.get("expires") == "value"

        clock.advance(1.1)

        assert memory_cache.get_stats().size == 1  # not swept yet
        assert memory_cache.get("expires") is None
        assert memory_cache.get_stats().size == 0

    def test_cleanup_sweeps_untouched_entries(self, memory_cache, clock):
        """Test cleanup removes expired entries regardless of recency."""
        memory_cache.set("short1", 1, ttl_seconds=1)
        memory_cache.set("long", 2, ttl_seconds=60)
        memory_cache.set("short2", 3, ttl_seconds=1)
        memory_cache.get("short1")

        clock.advance(2)
        assert memory_cache.get_stats().expired == 2

        assert memory_cache.cleanup() == 2
        stats = memory_cache.get_stats()
        assert stats.size == 1
        assert stats.expired == 0
        assert memory_cache.get("long") == 2

    def test_expired_entry_occupies_capacity_until_removed(self, clock):
        """Test an expired but unswept entry still counts toward size."""
        cache = MemoryCacheService(capacity=2, clock=clock)
        cache.set("stale", 1, ttl_seconds=1)
        cache.set("fresh", 2, ttl_seconds=60)
        clock.advance(2)

        assert len(cache) == 2
        cache.set("new", 3)
        # "stale" was the LRU node and is the one evicted
        assert cache.keys() == ["new", "fresh"]

    def test_set_refreshes_expiry(self, memory_cache, clock):
        """Test re-setting a key pushes its deadline out."""
        memory_cache.set("k", "v1", ttl_seconds=1)
        clock.advance(0.9)
        memory_cache.set("k", "v2", ttl_seconds=1)
        clock.advance(0.9)

        assert memory_cache.get("k") == "v2"

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_expires_immediately(self, memory_cache, ttl):
        """Test TTL <= 0 is never served."""
        memory_cache.set("gone", "value", ttl_seconds=ttl)
        assert memory_cache.get("gone") is None
        assert "gone" not in memory_cache

    def test_non_positive_ttl_does_not_evict(self, clock):
        """Test a dead-on-arrival entry never pushes out a live one."""
        cache = MemoryCacheService(capacity=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.set("dead", 3, ttl_seconds=0)

        assert cache.keys() == ["b", "a"]
        assert cache_evictions_total.total() == 0
        _assert_list_matches_map(cache)

    def test_non_positive_ttl_drops_existing_entry(self, memory_cache):
        """Test re-setting a key with TTL <= 0 removes the old value."""
        memory_cache.set("k", "old", ttl_seconds=60)
        memory_cache.set("other", 1)

        memory_cache.set("k", "new", ttl_seconds=-1)

        assert memory_cache.get("k") is None
        assert memory_cache.keys() == ["other"]
        _assert_list_matches_map(memory_cache)

    def test_default_ttl_is_one_hour(self, clock):
        """Test entries without explicit TTL live for an hour."""
        cache = MemoryCacheService(capacity=5, clock=clock)
        cache.set("k", "v")
        clock.advance(3599)
        assert cache.get("k") == "v"
        clock.advance(2)
        assert cache.get("k") is None

    def test_real_clock_expiry(self):
        """Test TTL with the wall clock."""
        cache = MemoryCacheService(capacity=10)
        cache.set("custom", "value", ttl_seconds=0.1)
        cache.set("default", "value2")

        time.sleep(0.15)

        assert cache.get("custom") is None
        assert cache.get("default") == "value2"


class TestMemoryCacheIntrospection:
    """Test stats and helpers."""

    def test_stats(self, clock):
        """Test get_stats reports size, capacity and usage."""
        cache = MemoryCacheService(capacity=8, clock=clock)
        for i in range(3):
            cache.set(f"k{i}", i)

        stats = cache.get_stats()
        assert stats.size == 3
        assert stats.capacity == 8
        assert stats.usage_percent == 37.5
        assert stats.as_dict() == {"size": 3, "capacity": 8, "usage_percent": 37.5, "expired": 0}

    def test_stats_has_no_side_effects(self, memory_cache, clock):
        """Test get_stats does not sweep expired entries."""
        memory_cache.set("k", "v", ttl_seconds=1)
        clock.advance(5)
        memory_cache.get_stats()
        assert len(memory_cache) == 1

    def test_contains_honours_expiry(self, memory_cache, clock):
        """Test membership ignores expired entries without removing them."""
        memory_cache.set("k", "v", ttl_seconds=1)
        assert "k" in memory_cache
        clock.advance(2)
        assert "k" not in memory_cache
        assert len(memory_cache) == 1
        assert 42 not in memory_cache

    def test_invalidate_matching(self, memory_cache):
        """Test glob invalidation only touches matching keys."""
        memory_cache.set("product:1", 1)
        memory_cache.set("product:2", 2)
        memory_cache.set("categories:all", [])

        assert memory_cache.invalidate_matching("product:*") == 2
        assert memory_cache.keys() == ["categories:all"]
