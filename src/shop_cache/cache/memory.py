from __future__ import annotations

import fnmatch
import logging
import time
import typing as t
from dataclasses import dataclass

from shop_cache.monitoring.metrics import cache_evictions_total

_logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


def check_key(key: t.Any) -> None:
    if not isinstance(key, str):
        raise TypeError(f"cache keys must be str, got {type(key).__name__}")


class CacheEntry:
    """A node of the recency list."""

    __slots__ = ("key", "value", "expiry", "prev", "next")

    def __init__(self, key: str, value: t.Any, expiry: float) -> None:
        self.key = key
        self.value = value
        self.expiry = expiry
        self.prev: t.Optional[CacheEntry] = None
        self.next: t.Optional[CacheEntry] = None

    def is_expired(self, now: float) -> bool:
        return now >= self.expiry


@dataclass(frozen=True)
class CacheStats:
    size: int
    capacity: int
    usage_percent: float
    expired: int = 0

    def as_dict(self) -> t.Dict[str, t.Any]:
        return {
            "size": self.size,
            "capacity": self.capacity,
            "usage_percent": self.usage_percent,
            "expired": self.expired,
        }


class MemoryCacheService:
    """In-process LRU cache with per-entry TTL.

    Entries live in a dict for lookup and in a doubly-linked list bounded by
    two sentinels for recency. The entry next to ``_head`` is the most recently
    used one, the entry next to ``_tail`` is evicted first.

    One instance is meant to be created at startup and shared by reference.
    It is not thread-safe; it assumes a single event loop.
    """

    def __init__(
        self,
        capacity: int = 1000,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: t.Callable[[], float] = time.time,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._map: t.Dict[str, CacheEntry] = {}
        self._head = CacheEntry("__head__", None, float("inf"))
        self._tail = CacheEntry("__tail__", None, float("inf"))
        self._head.next = self._tail
        self._tail.prev = self._head

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def default_ttl_seconds(self) -> float:
        return self._default_ttl

    # -- list primitives -------------------------------------------------

    def _unlink(self, entry: CacheEntry) -> None:
        entry.prev.next = entry.next  # type: ignore[union-attr]
        entry.next.prev = entry.prev  # type: ignore[union-attr]
        entry.prev = entry.next = None

    def _push_front(self, entry: CacheEntry) -> None:
        first = self._head.next
        entry.prev = self._head
        entry.next = first
        first.prev = entry  # type: ignore[union-attr]
        self._head.next = entry

    def _move_to_front(self, entry: CacheEntry) -> None:
        self._unlink(entry)
        self._push_front(entry)

    def _pop_back(self) -> t.Optional[CacheEntry]:
        last = self._tail.prev
        if last is None or last is self._head:
            return None
        self._unlink(last)
        return last

    def _remove(self, entry: CacheEntry) -> None:
        self._unlink(entry)
        del self._map[entry.key]

    # -- public API ------------------------------------------------------

    def get(self, key: str) -> t.Optional[t.Any]:
        check_key(key)
        entry = self._map.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            # expired entries are dropped, never promoted
            self._remove(entry)
            return None
        self._move_to_front(entry)
        return entry.value

    def set(self, key: str, value: t.Any, ttl_seconds: t.Optional[float] = None) -> None:
        check_key(key)
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        entry = self._map.get(key)
        if ttl <= 0:
            # expires immediately: drop any existing copy and store nothing
            if entry is not None:
                self._remove(entry)
            return
        expiry = self._clock() + ttl
        if entry is not None:
            entry.value = value
            entry.expiry = expiry
            self._move_to_front(entry)
            return

        if len(self._map) >= self._capacity:
            evicted = self._pop_back()
            if evicted is not None:
                del self._map[evicted.key]
                cache_evictions_total.inc()
                _logger.debug("Evicted LRU entry %s", evicted.key)

        entry = CacheEntry(key, value, expiry)
        self._map[key] = entry
        self._push_front(entry)

    def delete(self, key: str) -> bool:
        check_key(key)
        entry = self._map.get(key)
        if entry is None:
            return False
        self._remove(entry)
        return True

    def clear(self) -> None:
        self._map.clear()
        self._head.next = self._tail
        self._tail.prev = self._head

    def cleanup(self) -> int:
        """Drop every expired entry, regardless of recency. Returns the count removed."""
        now = self._clock()
        expired = [entry for entry in self._map.values() if entry.is_expired(now)]
        for entry in expired:
            self._remove(entry)
        if expired:
            _logger.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    def invalidate_matching(self, pattern: str) -> int:
        """Delete keys matching a glob ``pattern``. Returns the count removed."""
        matched = [entry for key, entry in self._map.items() if fnmatch.fnmatchcase(key, pattern)]
        for entry in matched:
            self._remove(entry)
        return len(matched)

    def keys(self) -> t.List[str]:
        """Keys from most to least recently used, expired ones included."""
        out: t.List[str] = []
        node = self._head.next
        while node is not None and node is not self._tail:
            out.append(node.key)
            node = node.next
        return out

    def get_stats(self) -> CacheStats:
        now = self._clock()
        size = len(self._map)
        expired = sum(1 for entry in self._map.values() if entry.is_expired(now))
        return CacheStats(
            size=size,
            capacity=self._capacity,
            usage_percent=round(size / self._capacity * 100, 2),
            expired=expired,
        )

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, key: object) -> bool:
        entry = self._map.get(key) if isinstance(key, str) else None
        return entry is not None and not entry.is_expired(self._clock())
