from __future__ import annotations

import base64
import json
import logging
import time
import typing as t

from shop_cache.monitoring.metrics import (
    cache_fallback_total,
    cache_remote_latency_seconds,
    cache_requests_total,
)
from shop_cache.storage.base import RemoteBackend, SerializationError, encode_value
from shop_cache.utils.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    with_retries,
    with_timeout,
)

from .memory import MemoryCacheService, check_key

_logger = logging.getLogger(__name__)

T = t.TypeVar("T")

_GLOB_CHARS = ("*", "?", "[")


class UnifiedCacheService:
    """One cache interface over an optional remote backend and the memory cache.

    When a remote backend is configured every operation tries it first. Any
    failure (error, timeout, open circuit) is logged, counted in
    ``cache_fallback_total`` and the operation is served by the in-process
    cache instead. Backend errors never reach the caller; only misuse such as
    a non-string key raises.
    """

    def __init__(
        self,
        memory: MemoryCacheService,
        remote: t.Optional[RemoteBackend] = None,
        *,
        remote_timeout_seconds: t.Optional[float] = 1.0,
        circuit_breaker: t.Optional[CircuitBreaker] = None,
        retry_attempts: int = 1,
        retry_backoff_ms: t.Optional[t.List[int]] = None,
    ) -> None:
        self._memory = memory
        self._remote = remote
        self._timeout = remote_timeout_seconds
        self._breaker = circuit_breaker
        self._retry_attempts = retry_attempts
        self._retry_backoff_ms = retry_backoff_ms or [50]
        self._fallbacks = 0

    @property
    def memory(self) -> MemoryCacheService:
        return self._memory

    @property
    def remote(self) -> t.Optional[RemoteBackend]:
        return self._remote

    @property
    def uses_remote(self) -> bool:
        return self._remote is not None

    async def _call_remote(self, operation: str, fn: t.Callable[[], t.Awaitable[T]]) -> T:
        async def _attempt() -> T:
            return await with_timeout(fn, self._timeout)

        async def _op() -> T:
            return await with_retries(_attempt, self._retry_attempts, self._retry_backoff_ms)

        started = time.perf_counter()
        try:
            if self._breaker is not None:
                return await self._breaker.run(_op)
            return await _op()
        finally:
            cache_remote_latency_seconds.observe(time.perf_counter() - started, operation=operation)

    def _record_fallback(self, operation: str, key: str, exc: BaseException) -> None:
        self._fallbacks += 1
        cache_fallback_total.inc(operation=operation)
        if isinstance(exc, CircuitOpenError):
            # the failures that opened the circuit were already logged
            _logger.debug("Remote cache %s skipped for key=%s: circuit open", operation, key)
            return
        _logger.warning(
            "Remote cache %s failed for key=%s, falling back to memory: %r",
            operation,
            key,
            exc,
        )

    async def get(self, key: str) -> t.Optional[t.Any]:
        check_key(key)
        if self._remote is not None:
            remote = self._remote
            try:
                value = await self._call_remote("get", lambda: remote.get(key))
            except Exception as exc:  # noqa: BLE001 - any backend failure falls back
                self._record_fallback("get", key, exc)
            else:
                cache_requests_total.inc(backend="remote", result="miss" if value is None else "hit")
                return value

        value = self._memory.get(key)
        cache_requests_total.inc(backend="memory", result="miss" if value is None else "hit")
        return value

    def _resolve_ttl(self, ttl_seconds: t.Optional[float]) -> float:
        return self._memory.default_ttl_seconds if ttl_seconds is None else ttl_seconds

    async def set(self, key: str, value: t.Any, ttl_seconds: t.Optional[float] = None) -> None:
        """Store ``value`` for ``ttl_seconds`` (the memory cache's default when None).

        A value written to the remote backend replaces any copy the memory
        cache kept from an earlier outage, so a later fallback cannot serve
        it. A value the remote backend cannot encode is kept in memory only
        and the remote copy of ``key`` is dropped.
        """
        check_key(key)
        ttl = self._resolve_ttl(ttl_seconds)
        if self._remote is not None:
            remote = self._remote
            try:
                # encoding errors never count against the breaker
                payload = encode_value(value)
            except SerializationError as exc:
                self._record_fallback("set", key, exc)
                await self._drop_remote(key)
            else:
                try:
                    await self._call_remote("set", lambda: remote.setex_raw(key, ttl, payload))
                except Exception as exc:  # noqa: BLE001
                    self._record_fallback("set", key, exc)
                else:
                    self._memory.delete(key)
                    return
        self._memory.set(key, value, ttl)

    async def _drop_remote(self, key: str) -> None:
        remote = self._remote
        if remote is None:
            return
        try:
            await self._call_remote("delete", lambda: remote.delete(key))
        except Exception as exc:  # noqa: BLE001
            self._record_fallback("delete", key, exc)

    async def delete(self, key: str) -> bool:
        check_key(key)
        removed = False
        if self._remote is not None:
            remote = self._remote
            try:
                removed = bool(await self._call_remote("delete", lambda: remote.delete(key)))
            except Exception as exc:  # noqa: BLE001
                self._record_fallback("delete", key, exc)
        # memory may hold a copy written during an earlier outage
        return self._memory.delete(key) or removed

    async def clear(self) -> None:
        if self._remote is not None:
            remote = self._remote
            try:
                await self._call_remote("clear", remote.flush)
            except Exception as exc:  # noqa: BLE001
                self._record_fallback("clear", "*", exc)
        self._memory.clear()

    async def invalidate(self, keys: t.Sequence[str] = ()) -> None:
        """Delete the given keys, or everything when ``keys`` is empty."""
        if not keys:
            await self.clear()
            _logger.info("Cache cleared")
            return
        for key in keys:
            await self.delete(key)
        _logger.debug("Invalidated cache keys %s", list(keys))

    async def invalidate_by_pattern(self, pattern: str) -> int:
        """Remove keys matching a glob ``pattern``.

        The remote backend removes exactly the matching keys. The memory cache
        does not filter: a wildcard pattern clears it entirely so no stale
        entry can survive, and a pattern without wildcards deletes that key.
        Returns the number of keys known to be removed.
        """
        check_key(pattern)
        removed = 0
        if self._remote is not None:
            remote = self._remote

            async def _invalidate() -> int:
                matched = await remote.keys(pattern)
                if not matched:
                    return 0
                return await remote.delete(*matched)

            try:
                removed += await self._call_remote("invalidate", _invalidate)
            except Exception as exc:  # noqa: BLE001
                self._record_fallback("invalidate", pattern, exc)

        if any(ch in pattern for ch in _GLOB_CHARS):
            removed += len(self._memory)
            self._memory.clear()
        elif self._memory.delete(pattern):
            removed += 1
        return removed

    async def get_or_set(
        self,
        key: str,
        factory: t.Callable[[], t.Awaitable[T]],
        ttl_seconds: t.Optional[float] = None,
    ) -> T:
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await factory()
        if value is not None:
            await self.set(key, value, ttl_seconds)
        return value

    def get_stats(self) -> t.Dict[str, t.Any]:
        memory_stats = self._memory.get_stats().as_dict()
        if self._remote is None:
            return {"type": "memory-only", "memory": memory_stats}
        degraded = self._breaker is not None and self._breaker.state != CircuitState.CLOSED
        return {
            "type": "redis-with-memory-fallback",
            "remote": "degraded" if degraded else "connected",
            "fallbacks": self._fallbacks,
            "memory": memory_stats,
        }

    async def close(self) -> None:
        if self._remote is not None:
            await self._remote.close()

    # Canonical key names. Keep prefixes stable; invalidation patterns rely on them.

    @staticmethod
    def product_key(product_id: str) -> str:
        return f"product:{product_id}"

    @staticmethod
    def user_products_key(user_id: str, page: int = 1) -> str:
        return f"user:{user_id}:products:page:{page}"

    @staticmethod
    def categories_key() -> str:
        return "categories:all"

    @staticmethod
    def search_key(query: str, filters: t.Optional[t.Mapping[str, t.Any]] = None) -> str:
        encoded = json.dumps(filters or {}, sort_keys=True, separators=(",", ":"), default=str)
        filter_hash = base64.urlsafe_b64encode(encoded.encode("utf-8")).decode("ascii")
        return f"search:{query}:{filter_hash}"
