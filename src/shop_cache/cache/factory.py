from __future__ import annotations

import logging
import typing as t

from shop_cache.storage.base import RemoteBackend
from shop_cache.utils.config import CacheSettings
from shop_cache.utils.resilience import CircuitBreaker, CircuitBreakerConfig

from .memory import MemoryCacheService
from .unified import UnifiedCacheService

_logger = logging.getLogger(__name__)


def build_remote(settings: CacheSettings) -> t.Optional[RemoteBackend]:
    if not settings.remote.enabled:
        return None
    from shop_cache.storage.redis_adapter import RedisBackend

    try:
        return RedisBackend(
            settings.remote.url,  # type: ignore[arg-type]
            prefix=settings.remote.prefix,
            socket_timeout=settings.remote.timeout_seconds,
        )
    except Exception:
        # e.g. a malformed URL; the cache still works from memory
        _logger.warning("Redis cache initialization failed, falling back to memory cache", exc_info=True)
        return None


def build_cache(
    settings: t.Optional[CacheSettings] = None,
    *,
    remote: t.Optional[RemoteBackend] = None,
) -> UnifiedCacheService:
    """Create the process-wide cache from ``settings``.

    Pass ``remote`` to use a specific backend instead of the one described by
    ``settings.remote``.
    """
    settings = settings or CacheSettings.from_env()
    memory = MemoryCacheService(
        capacity=settings.memory.capacity,
        default_ttl_seconds=settings.memory.default_ttl_seconds,
    )
    if remote is None:
        remote = build_remote(settings)

    resilience = settings.resilience
    breaker = None
    if resilience.circuit_breaker_enabled:
        breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=resilience.failure_threshold,
                reset_timeout_seconds=resilience.reset_timeout_seconds,
            )
        )

    cache = UnifiedCacheService(
        memory,
        remote,
        remote_timeout_seconds=settings.remote.timeout_seconds,
        circuit_breaker=breaker,
        retry_attempts=resilience.retry_max_attempts,
        retry_backoff_ms=resilience.retry_backoff_ms,
    )
    _logger.info(
        "Cache ready: %s, capacity=%d",
        "redis-with-memory-fallback" if cache.uses_remote else "memory-only",
        settings.memory.capacity,
    )
    return cache
