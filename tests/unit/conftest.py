"""Shared fixtures and mocks for unit tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from shop_cache.cache.memory import MemoryCacheService
from shop_cache.cache.unified import UnifiedCacheService
from shop_cache.monitoring import metrics
from shop_cache.storage.base import InMemoryBackend


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_metrics():
    """Metrics are module-level; start every test from zero."""
    metrics.reset_all()
    yield
    metrics.reset_all()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    """Memory cache driven by the fake clock."""
    return MemoryCacheService(capacity=10, clock=clock)


@pytest.fixture
def remote_backend(clock):
    """JSON round-tripping in-memory stand-in for Redis."""
    return InMemoryBackend(clock=clock)


@pytest.fixture
def failing_remote():
    """Remote backend whose every call raises."""
    remote = AsyncMock()
    error = ConnectionError("connection refused")
    remote.get = AsyncMock(side_effect=error)
    remote.setex = AsyncMock(side_effect=error)
    remote.setex_raw = AsyncMock(side_effect=error)
    remote.delete = AsyncMock(side_effect=error)
    remote.keys = AsyncMock(side_effect=error)
    remote.flush = AsyncMock(side_effect=error)
    remote.ping = AsyncMock(return_value=False)
    remote.close = AsyncMock(return_value=None)
    return remote


@pytest.fixture
def unified_memory_only(memory_cache):
    return UnifiedCacheService(memory_cache)


@pytest.fixture
def unified_with_remote(memory_cache, remote_backend):
    return UnifiedCacheService(memory_cache, remote_backend)


@pytest.fixture
def mock_redis_client():
    """Mock redis.asyncio client."""
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.keys = AsyncMock(return_value=[])
    client.aclose = AsyncMock(return_value=None)
    return client
