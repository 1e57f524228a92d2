"""shop_cache

Resolver-side caching for the seller storefront: an in-process LRU/TTL cache,
an optional shared Redis backend with transparent fallback to memory,
canonical key builders and pattern invalidation.
"""

from .cache import (
    CacheEntry,
    CacheStats,
    CleanupTask,
    MemoryCacheService,
    UnifiedCacheService,
    build_cache,
    cached,
)
from .storage import (
    InMemoryBackend,
    RedisBackend,
    RemoteBackend,
)
from .utils import CacheSettings

__all__ = [
    "MemoryCacheService",
    "UnifiedCacheService",
    "CacheEntry",
    "CacheStats",
    "CleanupTask",
    "cached",
    "build_cache",
    "RemoteBackend",
    "InMemoryBackend",
    "RedisBackend",
    "CacheSettings",
]

__version__ = "0.1.0"
