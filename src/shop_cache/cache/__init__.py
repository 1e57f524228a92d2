from .cleanup import CleanupTask
from .decorators import cached
from .factory import build_cache
from .memory import CacheEntry, CacheStats, MemoryCacheService
from .unified import UnifiedCacheService

__all__ = [
    "MemoryCacheService",
    "UnifiedCacheService",
    "CacheEntry",
    "CacheStats",
    "CleanupTask",
    "cached",
    "build_cache",
]
