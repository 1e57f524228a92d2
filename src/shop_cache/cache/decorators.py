from __future__ import annotations

import functools
import inspect
import json
import typing as t

from .memory import MemoryCacheService
from .unified import UnifiedCacheService

AnyCache = t.Union[MemoryCacheService, UnifiedCacheService]


def _default_key(func: t.Callable[..., t.Any], args: tuple, kwargs: dict) -> str:
    payload = json.dumps([list(args), kwargs], sort_keys=True, separators=(",", ":"), default=str)
    return f"{func.__qualname__}:{payload}"


def cached(
    cache: AnyCache,
    *,
    key: t.Optional[str] = None,
    key_builder: t.Optional[t.Callable[..., str]] = None,
    ttl_seconds: float = 300,
):
    """Memoize an async function in ``cache``.

    The key is ``key`` if given, else ``key_builder(*args, **kwargs)``, else
    the function's qualified name plus its JSON-encoded arguments. ``None``
    results are not stored since the cache reports a miss as ``None``.

        @cached(cache, key_builder=UnifiedCacheService.product_key, ttl_seconds=600)
        async def load_product(product_id): ...
    """

    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError("cached() only wraps async functions")

        async def read(cache_key: str):
            if isinstance(cache, UnifiedCacheService):
                return await cache.get(cache_key)
            return cache.get(cache_key)

        async def write(cache_key: str, value: t.Any) -> None:
            if isinstance(cache, UnifiedCacheService):
                await cache.set(cache_key, value, ttl_seconds)
            else:
                cache.set(cache_key, value, ttl_seconds)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if key is not None:
                cache_key = key
            elif key_builder is not None:
                cache_key = key_builder(*args, **kwargs)
            else:
                cache_key = _default_key(func, args, kwargs)

            hit = await read(cache_key)
            if hit is not None:
                return hit
            result = await func(*args, **kwargs)
            if result is not None:
                await write(cache_key, result)
            return result

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper

    return decorator
