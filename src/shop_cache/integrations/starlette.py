from __future__ import annotations

import contextlib
import logging
import typing as t
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.requests import Request

from shop_cache.cache.cleanup import CleanupTask
from shop_cache.cache.factory import build_cache
from shop_cache.cache.unified import UnifiedCacheService
from shop_cache.utils.config import CacheSettings

_logger = logging.getLogger(__name__)


def cache_lifespan(
    settings: t.Optional[CacheSettings] = None,
    *,
    cache_factory: t.Callable[[CacheSettings], UnifiedCacheService] = build_cache,
) -> t.Callable[[Starlette], t.AsyncContextManager[None]]:
    """Build a Starlette ``lifespan`` that owns the cache.

    On startup the cache is created, the expired-entry sweep is started and
    both are stored on ``app.state.cache`` / ``app.state.cache_cleanup``. On
    shutdown the sweep is stopped and the remote connection closed.

        app = Starlette(routes=..., lifespan=cache_lifespan())
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        resolved = settings or CacheSettings.from_env()
        cache = cache_factory(resolved)
        cleanup: t.Optional[CleanupTask] = None
        if resolved.memory.cleanup_enabled:
            cleanup = CleanupTask(cache.memory, interval_seconds=resolved.memory.cleanup_interval_seconds)
            cleanup.start()
        app.state.cache = cache
        app.state.cache_cleanup = cleanup
        _logger.info("Cache attached to application state")
        try:
            yield
        finally:
            if cleanup is not None:
                await cleanup.stop()
            await cache.close()
            _logger.info("Cache shut down")

    return lifespan


def get_cache(request: Request) -> UnifiedCacheService:
    return request.app.state.cache
