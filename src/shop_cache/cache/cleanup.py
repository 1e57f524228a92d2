from __future__ import annotations

import asyncio
import logging
import typing as t

from .memory import MemoryCacheService

_logger = logging.getLogger(__name__)


class CleanupTask:
    """Periodically sweeps expired entries out of a MemoryCacheService.

    The task is owned by whoever starts it and must be stopped on shutdown:

        cleanup = CleanupTask(cache, interval_seconds=300)
        cleanup.start()
        ...
        await cleanup.stop()

    It can also be used as ``async with CleanupTask(cache): ...``.
    """

    def __init__(self, cache: MemoryCacheService, interval_seconds: float = 300.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._cache = cache
        self._interval = interval_seconds
        self._task: t.Optional[asyncio.Task[None]] = None
        self._sweeps = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def sweeps(self) -> int:
        return self._sweeps

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="shop-cache-cleanup")
        _logger.debug("Cache cleanup started, interval=%ss", self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        _logger.debug("Cache cleanup stopped after %d sweeps", self._sweeps)

    def sweep(self) -> int:
        removed = self._cache.cleanup()
        self._sweeps += 1
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep()
            except Exception:
                _logger.exception("Cache cleanup sweep failed")

    async def __aenter__(self) -> "CleanupTask":
        self.start()
        return self

    async def __aexit__(self, *exc_info: t.Any) -> None:
        await self.stop()
