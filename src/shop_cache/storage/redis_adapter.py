from __future__ import annotations

import json
import logging
import math
import typing as t

from redis.asyncio import Redis

from .base import RemoteBackend

_logger = logging.getLogger(__name__)


class RedisBackend(RemoteBackend):
    """Redis-backed remote cache.

    - Values are stored as JSON strings at key: `{prefix}:{key}`
    - Writes go through `setex_raw` (`SETEX`); a non-positive TTL deletes the key instead
    - `keys()` takes and returns unprefixed keys
    - `flush()` only removes keys under the prefix, never `FLUSHDB`
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        prefix: str = "shop",
        socket_timeout: t.Optional[float] = None,
        client: t.Optional[Redis] = None,
    ) -> None:
        self._url = url
        self._prefix = prefix.rstrip(":")
        if client is not None:
            self._redis = client
        else:
            self._redis = Redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
            )

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def _strip(self, full_key: str) -> str:
        return full_key[len(self._prefix) + 1 :]

    async def get(self, key: str) -> t.Optional[t.Any]:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def setex_raw(self, key: str, ttl_seconds: float, payload: str) -> None:
        if ttl_seconds <= 0:
            await self._redis.delete(self._key(key))
            return
        # SETEX takes whole seconds
        await self._redis.setex(self._key(key), max(1, math.ceil(ttl_seconds)), payload)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._redis.delete(*(self._key(k) for k in keys)))

    async def keys(self, pattern: str) -> t.List[str]:
        found = await self._redis.keys(self._key(pattern))
        return [self._strip(k) for k in found]

    async def flush(self) -> None:
        found = await self._redis.keys(self._key("*"))
        if found:
            await self._redis.delete(*found)

    async def ping(self) -> bool:
        try:
            pong = await self._redis.ping()
            return bool(pong)
        except Exception:
            _logger.debug("Redis ping failed for %s", self._url, exc_info=True)
            return False

    async def close(self) -> None:
        await self._redis.aclose()
