from __future__ import annotations

import fnmatch
import json
import time
import typing as t
from abc import ABC, abstractmethod


class SerializationError(ValueError):
    """A value could not be encoded for a remote backend."""


def encode_value(value: t.Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as exc:
        raise SerializationError(str(exc)) from exc


class RemoteBackend(ABC):
    """Key-value protocol the unified cache expects from a shared backend.

    Values are stored as JSON, so callers get back an equal copy rather than
    the object they stored. ``setex`` encodes and hands the payload to
    ``setex_raw``; callers that already hold an encoded payload can use
    ``setex_raw`` directly.
    """

    @abstractmethod
    async def get(self, key: str) -> t.Optional[t.Any]:  # pragma: no cover - interface
        raise NotImplementedError

    async def setex(self, key: str, ttl_seconds: float, value: t.Any) -> None:
        await self.setex_raw(key, ttl_seconds, encode_value(value))

    @abstractmethod
    async def setex_raw(self, key: str, ttl_seconds: float, payload: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def delete(self, *keys: str) -> int:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def keys(self, pattern: str) -> t.List[str]:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def flush(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:
        return None


class InMemoryBackend(RemoteBackend):
    """A dict-backed backend for dev/test.

    Speaks the same protocol as RedisBackend, including JSON round-tripping,
    so it can stand in for Redis without a server.
    """

    def __init__(self, *, clock: t.Callable[[], float] = time.time) -> None:
        self._data: t.Dict[str, t.Tuple[float, str]] = {}
        self._clock = clock

    def _live(self, key: str) -> t.Optional[str]:
        item = self._data.get(key)
        if item is None:
            return None
        expires_at, raw = item
        if expires_at <= self._clock():
            self._data.pop(key, None)
            return None
        return raw

    async def get(self, key: str) -> t.Optional[t.Any]:
        raw = self._live(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def setex_raw(self, key: str, ttl_seconds: float, payload: str) -> None:
        if ttl_seconds <= 0:
            self._data.pop(key, None)
            return
        self._data[key] = (self._clock() + ttl_seconds, payload)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                removed += 1
            self._data.pop(key, None)
        return removed

    async def keys(self, pattern: str) -> t.List[str]:
        return [key for key in list(self._data) if fnmatch.fnmatchcase(key, pattern) and self._live(key) is not None]

    async def flush(self) -> None:
        self._data.clear()

    async def ping(self) -> bool:
        return True
