from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional


@dataclass
class MemoryConfig:
    capacity: int = 1000
    default_ttl_seconds: int = 3600
    cleanup_enabled: bool = True
    cleanup_interval_seconds: float = 300.0


@dataclass
class RemoteConfig:
    url: Optional[str] = None  # None keeps the cache memory-only
    prefix: str = "shop"
    timeout_seconds: float = 1.0

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass
class ResilienceConfig:
    circuit_breaker_enabled: bool = True
    failure_threshold: int = 5
    reset_timeout_seconds: float = 30.0
    retry_max_attempts: int = 1
    retry_backoff_ms: List[int] = dataclasses.field(default_factory=lambda: [50])


@dataclass
class CacheSettings:
    memory: MemoryConfig = dataclasses.field(default_factory=MemoryConfig)
    remote: RemoteConfig = dataclasses.field(default_factory=RemoteConfig)
    resilience: ResilienceConfig = dataclasses.field(default_factory=ResilienceConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheSettings":
        def build(dc_cls, key):
            values = data.get(key, {})
            return dc_cls(**values)

        return cls(
            memory=build(MemoryConfig, "memory"),
            remote=build(RemoteConfig, "remote"),
            resilience=build(ResilienceConfig, "resilience"),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CacheSettings":
        """Read settings from the environment.

        ``REDIS_URL`` switches the remote backend on. The remaining variables
        are optional overrides:

        - ``CACHE_CAPACITY``
        - ``CACHE_DEFAULT_TTL``
        - ``CACHE_CLEANUP_INTERVAL`` (seconds, ``0`` disables the sweep)
        - ``CACHE_REMOTE_TIMEOUT`` (seconds)
        - ``CACHE_REDIS_PREFIX``
        """
        env = os.environ if environ is None else environ
        settings = cls()

        url = env.get("REDIS_URL")
        if url:
            settings.remote.url = url
        if "CACHE_REDIS_PREFIX" in env:
            settings.remote.prefix = env["CACHE_REDIS_PREFIX"]
        if "CACHE_REMOTE_TIMEOUT" in env:
            settings.remote.timeout_seconds = _parse_number(env, "CACHE_REMOTE_TIMEOUT", float)

        if "CACHE_CAPACITY" in env:
            settings.memory.capacity = _parse_number(env, "CACHE_CAPACITY", int)
        if "CACHE_DEFAULT_TTL" in env:
            settings.memory.default_ttl_seconds = _parse_number(env, "CACHE_DEFAULT_TTL", int)
        if "CACHE_CLEANUP_INTERVAL" in env:
            interval = _parse_number(env, "CACHE_CLEANUP_INTERVAL", float)
            settings.memory.cleanup_enabled = interval > 0
            if interval > 0:
                settings.memory.cleanup_interval_seconds = interval
        return settings


def _parse_number(env: Mapping[str, str], name: str, kind):
    raw = env[name]
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
