"""Utility module for configuration and resilience patterns."""

from .config import CacheSettings, MemoryConfig, RemoteConfig, ResilienceConfig
from .resilience import CircuitBreaker, CircuitBreakerConfig, CircuitOpenError, CircuitState, with_retries, with_timeout

__all__ = [
    "CacheSettings",
    "MemoryConfig",
    "RemoteConfig",
    "ResilienceConfig",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitOpenError",
    "CircuitState",
    "with_retries",
    "with_timeout",
]
