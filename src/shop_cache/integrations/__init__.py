"""Framework integrations for the cache layer."""

from .starlette import cache_lifespan, get_cache

__all__ = ["cache_lifespan", "get_cache"]
