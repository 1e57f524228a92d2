from .base import InMemoryBackend, RemoteBackend, SerializationError, encode_value
from .redis_adapter import RedisBackend

__all__ = ["RemoteBackend", "InMemoryBackend", "RedisBackend", "SerializationError", "encode_value"]
