"""Application cache – cache port, key scheme and in-memory backend."""
from espm.application.cache.keys import CacheKey
from espm.application.cache.memory import InMemoryCache
from espm.application.cache.port import Cache

__all__ = ["Cache", "CacheKey", "InMemoryCache"]
