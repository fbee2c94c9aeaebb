"""Redis adapter – cache backend for the event store."""
from espm.adapters.redis.cache import RedisCache

__all__ = ["RedisCache"]
