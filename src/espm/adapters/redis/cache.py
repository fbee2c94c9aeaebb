"""Redis adapter – RedisCache."""
from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any, AsyncIterator

from espm.application.cache.port import Cache
from espm.kernel.errors import CacheError, CacheMissError
from espm.observability.logging import get_logger

if TYPE_CHECKING:
    from espm.config.settings import RedisSettings

logger = get_logger(__name__)


def _require_redis() -> Any:
    try:
        import redis.asyncio as aioredis
        return aioredis
    except ImportError as exc:
        raise ImportError("Install 'espm[redis]' to use the Redis adapter") from exc


def _retry_policy(retries: int) -> Any:
    from redis.asyncio.retry import Retry
    from redis.backoff import ExponentialBackoff

    return Retry(ExponentialBackoff(), retries)


@contextlib.asynccontextmanager
async def _translate(operation: str, **detail: Any) -> AsyncIterator[None]:
    from redis.exceptions import RedisError

    try:
        yield
    except (RedisError, OSError) as exc:
        raise CacheError(f"Redis {operation} failed", detail=detail, cause=exc) from exc


class RedisCache(Cache):
    """Async Redis implementation of :class:`~espm.application.cache.Cache`.

    Every write uses the same TTL (``ttl_seconds``; ``None`` or ``0`` means
    no expiry).  Batch reads are a single ``MGET``; batch writes go through
    a non-transactional pipeline so they cost one round trip.
    """

    def __init__(self, url: str, ttl_seconds: int | None = None, **kwargs: Any) -> None:
        aioredis = _require_redis()
        self._client = aioredis.from_url(url, **kwargs)
        self._ttl = ttl_seconds or None

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> RedisCache:
        """Build a pooled client from :class:`~espm.config.settings.RedisSettings`.

        redis-py has a single socket timeout, so ``read_timeout`` and
        ``write_timeout`` collapse into the larger of the two.
        """
        return cls(
            settings.url,
            ttl_seconds=settings.ttl_seconds,
            max_connections=settings.pool_size,
            socket_connect_timeout=settings.dial_timeout,
            socket_timeout=max(settings.read_timeout, settings.write_timeout),
            retry=_retry_policy(settings.max_retries),
            retry_on_timeout=settings.max_retries > 0,
        )

    async def _get(self, key: str) -> bytes:
        async with _translate("get", key=key):
            value = await self._client.get(key)
        if value is None:
            raise CacheMissError(key)
        return value

    async def _set(self, key: str, value: bytes) -> None:
        async with _translate("set", key=key):
            await self._client.set(key, value, ex=self._ttl)

    async def _delete(self, key: str) -> None:
        async with _translate("delete", key=key):
            await self._client.delete(key)

    async def _get_many(self, keys: list[str]) -> dict[str, bytes]:
        async with _translate("get_many", count=len(keys)):
            values = await self._client.mget(keys)
        return {key: value for key, value in zip(keys, values) if value is not None}

    async def _set_many(self, items: dict[str, bytes]) -> None:
        async with _translate("set_many", count=len(items)):
            async with self._client.pipeline(transaction=False) as pipe:
                for key, value in items.items():
                    pipe.set(key, value, ex=self._ttl)
                await pipe.execute()

    async def _delete_many(self, keys: list[str]) -> None:
        async with _translate("delete_many", count=len(keys)):
            await self._client.delete(*keys)

    async def health_check(self) -> None:
        async with _translate("ping"):
            await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("redis_cache.closed")


__all__ = ["RedisCache"]
