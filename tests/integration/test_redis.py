"""Integration tests for the Redis cache and the cache-aside event store.

Uses testcontainers to spawn a real Redis instance.
Run with: pytest tests/integration/test_redis.py -m integration -v
"""
from __future__ import annotations

import asyncio

import pytest
from testcontainers.redis import RedisContainer

from espm.adapters.redis import RedisCache
from espm.application.cache import CacheKey
from espm.application.event_sourcing import Event, decode_events
from espm.config.settings import RedisSettings
from espm.kernel.errors import CacheError, CacheMissError
from espm.resilience.cache import CachedEventStore
from espm.testing import SpyEventStore


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def _run(coro):  # type: ignore[no-untyped-def]
    return asyncio.run(coro)


@pytest.fixture(scope="module")
def redis_settings():
    with RedisContainer() as container:
        yield RedisSettings(
            host=container.get_container_host_ip(),
            port=int(container.get_exposed_port(container.port)),
        )


def _event(version: int) -> Event:
    return Event("Order", "A1", "OrderCreated", version, f'{{"v":{version}}}'.encode())


# ---------------------------------------------------------------------------
# RedisCache
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestRedisCacheIntegration:
    def test_set_get_delete(self, redis_settings: RedisSettings) -> None:
        async def run() -> None:
            cache = RedisCache.from_settings(redis_settings)
            await cache.set("it:k", b"\x00bytes")
            assert await cache.get("it:k") == b"\x00bytes"
            await cache.delete("it:k")
            with pytest.raises(CacheMissError):
                await cache.get("it:k")
            await cache.close()

        _run(run())

    def test_batches(self, redis_settings: RedisSettings) -> None:
        async def run() -> None:
            cache = RedisCache.from_settings(redis_settings)
            await cache.set_many({"it:a": b"1", "it:b": b"2"})
            assert await cache.get_many(["it:a", "it:b", "it:none"]) == {"it:a": b"1", "it:b": b"2"}
            await cache.delete_many(["it:a", "it:b"])
            assert await cache.get_many(["it:a", "it:b"]) == {}
            await cache.close()

        _run(run())

    def test_ttl_expiry(self, redis_settings: RedisSettings) -> None:
        async def run() -> None:
            cache = RedisCache(redis_settings.url, ttl_seconds=1)
            await cache.set("it:ttl", b"v")
            await asyncio.sleep(1.5)
            with pytest.raises(CacheMissError):
                await cache.get("it:ttl")
            await cache.close()

        _run(run())

    def test_health_check(self, redis_settings: RedisSettings) -> None:
        async def run() -> None:
            cache = RedisCache.from_settings(redis_settings)
            await cache.health_check()
            await cache.close()

        _run(run())

    def test_unreachable_server(self) -> None:
        async def run() -> None:
            cache = RedisCache(
                "redis://127.0.0.1:1/0", socket_connect_timeout=0.2, retry_on_timeout=False
            )
            with pytest.raises(CacheError):
                await cache.health_check()
            await cache.close()

        _run(run())


# ---------------------------------------------------------------------------
# CachedEventStore over real Redis
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestCachedEventStoreIntegration:
    def test_miss_populate_and_invalidate(self, redis_settings: RedisSettings) -> None:
        async def run() -> None:
            cache = RedisCache.from_settings(redis_settings)
            await cache.delete(CacheKey.for_event_stream("Order", "A1"))
            spy = SpyEventStore()
            store = CachedEventStore(spy, cache)

            await store.append([_event(1)])
            first = await store.get_by_aggregate("Order", "A1")
            second = await store.get_by_aggregate("Order", "A1")
            assert first == second
            assert spy.calls["get_by_aggregate"] == 1

            cached = decode_events(await cache.get(CacheKey.for_event_stream("Order", "A1")))
            assert cached == first

            await store.append([_event(2)])
            with pytest.raises(CacheMissError):
                await cache.get(CacheKey.for_event_stream("Order", "A1"))
            assert [e.version for e in await store.get_by_aggregate("Order", "A1")] == [1, 2]
            await cache.close()

        _run(run())
