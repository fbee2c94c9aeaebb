"""Unit tests for the cache port, key scheme and in-memory backend."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from espm.application.cache import Cache, CacheKey, InMemoryCache
from espm.kernel.errors import CacheError, CacheMissError, InvalidKeyError
from espm.kernel.time import FrozenClock


# ---------------------------------------------------------------------------
# CacheKey
# ---------------------------------------------------------------------------


class TestCacheKey:
    def test_event_stream_key(self) -> None:
        assert CacheKey.for_event_stream("Order", "A1") == "events:Order:A1"

    def test_separator_in_type_does_not_collide(self) -> None:
        first = CacheKey.for_event_stream("a:b", "c")
        second = CacheKey.for_event_stream("a", "b:c")
        assert first == "events:a%3Ab:c"
        assert second == "events:a:b:c"
        assert first != second

    def test_percent_in_type_is_escaped(self) -> None:
        assert CacheKey.for_event_stream("a%3Ab", "c") != CacheKey.for_event_stream("a:b", "c")

    @pytest.mark.parametrize("aggregate_type, aggregate_id", [("", "A1"), ("Order", "")])
    def test_empty_part_rejected(self, aggregate_type: str, aggregate_id: str) -> None:
        with pytest.raises(InvalidKeyError):
            CacheKey.for_event_stream(aggregate_type, aggregate_id)


# ---------------------------------------------------------------------------
# Cache port key validation
# ---------------------------------------------------------------------------


class RecordingCache(Cache):
    """Backend that records which hooks were reached."""

    def __init__(self) -> None:
        self.reached: list[str] = []

    async def _get(self, key: str) -> bytes:
        self.reached.append("get")
        return b""

    async def _set(self, key: str, value: bytes) -> None:
        self.reached.append("set")

    async def _delete(self, key: str) -> None:
        self.reached.append("delete")

    async def _get_many(self, keys: list[str]) -> dict[str, bytes]:
        self.reached.append("get_many")
        return {}

    async def _set_many(self, items: dict[str, bytes]) -> None:
        self.reached.append("set_many")

    async def _delete_many(self, keys: list[str]) -> None:
        self.reached.append("delete_many")

    async def health_check(self) -> None:
        pass

    async def close(self) -> None:
        pass


class TestCachePort:
    def test_empty_key_never_reaches_backend(self) -> None:
        async def run() -> None:
            cache = RecordingCache()
            with pytest.raises(InvalidKeyError):
                await cache.get("")
            with pytest.raises(InvalidKeyError):
                await cache.set("", b"x")
            with pytest.raises(InvalidKeyError):
                await cache.delete("")
            with pytest.raises(InvalidKeyError):
                await cache.get_many(["ok", ""])
            with pytest.raises(InvalidKeyError):
                await cache.set_many({"ok": b"1", "": b"2"})
            with pytest.raises(InvalidKeyError):
                await cache.delete_many(["", "ok"])
            assert cache.reached == []

        asyncio.run(run())

    def test_empty_batches_are_noops(self) -> None:
        async def run() -> None:
            cache = RecordingCache()
            assert await cache.get_many([]) == {}
            await cache.set_many({})
            await cache.delete_many([])
            assert cache.reached == []

        asyncio.run(run())

    def test_invalid_key_is_a_cache_error(self) -> None:
        async def run() -> None:
            with pytest.raises(CacheError):
                await RecordingCache().get("")

        asyncio.run(run())


# ---------------------------------------------------------------------------
# InMemoryCache
# ---------------------------------------------------------------------------


class TestInMemoryCache:
    def test_get_missing_raises_miss(self) -> None:
        async def run() -> None:
            with pytest.raises(CacheMissError) as exc_info:
                await InMemoryCache().get("k")
            assert exc_info.value.key == "k"

        asyncio.run(run())

    def test_set_get_delete(self) -> None:
        async def run() -> None:
            cache = InMemoryCache()
            await cache.set("k", b"v")
            assert await cache.get("k") == b"v"
            await cache.delete("k")
            with pytest.raises(CacheMissError):
                await cache.get("k")
            # deleting an absent key is fine
            await cache.delete("k")

        asyncio.run(run())

    def test_batches(self) -> None:
        async def run() -> None:
            cache = InMemoryCache()
            await cache.set_many({"a": b"1", "b": b"2"})
            assert await cache.get_many(["a", "b", "c"]) == {"a": b"1", "b": b"2"}
            await cache.delete_many(["a", "c"])
            assert cache.keys() == ["b"]

        asyncio.run(run())

    def test_ttl_expiry(self) -> None:
        async def run() -> None:
            clock = FrozenClock(datetime(2026, 1, 1, tzinfo=UTC))
            cache = InMemoryCache(ttl_seconds=60, clock=clock)
            await cache.set("k", b"v")
            clock.advance(seconds=59)
            assert await cache.get("k") == b"v"
            clock.advance(seconds=1)
            with pytest.raises(CacheMissError):
                await cache.get("k")
            assert cache.keys() == []

        asyncio.run(run())

    def test_no_ttl_keeps_entries(self) -> None:
        async def run() -> None:
            clock = FrozenClock(datetime(2026, 1, 1, tzinfo=UTC))
            cache = InMemoryCache(clock=clock)
            await cache.set("k", b"v")
            clock.advance(days=365)
            assert await cache.get("k") == b"v"

        asyncio.run(run())

    def test_closed_cache_fails(self) -> None:
        async def run() -> None:
            cache = InMemoryCache()
            await cache.health_check()
            await cache.close()
            with pytest.raises(CacheError):
                await cache.health_check()
            with pytest.raises(CacheError):
                await cache.set("k", b"v")

        asyncio.run(run())
