"""Resilience – cache-aside decorator for an EventStore."""
from __future__ import annotations

import asyncio
import contextlib
from collections import Counter
from collections.abc import AsyncIterator, Sequence

from espm.application.cache.keys import CacheKey
from espm.application.cache.port import Cache
from espm.application.event_sourcing.codec import decode_events, encode_events
from espm.application.event_sourcing.event import Event
from espm.application.event_sourcing.store import EventStore
from espm.kernel.errors import CacheError, CacheMissError, SerializationError
from espm.observability.logging import get_logger

__all__ = ["CachedEventStore"]

logger = get_logger(__name__)


class CachedEventStore(EventStore):
    """Cache-aside wrapper around a durable :class:`EventStore`.

    Only per-aggregate reads are cached, under
    ``events:{aggregate_type}:{aggregate_id}``.  The durable store is always
    the source of truth:

    * ``append`` writes to the store first, then deletes the cache keys of
      every aggregate in the batch.  A failing delete is logged and ignored;
      the entry then lives until its TTL.
    * ``get_by_aggregate`` serves hits from the cache.  On a miss it reads the
      store and repopulates the key (best effort).  Concurrent misses on the
      same key are collapsed into a single store read.  An entry holding
      another aggregate's events is treated as a miss and left untouched.
    * ``get_by_type`` and ``get_after`` always go to the store.

    Cache faults never surface to the caller; they only cost latency.

    Known race: a reader that misses, reads the store, and is then overtaken
    by a writer's append+invalidate will repopulate the key with the pre-append
    history.  That stale entry is served until the next append to the same
    aggregate or until the TTL expires.
    """

    def __init__(self, store: EventStore, cache: Cache) -> None:
        self._store = store
        self._cache = cache
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    async def append(self, events: Sequence[Event]) -> list[Event]:
        committed = await self._store.append(events)
        keys = list(dict.fromkeys(
            CacheKey.for_event_stream(e.aggregate_type, e.aggregate_id) for e in committed
        ))
        try:
            await self._cache.delete_many(keys)
        except CacheError as exc:
            logger.warning("cache.invalidate_failed", keys=keys, error=exc.message)
        return committed

    async def get_by_aggregate(self, aggregate_type: str, aggregate_id: str) -> list[Event]:
        key = CacheKey.for_event_stream(aggregate_type, aggregate_id)
        owner = (aggregate_type, aggregate_id)
        cached, _ = await self._read_cache(key, owner)
        if cached is not None:
            return cached

        async with self._key_lock(key):
            # another coroutine may have filled the key while we waited
            cached, writable = await self._read_cache(key, owner)
            if cached is not None:
                return cached
            events = await self._store.get_by_aggregate(aggregate_type, aggregate_id)
            if writable:
                await self._populate(key, events)
        return events

    async def get_by_type(self, event_type: str) -> list[Event]:
        return await self._store.get_by_type(event_type)

    async def get_after(self, sequence: int, limit: int | None = None) -> list[Event]:
        return await self._store.get_after(sequence, limit)

    @contextlib.asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        """Hold the per-key miss lock; the entry is dropped with its last user."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] <= 0:
                del self._lock_users[key]
                self._locks.pop(key, None)

    async def _read_cache(self, key: str, owner: tuple[str, str]) -> tuple[list[Event] | None, bool]:
        """Return ``(events, writable)``; ``events`` is ``None`` on any miss.

        ``writable`` is false when the entry belongs to another aggregate, in
        which case it is left alone.
        """
        try:
            events = decode_events(await self._cache.get(key))
        except CacheMissError:
            logger.debug("cache.miss", key=key)
            return None, True
        except (CacheError, SerializationError) as exc:
            logger.warning("cache.read_failed", key=key, error=exc.message)
            return None, True
        if any(e.aggregate_key != owner for e in events):
            logger.warning(
                "cache.foreign_entry",
                key=key,
                aggregate_type=owner[0],
                aggregate_id=owner[1],
            )
            return None, False
        return events, True

    async def _populate(self, key: str, events: list[Event]) -> None:
        try:
            await self._cache.set(key, encode_events(events))
        except (CacheError, SerializationError) as exc:
            logger.warning("cache.populate_failed", key=key, error=exc.message)
