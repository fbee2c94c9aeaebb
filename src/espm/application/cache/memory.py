"""Application cache – InMemoryCache."""
from __future__ import annotations

from espm.application.cache.port import Cache
from espm.kernel.errors import CacheError, CacheMissError
from espm.kernel.time import Clock, SystemClock

__all__ = ["InMemoryCache"]


class InMemoryCache(Cache):
    """Process-local :class:`Cache` for unit tests and local development.

    Honours a uniform TTL against the injected clock; ``ttl_seconds=None``
    keeps entries forever.
    """

    def __init__(self, ttl_seconds: float | None = None, clock: Clock | None = None) -> None:
        self._ttl = ttl_seconds
        self._clock = clock or SystemClock()
        self._data: dict[str, tuple[bytes, float | None]] = {}
        self._closed = False

    def _expiry(self) -> float | None:
        return None if self._ttl is None else self._clock.timestamp() + self._ttl

    def _ensure_open(self) -> None:
        if self._closed:
            raise CacheError("In-memory cache is closed")

    async def _get(self, key: str) -> bytes:
        self._ensure_open()
        entry = self._data.get(key)
        if entry is None:
            raise CacheMissError(key)
        value, expires_at = entry
        if expires_at is not None and self._clock.timestamp() >= expires_at:
            del self._data[key]
            raise CacheMissError(key)
        return value

    async def _set(self, key: str, value: bytes) -> None:
        self._ensure_open()
        self._data[key] = (bytes(value), self._expiry())

    async def _delete(self, key: str) -> None:
        self._ensure_open()
        self._data.pop(key, None)

    async def _get_many(self, keys: list[str]) -> dict[str, bytes]:
        hits: dict[str, bytes] = {}
        for key in keys:
            try:
                hits[key] = await self._get(key)
            except CacheMissError:
                continue
        return hits

    async def _set_many(self, items: dict[str, bytes]) -> None:
        for key, value in items.items():
            await self._set(key, value)

    async def _delete_many(self, keys: list[str]) -> None:
        for key in keys:
            await self._delete(key)

    async def health_check(self) -> None:
        self._ensure_open()

    async def close(self) -> None:
        self._closed = True
        self._data.clear()

    def keys(self) -> list[str]:
        """Return the currently stored keys (expired entries included)."""
        return list(self._data)
