"""Application cache – Cache port.

Byte-keyed get/set/delete with batch variants and a health probe.  Key
validation lives here, so every backend rejects empty keys the same way.
"""
from __future__ import annotations

import abc
from collections.abc import Iterable, Mapping

from espm.kernel.errors import InvalidKeyError

__all__ = ["Cache"]


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(key if isinstance(key, str) else repr(key))


class Cache(abc.ABC):
    """Port: best-effort byte cache.

    ``get`` raises :class:`~espm.kernel.errors.CacheMissError` on a miss and
    :class:`~espm.kernel.errors.CacheError` on any backend fault.  Entries
    expire after the backend's configured TTL; there is no per-key override.
    """

    async def get(self, key: str) -> bytes:
        _check_key(key)
        return await self._get(key)

    async def set(self, key: str, value: bytes) -> None:
        _check_key(key)
        await self._set(key, value)

    async def delete(self, key: str) -> None:
        _check_key(key)
        await self._delete(key)

    async def get_many(self, keys: Iterable[str]) -> dict[str, bytes]:
        """Return the hits only; missing keys are absent from the result."""
        wanted = list(keys)
        for key in wanted:
            _check_key(key)
        if not wanted:
            return {}
        return await self._get_many(wanted)

    async def set_many(self, items: Mapping[str, bytes]) -> None:
        for key in items:
            _check_key(key)
        if items:
            await self._set_many(dict(items))

    async def delete_many(self, keys: Iterable[str]) -> None:
        doomed = list(keys)
        for key in doomed:
            _check_key(key)
        if doomed:
            await self._delete_many(doomed)

    @abc.abstractmethod
    async def health_check(self) -> None:
        """Raise :class:`~espm.kernel.errors.CacheError` when the backend is unreachable."""

    @abc.abstractmethod
    async def close(self) -> None: ...

    # ------------------------------------------------------------------
    # Backend hooks (keys already validated)
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def _get(self, key: str) -> bytes: ...

    @abc.abstractmethod
    async def _set(self, key: str, value: bytes) -> None: ...

    @abc.abstractmethod
    async def _delete(self, key: str) -> None: ...

    @abc.abstractmethod
    async def _get_many(self, keys: list[str]) -> dict[str, bytes]: ...

    @abc.abstractmethod
    async def _set_many(self, items: dict[str, bytes]) -> None: ...

    @abc.abstractmethod
    async def _delete_many(self, keys: list[str]) -> None: ...
