"""Infrastructure errors – durable store and cache failures."""

from __future__ import annotations

from typing import Any

from espm.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"


class StoreError(InfrastructureError):
    """The durable store failed; the write or read of record may not have happened.

    Always surfaced to the caller, never retried internally.
    """

    default_code = "store_error"


class ConcurrencyError(StoreError):
    """Another writer already appended this aggregate version or a later one.

    The whole batch was rolled back.
    """

    default_code = "concurrency_conflict"

    def __init__(
        self,
        aggregate_type: str | None = None,
        aggregate_id: str | None = None,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        if message is None:
            if aggregate_type is not None:
                message = (
                    f"Concurrency conflict on aggregate '{aggregate_type}:{aggregate_id}': "
                    "event version already exists"
                )
            else:
                message = "Concurrency conflict: event version already exists"
        super().__init__(message, **kwargs)
        self.aggregate_type = aggregate_type
        self.aggregate_id = aggregate_id


class CacheError(InfrastructureError):
    """A cache operation failed (connection fault, bad payload, …).

    Cache errors degrade latency, never correctness.
    """

    default_code = "cache_error"


class CacheMissError(CacheError):
    """The key is not present in the cache."""

    default_code = "cache_miss"

    def __init__(self, key: str, **kwargs: Any) -> None:
        super().__init__(f"Cache miss for key '{key}'", **kwargs)
        self.key = key


class InvalidKeyError(CacheError):
    """The cache key is empty or otherwise unusable."""

    default_code = "invalid_cache_key"

    def __init__(self, key: str = "", message: str | None = None, **kwargs: Any) -> None:
        super().__init__(message or f"Invalid cache key {key!r}", **kwargs)
        self.key = key


class SerializationError(InfrastructureError):
    """Failed to serialize or deserialize a payload."""

    default_code = "serialization_error"

    def __init__(
        self,
        message: str,
        *,
        payload_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.payload_type = payload_type


__all__ = [
    "CacheError",
    "CacheMissError",
    "ConcurrencyError",
    "InfrastructureError",
    "InvalidKeyError",
    "SerializationError",
    "StoreError",
]
