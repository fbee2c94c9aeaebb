"""Application cache – CacheKey builder."""
from __future__ import annotations

from espm.kernel.errors import InvalidKeyError

__all__ = ["CacheKey"]


class CacheKey:
    """Factory for deterministic cache key strings."""

    EVENT_STREAM_PREFIX = "events"

    @staticmethod
    def for_event_stream(aggregate_type: str, aggregate_id: str) -> str:
        """``events:{aggregate_type}:{aggregate_id}``.

        ``%`` and ``:`` inside the type are percent-escaped so the first
        separator after the prefix always ends the type, e.g.
        ``("a:b", "c")`` and ``("a", "b:c")`` get different keys.
        """
        if not aggregate_type or not aggregate_id:
            raise InvalidKeyError(
                message=f"Event stream key needs a type and an id, got ({aggregate_type!r}, {aggregate_id!r})"
            )
        escaped = aggregate_type.replace("%", "%25").replace(":", "%3A")
        return f"{CacheKey.EVENT_STREAM_PREFIX}:{escaped}:{aggregate_id}"
