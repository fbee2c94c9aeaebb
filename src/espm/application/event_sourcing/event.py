"""Application event sourcing – Event."""

from __future__ import annotations

import dataclasses
import uuid
from datetime import UTC, datetime
from typing import Any


@dataclasses.dataclass(frozen=True)
class Event:
    """An immutable fact about one aggregate, as persisted in the event log.

    ``data`` is the opaque serialised payload (JSON, MessagePack, …).
    ``metadata`` carries infrastructure-level attributes (correlation id,
    source, …); the store encodes it as JSON and never interprets it.
    """

    aggregate_type: str
    """Discriminator of the aggregate kind (e.g. ``"Order"``)."""

    aggregate_id: str
    """Identifier of the aggregate, unique within ``aggregate_type``."""

    event_type: str
    """Logical name of the event (e.g. ``"OrderCreated"``)."""

    version: int
    """Per-aggregate counter this event represents (1 for the first event)."""

    data: bytes
    """Serialised event payload."""

    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    """String-keyed attribute map; insertion order is irrelevant."""

    event_id: str = dataclasses.field(default_factory=lambda: str(uuid.uuid4()))
    """Globally unique event identifier."""

    sequence: int | None = None
    """Global position assigned by the durable log at append time.

    Any value supplied by the caller is ignored and overwritten on append.
    """

    created_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    """Wall-clock time when the event was recorded."""

    @property
    def aggregate_key(self) -> tuple[str, str]:
        """``(aggregate_type, aggregate_id)`` pair identifying the stream."""
        return (self.aggregate_type, self.aggregate_id)

    def with_sequence(self, sequence: int) -> "Event":
        """Return a copy carrying the store-assigned *sequence*."""
        return dataclasses.replace(self, sequence=sequence)


__all__ = ["Event"]
