"""Application event sourcing – snapshot-aware history loading."""

from __future__ import annotations

import dataclasses

from espm.application.event_sourcing.event import Event
from espm.application.event_sourcing.snapshot import Snapshot, SnapshotStore
from espm.application.event_sourcing.store import EventStore


@dataclasses.dataclass(frozen=True)
class AggregateHistory:
    """What a reader needs to rebuild one aggregate.

    Apply ``snapshot`` (when present) first, then ``events`` in order.
    """

    snapshot: Snapshot | None
    events: list[Event]

    @property
    def version(self) -> int:
        """Aggregate version after replaying the history (0 when empty)."""
        if self.events:
            return self.events[-1].version
        return self.snapshot.version if self.snapshot is not None else 0


async def load_history(
    events: EventStore,
    snapshots: SnapshotStore,
    aggregate_type: str,
    aggregate_id: str,
) -> AggregateHistory:
    """Return the latest snapshot plus the events recorded after it."""
    snapshot = await snapshots.get_latest(aggregate_type, aggregate_id)
    stream = await events.get_by_aggregate(aggregate_type, aggregate_id)
    if snapshot is not None:
        stream = [e for e in stream if e.version > snapshot.version]
    return AggregateHistory(snapshot=snapshot, events=stream)


__all__ = ["AggregateHistory", "load_history"]
