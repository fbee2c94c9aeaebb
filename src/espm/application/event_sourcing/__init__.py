"""Application – Event Sourcing."""

from espm.application.event_sourcing.codec import (
    decode_events,
    decode_metadata,
    encode_events,
    encode_metadata,
)
from espm.application.event_sourcing.event import Event
from espm.application.event_sourcing.projection import (
    STATUS_ACTIVE,
    STATUS_PAUSED,
    InMemoryProjectionStore,
    Projection,
    ProjectionStore,
)
from espm.application.event_sourcing.projector import ProjectionRunner, Projector
from espm.application.event_sourcing.replay import AggregateHistory, load_history
from espm.application.event_sourcing.snapshot import (
    InMemorySnapshotStore,
    Snapshot,
    SnapshotStore,
    validate_snapshot,
)
from espm.application.event_sourcing.store import (
    EventStore,
    InMemoryEventStore,
    check_version_order,
    validate_batch,
)

__all__ = [
    "STATUS_ACTIVE",
    "STATUS_PAUSED",
    "AggregateHistory",
    "Event",
    "EventStore",
    "InMemoryEventStore",
    "InMemoryProjectionStore",
    "InMemorySnapshotStore",
    "Projection",
    "ProjectionRunner",
    "ProjectionStore",
    "Projector",
    "Snapshot",
    "SnapshotStore",
    "check_version_order",
    "decode_events",
    "decode_metadata",
    "encode_events",
    "encode_metadata",
    "load_history",
    "validate_batch",
    "validate_snapshot",
]
