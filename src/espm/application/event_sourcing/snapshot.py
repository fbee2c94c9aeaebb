"""Application event sourcing – Snapshot and SnapshotStore port."""

from __future__ import annotations

import abc
import dataclasses
import uuid
from datetime import UTC, datetime
from typing import Any

from espm.kernel.errors import SnapshotNotFoundError, ValidationError


@dataclasses.dataclass(frozen=True)
class Snapshot:
    """Materialised aggregate state at ``version``.

    ``version`` must not exceed the highest event version of the aggregate.
    """

    aggregate_type: str
    aggregate_id: str
    version: int
    data: bytes
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    snapshot_id: str = dataclasses.field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))


def validate_snapshot(snapshot: Snapshot) -> None:
    """Reject a snapshot with a blank aggregate key or a negative version."""
    if not snapshot.aggregate_type or not snapshot.aggregate_id:
        raise ValidationError("Snapshot needs an aggregate type and id")
    if snapshot.version < 0:
        raise ValidationError("Snapshot version must not be negative")


class SnapshotStore(abc.ABC):
    """Port: store and retrieve the latest snapshot per aggregate.

    Snapshots bound replay cost for long-lived aggregates.  Exactly one
    snapshot is authoritative per ``(aggregate_type, aggregate_id)``; saving
    replaces the previous one (last write wins).
    """

    @abc.abstractmethod
    async def save(self, snapshot: Snapshot) -> None:
        """Upsert *snapshot* under its aggregate key.

        Raises :class:`~espm.kernel.errors.ValidationError` for a blank
        aggregate key or a negative version.
        """

    @abc.abstractmethod
    async def get_latest(self, aggregate_type: str, aggregate_id: str) -> Snapshot | None:
        """Return the current snapshot, or ``None`` when none has been taken."""

    async def require_latest(self, aggregate_type: str, aggregate_id: str) -> Snapshot:
        """Like :meth:`get_latest` but raises :class:`SnapshotNotFoundError`."""
        snapshot = await self.get_latest(aggregate_type, aggregate_id)
        if snapshot is None:
            raise SnapshotNotFoundError(aggregate_type, aggregate_id)
        return snapshot


class InMemorySnapshotStore(SnapshotStore):
    """In-memory :class:`SnapshotStore` for tests and local development."""

    def __init__(self) -> None:
        self._snapshots: dict[tuple[str, str], Snapshot] = {}

    async def save(self, snapshot: Snapshot) -> None:
        validate_snapshot(snapshot)
        self._snapshots[(snapshot.aggregate_type, snapshot.aggregate_id)] = snapshot

    async def get_latest(self, aggregate_type: str, aggregate_id: str) -> Snapshot | None:
        return self._snapshots.get((aggregate_type, aggregate_id))

    def all_snapshots(self) -> dict[tuple[str, str], Snapshot]:
        return dict(self._snapshots)


__all__ = ["InMemorySnapshotStore", "Snapshot", "SnapshotStore", "validate_snapshot"]
