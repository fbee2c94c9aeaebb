"""Application event sourcing – Projection bookmark and ProjectionStore port."""

from __future__ import annotations

import abc
import dataclasses
import uuid
from datetime import UTC, datetime

from espm.kernel.errors import ProjectionNotFoundError
from espm.kernel.time import Clock, SystemClock

STATUS_ACTIVE = "active"
STATUS_PAUSED = "paused"


@dataclasses.dataclass(frozen=True)
class Projection:
    """Progress bookmark of one consumer over the global event stream.

    ``status`` is free-form; the library only gives meaning to ``"active"``.
    """

    projection_type: str
    last_processed_sequence: int = 0
    status: str = STATUS_ACTIVE
    projection_id: str = dataclasses.field(default_factory=lambda: str(uuid.uuid4()))
    updated_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def advanced_to(self, sequence: int, now: datetime | None = None) -> "Projection":
        """Return a copy whose bookmark is *sequence* (never moving backwards)."""
        return dataclasses.replace(
            self,
            last_processed_sequence=max(self.last_processed_sequence, sequence),
            updated_at=now or datetime.now(UTC),
        )


class ProjectionStore(abc.ABC):
    """Port: persist projection bookmarks keyed by ``projection_type``.

    ``last_processed_sequence`` never decreases: saving a lower value keeps
    the stored one.
    """

    @abc.abstractmethod
    async def save(self, projection: Projection) -> None:
        """Upsert by ``projection_type``; overwrites sequence, status, updated_at."""

    @abc.abstractmethod
    async def get(self, projection_type: str) -> Projection:
        """Return the record, creating ``(0, "active")`` on first access.

        Creation is idempotent: concurrent first callers all receive the same
        ``projection_id``.
        """

    @abc.abstractmethod
    async def update_status(self, projection_id: str, status: str) -> None:
        """Change status and timestamp only.

        Raises :class:`ProjectionNotFoundError` when *projection_id* is unknown.
        """


class InMemoryProjectionStore(ProjectionStore):
    """In-memory :class:`ProjectionStore` for tests and local development."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._by_type: dict[str, Projection] = {}

    async def save(self, projection: Projection) -> None:
        current = self._by_type.get(projection.projection_type)
        if current is None:
            self._by_type[projection.projection_type] = projection
            return
        self._by_type[projection.projection_type] = dataclasses.replace(
            current,
            last_processed_sequence=max(
                current.last_processed_sequence, projection.last_processed_sequence
            ),
            status=projection.status,
            updated_at=projection.updated_at,
        )

    async def get(self, projection_type: str) -> Projection:
        current = self._by_type.get(projection_type)
        if current is None:
            current = Projection(projection_type=projection_type, updated_at=self._clock.now())
            self._by_type[projection_type] = current
        return current

    async def update_status(self, projection_id: str, status: str) -> None:
        for projection_type, projection in self._by_type.items():
            if projection.projection_id == projection_id:
                self._by_type[projection_type] = dataclasses.replace(
                    projection, status=status, updated_at=self._clock.now()
                )
                return
        raise ProjectionNotFoundError(projection_id)


__all__ = [
    "STATUS_ACTIVE",
    "STATUS_PAUSED",
    "InMemoryProjectionStore",
    "Projection",
    "ProjectionStore",
]
