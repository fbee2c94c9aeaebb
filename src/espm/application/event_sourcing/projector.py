"""Application event sourcing – Projector and catch-up ProjectionRunner."""

from __future__ import annotations

import abc

from espm.application.event_sourcing.event import Event
from espm.application.event_sourcing.projection import ProjectionStore
from espm.application.event_sourcing.store import EventStore
from espm.kernel.errors import ValidationError
from espm.kernel.time import Clock, SystemClock
from espm.observability.logging import get_logger

logger = get_logger(__name__)


class Projector(abc.ABC):
    """Updates a read model by processing events from the global stream.

    Example::

        class OrderCountProjector(Projector):
            def __init__(self) -> None:
                self.count = 0

            async def project(self, event: Event) -> None:
                if event.event_type == "OrderCreated":
                    self.count += 1
    """

    @abc.abstractmethod
    async def project(self, event: Event) -> None:
        """Process a single event and update the read model."""

    async def project_all(self, events: list[Event]) -> None:
        """Process a list of events in order."""
        for event in events:
            await self.project(event)


class ProjectionRunner:
    """Drives a :class:`Projector` from its stored bookmark to the head of the log.

    The bookmark is saved after every batch, so a crash replays at most one
    batch; projectors should therefore be idempotent.  Projections whose
    status is not ``"active"`` are skipped.
    """

    def __init__(
        self,
        events: EventStore,
        projections: ProjectionStore,
        projector: Projector,
        projection_type: str,
        batch_size: int = 500,
        clock: Clock | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValidationError("batch_size must be positive")
        self._events = events
        self._projections = projections
        self._projector = projector
        self._projection_type = projection_type
        self._batch_size = batch_size
        self._clock = clock or SystemClock()

    async def catch_up(self) -> int:
        """Project every event after the bookmark; return how many were processed."""
        projection = await self._projections.get(self._projection_type)
        if not projection.is_active:
            logger.info(
                "projection.skipped",
                projection_type=self._projection_type,
                status=projection.status,
            )
            return 0

        processed = 0
        while True:
            batch = await self._events.get_after(
                projection.last_processed_sequence, limit=self._batch_size
            )
            if not batch:
                break
            await self._projector.project_all(batch)
            projection = projection.advanced_to(batch[-1].sequence or 0, self._clock.now())
            await self._projections.save(projection)
            processed += len(batch)
            if len(batch) < self._batch_size:
                break

        logger.debug(
            "projection.caught_up",
            projection_type=self._projection_type,
            processed=processed,
            last_processed_sequence=projection.last_processed_sequence,
        )
        return processed


__all__ = ["ProjectionRunner", "Projector"]
