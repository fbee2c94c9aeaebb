"""Application event sourcing – EventStore port and InMemoryEventStore."""

from __future__ import annotations

import abc
import dataclasses
from collections.abc import Mapping, Sequence

from espm.application.event_sourcing.codec import decode_metadata, encode_metadata
from espm.application.event_sourcing.event import Event
from espm.kernel.errors import ConcurrencyError, ValidationError


def validate_batch(events: Sequence[Event]) -> list[Event]:
    """Fail fast on an unusable batch, before any I/O.

    Metadata is encoded here too so a non-serialisable map is rejected
    before the transaction opens.
    """
    batch = list(events)
    if not batch:
        raise ValidationError("Cannot append an empty batch of events")
    errors: list[dict[str, object]] = []
    for index, event in enumerate(batch):
        for name in ("aggregate_type", "aggregate_id", "event_type"):
            if not getattr(event, name):
                errors.append({"index": index, "field": name, "error": "must not be empty"})
        if event.version < 0:
            errors.append({"index": index, "field": "version", "error": "must not be negative"})
        encode_metadata(event.metadata)
    if errors:
        raise ValidationError("Invalid events in batch", errors=errors)
    return batch


def check_version_order(
    batch: Sequence[Event], heads: Mapping[tuple[str, str], int]
) -> None:
    """Raise :class:`ConcurrencyError` unless versions strictly increase.

    *heads* maps each aggregate to its highest committed version.  Every
    event must be above the head of its aggregate and above the previous
    event of the same aggregate in the batch.  Gaps are allowed.
    """
    last = dict(heads)
    for event in batch:
        head = last.get(event.aggregate_key)
        if head is not None and event.version <= head:
            raise ConcurrencyError(
                event.aggregate_type,
                event.aggregate_id,
                message=(
                    f"Version {event.version} of {event.aggregate_type}/{event.aggregate_id} "
                    f"is not above head version {head}"
                ),
            )
        last[event.aggregate_key] = event.version


class EventStore(abc.ABC):
    """Port: durable, strictly ordered, append-only event log.

    The log owns sequence assignment: every appended event receives a global
    ``sequence`` strictly greater than any previously committed one.  A
    caller-supplied ``sequence`` is ignored.

    A batch is all-or-nothing.  Within one aggregate, versions strictly
    increase in sequence order: an event whose version is not above the
    aggregate's head (or the previous event of the batch) raises
    :class:`~espm.kernel.errors.ConcurrencyError` and nothing from its batch
    becomes visible.  Gaps between versions are accepted.
    """

    @abc.abstractmethod
    async def append(self, events: Sequence[Event]) -> list[Event]:
        """Atomically append *events* in the given order.

        Returns the committed events carrying their assigned sequences.
        """

    @abc.abstractmethod
    async def get_by_aggregate(self, aggregate_type: str, aggregate_id: str) -> list[Event]:
        """Return every event of one aggregate, ascending by sequence."""

    @abc.abstractmethod
    async def get_by_type(self, event_type: str) -> list[Event]:
        """Return every event of *event_type* across aggregates, ascending by sequence."""

    @abc.abstractmethod
    async def get_after(self, sequence: int, limit: int | None = None) -> list[Event]:
        """Return events with ``sequence`` strictly greater than *sequence*, ascending."""


class InMemoryEventStore(EventStore):
    """In-memory :class:`EventStore` for tests and local development.

    Enforces the same version ordering and all-or-nothing batch rules as the
    SQL store.
    """

    def __init__(self) -> None:
        self._log: list[Event] = []
        self._heads: dict[tuple[str, str], int] = {}

    async def append(self, events: Sequence[Event]) -> list[Event]:
        batch = validate_batch(events)
        check_version_order(batch, self._heads)

        start = len(self._log) + 1
        committed = [
            dataclasses.replace(
                event,
                sequence=start + offset,
                # detach from the caller's dict
                metadata=decode_metadata(encode_metadata(event.metadata)),
            )
            for offset, event in enumerate(batch)
        ]
        self._log.extend(committed)
        for event in committed:
            self._heads[event.aggregate_key] = event.version
        return list(committed)

    async def get_by_aggregate(self, aggregate_type: str, aggregate_id: str) -> list[Event]:
        return [
            e for e in self._log
            if e.aggregate_type == aggregate_type and e.aggregate_id == aggregate_id
        ]

    async def get_by_type(self, event_type: str) -> list[Event]:
        return [e for e in self._log if e.event_type == event_type]

    async def get_after(self, sequence: int, limit: int | None = None) -> list[Event]:
        # sequences are 1-based list positions
        tail = self._log[max(sequence, 0):]
        return tail[:limit] if limit is not None else list(tail)

    def all_events(self) -> list[Event]:
        """Return the whole log in sequence order."""
        return list(self._log)


__all__ = ["EventStore", "InMemoryEventStore", "check_version_order", "validate_batch"]
