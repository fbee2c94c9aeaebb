"""SQLAlchemy adapter – SQLAlchemyEventStore."""
from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from typing import Any, Callable

from sqlalchemy import and_, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from espm.adapters.sqlalchemy.errors import as_utc, translate_errors
from espm.adapters.sqlalchemy.schema import create_tables, events_table
from espm.application.event_sourcing.codec import decode_metadata, encode_metadata
from espm.application.event_sourcing.event import Event
from espm.application.event_sourcing.store import EventStore, check_version_order, validate_batch
from espm.observability.logging import get_logger
from espm.resilience.deadline import deadline_aware

logger = get_logger(__name__)


class SQLAlchemyEventStore(EventStore):
    """Append-only event log on a relational database.

    Each :meth:`append` runs in its own transaction: either every event of the
    batch is committed or none is.  ``sequence_number`` is the table's
    autoincrement primary key, so ordering is assigned by the database and no
    application-side counter is involved.

    The ``(aggregate_type, aggregate_id, event_version)`` triple is declared
    ``UNIQUE``; a second writer reusing a version gets
    :class:`~espm.kernel.errors.ConcurrencyError` and its whole batch is
    rolled back.  The same error is raised, after the inserts and before the
    commit, when a version is not above the aggregate's previous head.  On
    PostgreSQL appends to the same aggregate are serialised with a
    transaction-scoped advisory lock so that check sees every earlier writer.

    The store **does not** migrate the schema.  Call :meth:`create_table`
    (or :func:`~espm.adapters.sqlalchemy.schema.create_tables`) once at start-up.

    Parameters
    ----------
    session_factory:
        Zero-argument callable returning a fresh
        :class:`~sqlalchemy.ext.asyncio.AsyncSession`, e.g. a
        :class:`~espm.adapters.sqlalchemy.session.SqlAlchemySessionFactory`
        or an ``async_sessionmaker``.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    @classmethod
    async def create_table(cls, bind: Any) -> None:
        """Create the ``events`` (and sibling) tables if they do not exist."""
        await create_tables(bind)

    # ------------------------------------------------------------------
    # EventStore interface
    # ------------------------------------------------------------------

    async def append(self, events: Sequence[Event]) -> list[Event]:
        batch = validate_batch(events)
        check_version_order(batch, {})
        return await deadline_aware(self._append(batch))

    async def get_by_aggregate(self, aggregate_type: str, aggregate_id: str) -> list[Event]:
        return await deadline_aware(
            self._select(
                "get_by_aggregate",
                events_table.c.aggregate_type == aggregate_type,
                events_table.c.aggregate_id == aggregate_id,
            )
        )

    async def get_by_type(self, event_type: str) -> list[Event]:
        return await deadline_aware(
            self._select("get_by_type", events_table.c.event_type == event_type)
        )

    async def get_after(self, sequence: int, limit: int | None = None) -> list[Event]:
        return await deadline_aware(
            self._select("get_after", events_table.c.sequence_number > sequence, limit=limit)
        )

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    async def _append(self, batch: list[Event]) -> list[Event]:
        committed: list[Event] = []
        async with translate_errors("append"):
            async with self._session_factory() as session:
                async with session.begin():
                    await self._lock_aggregates(session, batch)
                    for event in batch:
                        encoded = encode_metadata(event.metadata)
                        result = await session.execute(
                            insert(events_table).values(
                                event_id=event.event_id,
                                aggregate_type=event.aggregate_type,
                                aggregate_id=event.aggregate_id,
                                event_type=event.event_type,
                                event_version=event.version,
                                data=event.data,
                                metadata=encoded,
                                created_at=as_utc(event.created_at),
                            )
                        )
                        committed.append(
                            dataclasses.replace(
                                event,
                                sequence=result.inserted_primary_key[0],
                                metadata=decode_metadata(encoded),
                                created_at=as_utc(event.created_at),
                            )
                        )
                    heads = await self._heads_before(session, batch, committed[0].sequence)
                    check_version_order(batch, heads)
        logger.debug(
            "event_store.appended",
            count=len(committed),
            first_sequence=committed[0].sequence,
            last_sequence=committed[-1].sequence,
        )
        return committed

    @staticmethod
    async def _lock_aggregates(session: AsyncSession, batch: list[Event]) -> None:
        """Serialise concurrent appends per aggregate on PostgreSQL.

        SQLite already allows a single writer at a time.  Locks are taken in
        sorted order so two batches over the same aggregates cannot deadlock.
        """
        if session.get_bind().dialect.name != "postgresql":
            return
        for aggregate_type, aggregate_id in sorted({e.aggregate_key for e in batch}):
            await session.execute(
                select(func.pg_advisory_xact_lock(func.hashtext(f"{aggregate_type}:{aggregate_id}")))
            )

    @staticmethod
    async def _heads_before(
        session: AsyncSession, batch: list[Event], first_sequence: int
    ) -> dict[tuple[str, str], int]:
        """Highest version per batch aggregate among rows older than the batch."""
        aggregates = {e.aggregate_key for e in batch}
        stmt = (
            select(
                events_table.c.aggregate_type,
                events_table.c.aggregate_id,
                func.max(events_table.c.event_version),
            )
            .where(events_table.c.sequence_number < first_sequence)
            .where(
                or_(*(
                    and_(
                        events_table.c.aggregate_type == aggregate_type,
                        events_table.c.aggregate_id == aggregate_id,
                    )
                    for aggregate_type, aggregate_id in aggregates
                ))
            )
            .group_by(events_table.c.aggregate_type, events_table.c.aggregate_id)
        )
        result = await session.execute(stmt)
        return {(row[0], row[1]): row[2] for row in result.all()}

    async def _select(self, operation: str, *criteria: Any, limit: int | None = None) -> list[Event]:
        stmt = select(events_table).where(*criteria).order_by(events_table.c.sequence_number.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        async with translate_errors(operation):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.mappings().all()
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: Any) -> Event:
        return Event(
            event_id=row["event_id"],
            aggregate_type=row["aggregate_type"],
            aggregate_id=row["aggregate_id"],
            event_type=row["event_type"],
            version=row["event_version"],
            sequence=row["sequence_number"],
            data=bytes(row["data"]),
            metadata=decode_metadata(row["metadata"]),
            created_at=as_utc(row["created_at"]),
        )


__all__ = ["SQLAlchemyEventStore"]
