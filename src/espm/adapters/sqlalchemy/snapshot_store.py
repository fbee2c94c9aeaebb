"""SQLAlchemy adapter – SQLAlchemySnapshotStore."""
from __future__ import annotations

from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from espm.adapters.sqlalchemy.errors import as_utc, translate_errors
from espm.adapters.sqlalchemy.schema import dialect_insert, snapshots_table
from espm.application.event_sourcing.codec import decode_metadata, encode_metadata
from espm.application.event_sourcing.snapshot import Snapshot, SnapshotStore, validate_snapshot
from espm.observability.logging import get_logger
from espm.resilience.deadline import deadline_aware

logger = get_logger(__name__)


class SQLAlchemySnapshotStore(SnapshotStore):
    """Keeps one snapshot row per aggregate in the ``snapshots`` table.

    :meth:`save` is an ``INSERT … ON CONFLICT (aggregate_type, aggregate_id)
    DO UPDATE``, so saving twice for the same aggregate leaves only the last
    write.  Supported on PostgreSQL and SQLite.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, snapshot: Snapshot) -> None:
        validate_snapshot(snapshot)
        await deadline_aware(self._save(snapshot, encode_metadata(snapshot.metadata)))

    async def get_latest(self, aggregate_type: str, aggregate_id: str) -> Snapshot | None:
        return await deadline_aware(self._get_latest(aggregate_type, aggregate_id))

    async def _save(self, snapshot: Snapshot, encoded_metadata: str) -> None:
        async with translate_errors("save_snapshot"):
            async with self._session_factory() as session:
                async with session.begin():
                    stmt = dialect_insert(session, snapshots_table).values(
                        snapshot_id=snapshot.snapshot_id,
                        aggregate_type=snapshot.aggregate_type,
                        aggregate_id=snapshot.aggregate_id,
                        version=snapshot.version,
                        data=snapshot.data,
                        metadata=encoded_metadata,
                        created_at=as_utc(snapshot.created_at),
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[
                            snapshots_table.c.aggregate_type,
                            snapshots_table.c.aggregate_id,
                        ],
                        set_={
                            "snapshot_id": stmt.excluded.snapshot_id,
                            "version": stmt.excluded.version,
                            "data": stmt.excluded.data,
                            "metadata": stmt.excluded.metadata,
                            "created_at": stmt.excluded.created_at,
                        },
                    )
                    await session.execute(stmt)
        logger.debug(
            "snapshot_store.saved",
            aggregate_type=snapshot.aggregate_type,
            aggregate_id=snapshot.aggregate_id,
            version=snapshot.version,
        )

    async def _get_latest(self, aggregate_type: str, aggregate_id: str) -> Snapshot | None:
        stmt = select(snapshots_table).where(
            snapshots_table.c.aggregate_type == aggregate_type,
            snapshots_table.c.aggregate_id == aggregate_id,
        )
        async with translate_errors("get_latest_snapshot"):
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).mappings().one_or_none()
        if row is None:
            return None
        return self._row_to_snapshot(row)

    @staticmethod
    def _row_to_snapshot(row: Any) -> Snapshot:
        return Snapshot(
            snapshot_id=row["snapshot_id"],
            aggregate_type=row["aggregate_type"],
            aggregate_id=row["aggregate_id"],
            version=row["version"],
            data=bytes(row["data"]),
            metadata=decode_metadata(row["metadata"]),
            created_at=as_utc(row["created_at"]),
        )


__all__ = ["SQLAlchemySnapshotStore"]
