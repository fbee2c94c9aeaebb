"""SQLAlchemy adapter – table definitions for events, snapshots and projections.

``events.sequence_number`` is an autoincrement primary key: the database,
not the application, hands out the global order.
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncSession

from espm.kernel.errors import StoreError

metadata = MetaData()

# BIGSERIAL on Postgres; INTEGER PRIMARY KEY AUTOINCREMENT on SQLite so ids are never reused
_Sequence = BigInteger().with_variant(Integer(), "sqlite")

events_table = Table(
    "events",
    metadata,
    Column("sequence_number", _Sequence, primary_key=True, autoincrement=True),
    Column("event_id", String(64), nullable=False, unique=True),
    Column("aggregate_type", String(256), nullable=False),
    Column("aggregate_id", String(256), nullable=False),
    Column("event_type", String(256), nullable=False, index=True),
    Column("event_version", Integer, nullable=False),
    Column("data", LargeBinary, nullable=False),
    Column("metadata", Text, nullable=False, default="{}"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint(
        "aggregate_type", "aggregate_id", "event_version", name="uq_events_aggregate_version"
    ),
    Index("ix_events_aggregate", "aggregate_type", "aggregate_id"),
    sqlite_autoincrement=True,
)

snapshots_table = Table(
    "snapshots",
    metadata,
    Column("snapshot_id", String(64), primary_key=True),
    Column("aggregate_type", String(256), nullable=False),
    Column("aggregate_id", String(256), nullable=False),
    Column("version", Integer, nullable=False),
    Column("data", LargeBinary, nullable=False),
    Column("metadata", Text, nullable=False, default="{}"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("aggregate_type", "aggregate_id", name="uq_snapshots_aggregate"),
)

projections_table = Table(
    "projections",
    metadata,
    Column("projection_id", String(64), primary_key=True),
    Column("projection_type", String(256), nullable=False, unique=True),
    Column("last_processed_event", BigInteger, nullable=False, default=0),
    Column("status", String(64), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


async def create_tables(bind: Any) -> None:
    """Create all three tables if they do not exist.

    *bind* should be an :class:`~sqlalchemy.ext.asyncio.AsyncEngine` or a
    synchronous :class:`~sqlalchemy.engine.Engine`.
    """
    try:
        async with bind.begin() as conn:
            await conn.run_sync(metadata.create_all)
    except AttributeError:
        metadata.create_all(bind)


def dialect_insert(session: AsyncSession, table: Table) -> Any:
    """Return an ``INSERT`` construct supporting ``ON CONFLICT`` for the session's dialect."""
    name = session.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise StoreError(f"Upserts are not supported on the {name!r} dialect")
    return insert(table)


__all__ = [
    "create_tables",
    "dialect_insert",
    "events_table",
    "metadata",
    "projections_table",
    "snapshots_table",
]
