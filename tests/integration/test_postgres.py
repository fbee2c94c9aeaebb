"""Integration tests for the SQLAlchemy stores on PostgreSQL.

Uses testcontainers to spawn a real PostgreSQL instance.
Run with: pytest tests/integration/test_postgres.py -m integration -v
"""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Any

import pytest
from testcontainers.postgres import PostgresContainer

from espm.adapters.sqlalchemy import (
    SQLAlchemyEventStore,
    SQLAlchemyProjectionStore,
    SQLAlchemySnapshotStore,
    SqlAlchemySessionFactory,
    create_tables,
    metadata,
)
from espm.application.event_sourcing import STATUS_PAUSED, Event, Snapshot
from espm.config.settings import DatabaseSettings
from espm.kernel.errors import ConcurrencyError, ProjectionNotFoundError
from espm.observability.health import DatabaseHealthCheck


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def _run(coro):  # type: ignore[no-untyped-def]
    return asyncio.run(coro)


def _pg_url(container: Any) -> str:
    """Return an asyncpg-compatible URL from a PostgresContainer."""
    raw = container.get_connection_url()
    # testcontainers returns psycopg2 URL; swap driver for asyncpg
    return raw.replace("psycopg2", "asyncpg", 1)


@pytest.fixture(scope="module")
def pg_url():
    with PostgresContainer("postgres:16-alpine") as container:
        yield _pg_url(container)


async def _fresh_factory(url: str) -> SqlAlchemySessionFactory:
    factory = SqlAlchemySessionFactory.from_settings(DatabaseSettings(url=url))
    async with factory.engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await create_tables(factory.engine)
    return factory


def _event(aggregate_id: str = "A1", version: int = 1, **kw: Any) -> Event:
    return Event(
        aggregate_type="Order",
        aggregate_id=aggregate_id,
        event_type=kw.pop("event_type", "OrderCreated"),
        version=version,
        data=kw.pop("data", b"{}"),
        **kw,
    )


# ---------------------------------------------------------------------------
# Event store
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestPostgresEventStore:
    def test_order_created_round_trip(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            store = SQLAlchemyEventStore(factory)
            payload = b'{"amount":100}'
            committed = await store.append([_event(data=payload, metadata={"user": "u1"})])
            events = await store.get_by_aggregate("Order", "A1")
            assert events == committed
            assert events[0].data == payload
            assert events[0].sequence > 0
            await factory.dispose()

        _run(run())

    def test_version_conflict_rolls_back_batch(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            store = SQLAlchemyEventStore(factory)
            await store.append([_event(version=1)])
            with pytest.raises(ConcurrencyError):
                await store.append([_event("B1", 1), _event("A1", 1)])
            assert await store.get_by_aggregate("Order", "B1") == []
            await factory.dispose()

        _run(run())

    def test_concurrent_writers_same_version(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            store = SQLAlchemyEventStore(factory)
            results = await asyncio.gather(
                *(store.append([_event(version=1, event_type=f"T{i}")]) for i in range(5)),
                return_exceptions=True,
            )
            winners = [r for r in results if not isinstance(r, BaseException)]
            losers = [r for r in results if isinstance(r, ConcurrencyError)]
            assert len(winners) == 1
            assert len(losers) == 4
            assert len(await store.get_by_aggregate("Order", "A1")) == 1
            await factory.dispose()

        _run(run())

    def test_concurrent_writers_keep_versions_increasing(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            store = SQLAlchemyEventStore(factory)
            await store.append([_event(version=1)])
            results = await asyncio.gather(
                *(store.append([_event(version=v)]) for v in (5, 4, 3, 2)),
                return_exceptions=True,
            )
            assert all(
                not isinstance(r, BaseException) or isinstance(r, ConcurrencyError) for r in results
            )
            versions = [e.version for e in await store.get_by_aggregate("Order", "A1")]
            assert versions == sorted(set(versions))
            assert versions[0] == 1 and len(versions) >= 2
            await factory.dispose()

        _run(run())

    def test_concurrent_appends_get_distinct_sequences(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            store = SQLAlchemyEventStore(factory)
            await asyncio.gather(*(store.append([_event(f"AGG-{i}", 1)]) for i in range(10)))
            everything = await store.get_after(0)
            sequences = [e.sequence for e in everything]
            assert len(sequences) == 10
            assert sequences == sorted(set(sequences))
            await factory.dispose()

        _run(run())

    def test_health_check(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            status = await DatabaseHealthCheck(factory).check()
            assert status.healthy is True
            await factory.dispose()

        _run(run())


# ---------------------------------------------------------------------------
# Snapshot + projection stores
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestPostgresSnapshotAndProjectionStores:
    def test_snapshot_upsert(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            store = SQLAlchemySnapshotStore(factory)
            await store.save(Snapshot("Order", "A1", 2, b"v2"))
            latest = Snapshot("Order", "A1", 4, b"v4")
            await store.save(latest)
            assert await store.get_latest("Order", "A1") == latest
            await factory.dispose()

        _run(run())

    def test_concurrent_first_get_agrees_on_id(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            store = SQLAlchemyProjectionStore(factory)
            results = await asyncio.gather(*(store.get("order-summary") for _ in range(8)))
            assert len({p.projection_id for p in results}) == 1
            await factory.dispose()

        _run(run())

    def test_projection_save_and_status(self, pg_url: str) -> None:
        async def run() -> None:
            factory = await _fresh_factory(pg_url)
            store = SQLAlchemyProjectionStore(factory)
            projection = await store.get("p")
            await store.save(dataclasses.replace(projection, last_processed_sequence=9))
            await store.save(dataclasses.replace(projection, last_processed_sequence=3))
            await store.update_status(projection.projection_id, STATUS_PAUSED)
            stored = await store.get("p")
            assert stored.last_processed_sequence == 9
            assert stored.status == STATUS_PAUSED
            with pytest.raises(ProjectionNotFoundError):
                await store.update_status("missing", STATUS_PAUSED)
            await factory.dispose()

        _run(run())
