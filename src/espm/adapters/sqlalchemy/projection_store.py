"""SQLAlchemy adapter – SQLAlchemyProjectionStore."""
from __future__ import annotations

import uuid
from typing import Any, Callable

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from espm.adapters.sqlalchemy.errors import as_utc, translate_errors
from espm.adapters.sqlalchemy.schema import dialect_insert, projections_table
from espm.application.event_sourcing.projection import STATUS_ACTIVE, Projection, ProjectionStore
from espm.kernel.errors import ProjectionNotFoundError, ValidationError
from espm.kernel.time import Clock, SystemClock
from espm.observability.logging import get_logger
from espm.resilience.deadline import deadline_aware

logger = get_logger(__name__)

_t = projections_table


class SQLAlchemyProjectionStore(ProjectionStore):
    """Projection bookmarks in the ``projections`` table.

    ``projection_type`` is unique.  Both :meth:`save` and first-time
    :meth:`get` are ``INSERT … ON CONFLICT`` statements, so concurrent
    callers never fail on a duplicate key.  The stored
    ``last_processed_event`` only ever moves forward.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    async def save(self, projection: Projection) -> None:
        if not projection.projection_type:
            raise ValidationError("Projection type must not be empty")
        await deadline_aware(self._save(projection))

    async def get(self, projection_type: str) -> Projection:
        if not projection_type:
            raise ValidationError("Projection type must not be empty")
        return await deadline_aware(self._get(projection_type))

    async def update_status(self, projection_id: str, status: str) -> None:
        await deadline_aware(self._update_status(projection_id, status))

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    async def _save(self, projection: Projection) -> None:
        async with translate_errors("save_projection"):
            async with self._session_factory() as session:
                async with session.begin():
                    stmt = dialect_insert(session, _t).values(
                        projection_id=projection.projection_id,
                        projection_type=projection.projection_type,
                        last_processed_event=projection.last_processed_sequence,
                        status=projection.status,
                        updated_at=as_utc(projection.updated_at),
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[_t.c.projection_type],
                        set_={
                            "last_processed_event": case(
                                (
                                    stmt.excluded.last_processed_event > _t.c.last_processed_event,
                                    stmt.excluded.last_processed_event,
                                ),
                                else_=_t.c.last_processed_event,
                            ),
                            "status": stmt.excluded.status,
                            "updated_at": stmt.excluded.updated_at,
                        },
                    )
                    await session.execute(stmt)
        logger.debug(
            "projection_store.saved",
            projection_type=projection.projection_type,
            last_processed_sequence=projection.last_processed_sequence,
            status=projection.status,
        )

    async def _get(self, projection_type: str) -> Projection:
        select_stmt = select(_t).where(_t.c.projection_type == projection_type)
        async with translate_errors("get_projection"):
            async with self._session_factory() as session:
                async with session.begin():
                    row = (await session.execute(select_stmt)).mappings().one_or_none()
                    if row is None:
                        insert_stmt = (
                            dialect_insert(session, _t)
                            .values(
                                projection_id=str(uuid.uuid4()),
                                projection_type=projection_type,
                                last_processed_event=0,
                                status=STATUS_ACTIVE,
                                updated_at=as_utc(self._clock.now()),
                            )
                            .on_conflict_do_nothing(index_elements=[_t.c.projection_type])
                        )
                        await session.execute(insert_stmt)
                        row = (await session.execute(select_stmt)).mappings().one()
                        logger.info("projection_store.created", projection_type=projection_type)
        return self._row_to_projection(row)

    async def _update_status(self, projection_id: str, status: str) -> None:
        stmt = (
            update(_t)
            .where(_t.c.projection_id == projection_id)
            .values(status=status, updated_at=as_utc(self._clock.now()))
        )
        async with translate_errors("update_projection_status"):
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    matched = result.rowcount
        if not matched:
            raise ProjectionNotFoundError(projection_id)
        logger.debug("projection_store.status_updated", projection_id=projection_id, status=status)

    @staticmethod
    def _row_to_projection(row: Any) -> Projection:
        return Projection(
            projection_id=row["projection_id"],
            projection_type=row["projection_type"],
            last_processed_sequence=row["last_processed_event"],
            status=row["status"],
            updated_at=as_utc(row["updated_at"]),
        )


__all__ = ["SQLAlchemyProjectionStore"]
