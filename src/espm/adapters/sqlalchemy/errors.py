"""SQLAlchemy adapter – translation of driver failures into StoreError."""
from __future__ import annotations

import contextlib
from datetime import UTC, datetime
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from espm.kernel.errors import ConcurrencyError, StoreError

_VERSION_CONFLICT_MARKERS = ("uq_events_aggregate_version", "events.event_version")


@contextlib.asynccontextmanager
async def translate_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise SQLAlchemy and socket failures as :class:`StoreError`.

    A unique-constraint violation on ``(aggregate_type, aggregate_id,
    event_version)`` becomes :class:`ConcurrencyError`.
    """
    try:
        yield
    except IntegrityError as exc:
        if any(marker in str(exc.orig) for marker in _VERSION_CONFLICT_MARKERS):
            raise ConcurrencyError(cause=exc) from exc
        raise StoreError(f"{operation} violated a constraint: {exc.orig}", cause=exc) from exc
    except SQLAlchemyError as exc:
        raise StoreError(f"{operation} failed: {exc}", cause=exc) from exc
    except OSError as exc:
        raise StoreError(f"{operation} failed: {exc}", cause=exc) from exc


def as_utc(value: datetime) -> datetime:
    """Normalise to aware UTC; SQLite drops tzinfo on round-trip, so naive means UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


__all__ = ["as_utc", "translate_errors"]
