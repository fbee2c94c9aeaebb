"""SQLAlchemy adapter – SqlAlchemySessionFactory."""
from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from espm.config.settings import DatabaseSettings


class SqlAlchemySessionFactory:
    """Creates async SQLAlchemy sessions from an engine URL.

    One factory owns one engine (and its connection pool) for the life of the
    process; stores share it and never reconfigure it.
    """

    def __init__(self, database_url: str, **engine_kwargs: Any) -> None:
        self._engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "SqlAlchemySessionFactory":
        kwargs: dict[str, Any] = {"echo": settings.echo}
        if not settings.url.startswith("sqlite"):
            kwargs.update(
                pool_size=settings.pool_size,
                max_overflow=settings.max_overflow,
                pool_timeout=settings.pool_timeout,
                pool_pre_ping=True,
            )
        return cls(settings.url, **kwargs)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    def __call__(self) -> AsyncSession:
        return self._session_factory()

    async def dispose(self) -> None:
        await self._engine.dispose()


__all__ = ["SqlAlchemySessionFactory"]
