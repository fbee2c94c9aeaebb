from __future__ import annotations

from typing import Any, Callable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from espm.application.cache.port import Cache
from espm.kernel.errors import CacheError
from espm.observability.health.check import HealthCheck, HealthStatus

__all__ = ["CacheHealthCheck", "DatabaseHealthCheck"]


class DatabaseHealthCheck(HealthCheck):
    """Checks durable store connectivity by running ``SELECT 1``."""

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self._factory = session_factory

    @property
    def name(self) -> str:
        return "database"

    async def check(self) -> HealthStatus:
        try:
            async with self._factory() as session:
                await session.execute(text("SELECT 1"))
            return HealthStatus(healthy=True)
        except (SQLAlchemyError, OSError) as exc:
            return HealthStatus(healthy=False, detail=str(exc))


class CacheHealthCheck(HealthCheck):
    """Checks cache reachability through :meth:`Cache.health_check`."""

    def __init__(self, cache: Cache, name: str = "cache") -> None:
        self._cache = cache
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthStatus:
        try:
            await self._cache.health_check()
            return HealthStatus(healthy=True)
        except CacheError as exc:
            return HealthStatus(healthy=False, detail=exc.message)
