"""
espm – event store persistence manager.

Import path convention::

    from espm.kernel.errors import StoreError, CacheMissError
    from espm.application.event_sourcing import Event, EventStore
    from espm.adapters.sqlalchemy import SQLAlchemyEventStore
    from espm.adapters.redis import RedisCache
    from espm.resilience.cache import CachedEventStore
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
