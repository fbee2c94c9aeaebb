"""SQLAlchemy adapter – durable event log, snapshot and projection stores."""
from espm.adapters.sqlalchemy.event_store import SQLAlchemyEventStore
from espm.adapters.sqlalchemy.projection_store import SQLAlchemyProjectionStore
from espm.adapters.sqlalchemy.schema import create_tables, metadata
from espm.adapters.sqlalchemy.session import SqlAlchemySessionFactory
from espm.adapters.sqlalchemy.snapshot_store import SQLAlchemySnapshotStore

__all__ = [
    "SQLAlchemyEventStore",
    "SQLAlchemyProjectionStore",
    "SQLAlchemySnapshotStore",
    "SqlAlchemySessionFactory",
    "create_tables",
    "metadata",
]
