"""Resilience – cache-aside event store."""
from espm.resilience.cache.aside import CachedEventStore

__all__ = ["CachedEventStore"]
