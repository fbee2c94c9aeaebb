"""Resilience – deadlines and the cache-aside event store."""
