"""Testing support – fakes for exercising stores and caches without infrastructure."""

from espm.testing.fakes import FlakyCache, FrozenClock, SpyEventStore

__all__ = ["FlakyCache", "FrozenClock", "SpyEventStore"]
