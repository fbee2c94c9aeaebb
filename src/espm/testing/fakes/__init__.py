"""Testing fakes – in-memory doubles for the store and cache ports."""
from espm.kernel.time import FrozenClock
from espm.testing.fakes.cache import FlakyCache
from espm.testing.fakes.spy import SpyEventStore

__all__ = ["FlakyCache", "FrozenClock", "SpyEventStore"]
