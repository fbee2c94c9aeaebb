"""Resilience – deadlines."""
from espm.resilience.timeouts.deadline import Deadline

__all__ = ["Deadline"]
