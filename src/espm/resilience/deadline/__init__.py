"""Resilience – Deadline propagation via contextvars."""
from espm.resilience.deadline.context import (
    DeadlineContext,
    DeadlineExceededError,
    deadline_aware,
)

__all__ = ["DeadlineContext", "DeadlineExceededError", "deadline_aware"]
