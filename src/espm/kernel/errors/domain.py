"""Domain errors – validation failures and "nothing there yet" conditions."""

from __future__ import annotations

from typing import Any

from espm.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a request cannot be honoured for a non-I/O reason."""

    default_code = "domain_error"


class ValidationError(DomainError):
    """Input data does not meet validation rules.

    Raised before any I/O is attempted (empty batch, blank identifiers).
    ``errors`` is a list of field-level validation failures.
    """

    default_code = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.errors: list[dict[str, Any]] = errors or []

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["errors"] = self.errors
        return base


class NotFoundError(DomainError):
    """The requested resource does not exist."""

    default_code = "not_found"

    def __init__(
        self,
        resource: str,
        identifier: Any = None,
        **kwargs: Any,
    ) -> None:
        msg = f"{resource} not found"
        if identifier is not None:
            msg = f"{resource} '{identifier}' not found"
        super().__init__(msg, **kwargs)
        self.resource = resource
        self.identifier = identifier


class SnapshotNotFoundError(NotFoundError):
    """No snapshot has been saved for the aggregate yet."""

    default_code = "snapshot_not_found"

    def __init__(self, aggregate_type: str, aggregate_id: str, **kwargs: Any) -> None:
        super().__init__("Snapshot", f"{aggregate_type}:{aggregate_id}", **kwargs)
        self.aggregate_type = aggregate_type
        self.aggregate_id = aggregate_id


class ProjectionNotFoundError(NotFoundError):
    """No projection record exists for the given id."""

    default_code = "projection_not_found"

    def __init__(self, projection_id: str, **kwargs: Any) -> None:
        super().__init__("Projection", projection_id, **kwargs)
        self.projection_id = projection_id


class ConflictError(DomainError):
    """The operation conflicts with existing state."""

    default_code = "conflict"


__all__ = [
    "ConflictError",
    "DomainError",
    "NotFoundError",
    "ProjectionNotFoundError",
    "SnapshotNotFoundError",
    "ValidationError",
]
