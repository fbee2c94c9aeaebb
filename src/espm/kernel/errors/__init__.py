"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError              (domain.py)
    │   ├── ValidationError
    │   ├── NotFoundError
    │   │   ├── SnapshotNotFoundError
    │   │   └── ProjectionNotFoundError
    │   └── ConflictError
    ├── ApplicationError         (application.py)
    │   └── TimeoutError
    └── InfrastructureError      (infrastructure.py)
        ├── StoreError
        │   └── ConcurrencyError
        ├── CacheError
        │   ├── CacheMissError
        │   └── InvalidKeyError
        └── SerializationError
"""

from espm.kernel.errors.application import ApplicationError, TimeoutError
from espm.kernel.errors.base import BaseError
from espm.kernel.errors.domain import (
    ConflictError,
    DomainError,
    NotFoundError,
    ProjectionNotFoundError,
    SnapshotNotFoundError,
    ValidationError,
)
from espm.kernel.errors.infrastructure import (
    CacheError,
    CacheMissError,
    ConcurrencyError,
    InfrastructureError,
    InvalidKeyError,
    SerializationError,
    StoreError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "CacheError",
    "CacheMissError",
    "ConcurrencyError",
    "ConflictError",
    "DomainError",
    "InfrastructureError",
    "InvalidKeyError",
    "NotFoundError",
    "ProjectionNotFoundError",
    "SerializationError",
    "SnapshotNotFoundError",
    "StoreError",
    "TimeoutError",
    "ValidationError",
]
