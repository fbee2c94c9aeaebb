"""Observability – health checks for the durable store and the cache."""
from espm.observability.health.builtin import CacheHealthCheck, DatabaseHealthCheck
from espm.observability.health.check import HealthCheck, HealthStatus
from espm.observability.health.registry import HealthRegistry, HealthReport

__all__ = [
    "CacheHealthCheck",
    "DatabaseHealthCheck",
    "HealthCheck",
    "HealthRegistry",
    "HealthReport",
    "HealthStatus",
]
