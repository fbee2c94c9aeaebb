"""Application event sourcing – JSON codecs for metadata and cached event lists.

Metadata maps are stored as JSON text in the durable log.  Whole aggregate
histories are cached as a JSON array; ``data`` is base64-encoded and
``created_at`` is ISO-8601 so that a decoded list compares equal to the
original.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import Any

from espm.application.event_sourcing.event import Event
from espm.kernel.errors import SerializationError


def encode_metadata(metadata: dict[str, Any]) -> str:
    """Serialise a metadata map to JSON text (keys sorted)."""
    try:
        return json.dumps(metadata or {}, sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"Metadata is not JSON-serialisable: {exc}", payload_type="metadata", cause=exc
        ) from exc


def decode_metadata(raw: str | bytes | None) -> dict[str, Any]:
    """Inverse of :func:`encode_metadata`; empty input yields ``{}``."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"Stored metadata is not valid JSON: {exc}", payload_type="metadata", cause=exc
        ) from exc
    if not isinstance(value, dict):
        raise SerializationError("Stored metadata is not a JSON object", payload_type="metadata")
    return value


def _event_to_dict(event: Event) -> dict[str, Any]:
    return {
        "event_id": event.event_id,
        "aggregate_type": event.aggregate_type,
        "aggregate_id": event.aggregate_id,
        "event_type": event.event_type,
        "version": event.version,
        "sequence": event.sequence,
        "data": base64.b64encode(event.data).decode("ascii"),
        "metadata": event.metadata,
        "created_at": event.created_at.isoformat(),
    }


def _event_from_dict(item: dict[str, Any]) -> Event:
    return Event(
        event_id=item["event_id"],
        aggregate_type=item["aggregate_type"],
        aggregate_id=item["aggregate_id"],
        event_type=item["event_type"],
        version=int(item["version"]),
        sequence=item.get("sequence"),
        data=base64.b64decode(item["data"], validate=True),
        metadata=item.get("metadata") or {},
        created_at=datetime.fromisoformat(item["created_at"]),
    )


def encode_events(events: list[Event]) -> bytes:
    """Encode an ordered event list as a UTF-8 JSON array."""
    try:
        return json.dumps([_event_to_dict(e) for e in events]).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"Failed to encode event list: {exc}", payload_type="events", cause=exc
        ) from exc


def decode_events(raw: bytes) -> list[Event]:
    """Decode bytes produced by :func:`encode_events`, preserving order."""
    try:
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError("expected a JSON array")
        return [_event_from_dict(item) for item in items]
    except (KeyError, TypeError, ValueError, binascii.Error) as exc:
        raise SerializationError(
            f"Failed to decode event list: {exc}", payload_type="events", cause=exc
        ) from exc


__all__ = ["decode_events", "decode_metadata", "encode_events", "encode_metadata"]
