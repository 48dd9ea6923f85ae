"""Canonical signing payload for pqledger transactions."""

import base64
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

# Bump whenever the encoding below changes; old signatures stop verifying.
PAYLOAD_VERSION = 1


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as UTC ISO-8601 with microsecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse a stored ISO-8601 timestamp; values without an offset are UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def payload_fields(
    id: UUID,
    timestamp: datetime,
    data: bytes,
    previous_id: Optional[UUID],
) -> Dict[str, Any]:
    """Build the trust-relevant field set covered by a signature."""
    return {
        "version": PAYLOAD_VERSION,
        "id": str(id),
        "timestamp": format_timestamp(timestamp),
        "data": base64.b64encode(data).decode("ascii"),
        "previous_id": str(previous_id) if previous_id is not None else None,
    }


def canonical_payload(
    id: UUID,
    timestamp: datetime,
    data: bytes,
    previous_id: Optional[UUID],
) -> bytes:
    """Encode the signing payload as compact, key-sorted JSON bytes.

    Two transactions with equal ``id``, ``timestamp``, ``data`` and
    ``previous_id`` always produce byte-identical output.
    """
    fields = payload_fields(id, timestamp, data, previous_id)
    return json.dumps(fields, sort_keys=True, separators=(",", ":")).encode("utf-8")
