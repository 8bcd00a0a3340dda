"""
Deterministic hashing utilities.

Audit payloads, config files and engine fingerprints are hashed with the
functions below so that the same logical content always yields the same
digest, whatever the dict ordering or Decimal scale it arrived with.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """Serialize the types ledger payloads carry beyond plain JSON."""
    if isinstance(obj, Decimal):
        # 5000 and 5000.000000000 must hash identically
        return format(obj.normalize(), "f") if obj else "0"
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if isinstance(obj, bytes):
        return obj.hex()

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """
    Convert data to a canonical JSON string.

    Keys are sorted, whitespace is removed, and Decimal / datetime / UUID /
    Enum values get a single stable representation.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def to_json_safe(data: Any) -> Any:
    """Round-trip data through the canonical encoder into plain JSON types."""
    return json.loads(canonicalize_json(data))


def hash_payload(payload: dict) -> str:
    """
    Compute SHA-256 hash of a payload.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_audit_event(
    entity_type: str,
    entity_id: str,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Compute the chained hash for an audit event.

    The hash covers the key fields plus the previous event's hash, so
    altering any earlier event breaks every hash after it.
    """
    components = [
        entity_type,
        str(entity_id),
        action,
        payload_hash,
        prev_hash or "GENESIS",
    ]
    data = "|".join(components)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def hash_text(text: str) -> str:
    """SHA-256 of raw text (config files)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
