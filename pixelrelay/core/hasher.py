"""Canonical JSON and digest helpers for written payloads and replay output."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: sorted keys, compact separators, ASCII."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def payload_digest(payload: Any) -> str:
    """Short, stable fingerprint of a mapped payload (``sha256:<12 hex>``)."""
    return f"sha256:{sha256_hex(canonical_json_bytes(payload))[:12]}"
