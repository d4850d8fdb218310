"""Digest helpers for payload fingerprints and change tracking."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize *obj* so equal data always yields equal bytes.

    Keys are sorted, separators carry no whitespace and output is ASCII.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True).encode(
        "utf-8"
    )


def blob_digest(blob: bytes) -> str:
    """Fingerprint a serialized payload as ``sha256:<hex>``."""
    return f"sha256:{hashlib.sha256(blob).hexdigest()}"


def content_digest(obj: Any) -> str:
    """Fingerprint a JSON-serializable object independent of key order."""
    return blob_digest(canonical_json_bytes(obj))
