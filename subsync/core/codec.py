"""Payload codec — encodes and validates the serialized sync document.

Every remote store and the manual backup file carry the same document::

    {"schema_version": 1, "exported_at": "...", "artifacts": [...]}

Decoding is strict about structure and lenient about additions: unknown
fields are kept on the models, a newer ``schema_version`` is accepted with a
warning, and a bare JSON list of artifacts (the legacy export format) is
read as schema version 0.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from subsync.core.errors import DecodeError
from subsync.models.artifacts import Artifact
from subsync.models.sync import CURRENT_SCHEMA_VERSION, SyncPayload

logger = logging.getLogger(__name__)

LEGACY_SCHEMA_VERSION = 0

# Top-level field holding the local store's sync marker.
SYNC_MARKER_FIELD = "local_sync"


def encode_payload(
    artifacts: Iterable[Artifact],
    *,
    extras: dict[str, Any] | None = None,
) -> bytes:
    """Serialize *artifacts* (in the given order) into a payload blob.

    *extras* are top-level fields carried over from a previously decoded
    payload; they never override the fields this version owns.
    """
    payload = SyncPayload(artifacts=list(artifacts))
    data = dict(extras or {})
    data.update(payload.model_dump(mode="json"))
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


def decode_payload(blob: bytes | str) -> SyncPayload:
    """Deserialize and validate a payload blob.

    Raises
    ------
    DecodeError
        If the blob is not JSON, is not a payload object or legacy list,
        fails model validation, or repeats an artifact id.
    """
    if isinstance(blob, bytes):
        try:
            blob = blob.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Payload is not UTF-8: {exc}") from exc

    if not blob.strip():
        raise DecodeError("Payload is empty")

    try:
        data = json.loads(blob)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON: {exc}") from exc

    if isinstance(data, list):
        data = {"schema_version": LEGACY_SCHEMA_VERSION, "artifacts": data}
    elif not isinstance(data, dict):
        raise DecodeError(
            f"Payload must be a JSON object, got {type(data).__name__}"
        )
    elif "artifacts" not in data:
        raise DecodeError("Missing artifacts field")

    try:
        payload = SyncPayload.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"Payload validation failed: {exc}") from exc

    if payload.schema_version > CURRENT_SCHEMA_VERSION:
        logger.warning(
            "Payload schema_version %d is newer than supported %d; "
            "unknown fields will be preserved",
            payload.schema_version,
            CURRENT_SCHEMA_VERSION,
        )

    seen: set[str] = set()
    for artifact in payload.artifacts:
        if artifact.id in seen:
            raise DecodeError(f"Duplicate artifact id in payload: {artifact.id}")
        seen.add(artifact.id)

    return payload


def payload_extras(payload: SyncPayload) -> dict[str, Any]:
    """Return the top-level fields this version does not own.

    The local store's sync marker is dropped so it never reaches a remote or
    a backup file.
    """
    extras = dict(payload.model_extra or {})
    extras.pop(SYNC_MARKER_FIELD, None)
    return extras
