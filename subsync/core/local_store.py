"""Local JSON-file persistence for the canonical artifact sequence.

Layout: a single document at ``path`` in the same format the remote stores
use (see ``subsync.core.codec``), so a local store file is also a valid
manual backup. The store adds one top-level field of its own, the sync
marker, which the codec strips before anything is sent elsewhere. Writes go
to a sibling temp file and are moved into place so a crash mid-write never
leaves a truncated store behind.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from subsync.core.codec import SYNC_MARKER_FIELD, decode_payload, encode_payload, payload_extras
from subsync.core.errors import DecodeError, PersistenceError, RemoteUnavailableError
from subsync.models.artifacts import Artifact
from subsync.models.sync import SyncMarker

logger = logging.getLogger(__name__)


class StoredCollection(BaseModel):
    """Everything read back from the store file."""

    model_config = ConfigDict(frozen=True)

    artifacts: list[Artifact] = []
    extras: dict[str, Any] = {}
    marker: SyncMarker | None = None


class LocalArtifactStore:
    """Reads and writes the ordered artifact sequence to one JSON file.

    Parameters
    ----------
    path:
        Location of the store file. Parent directories are created on the
        first write. A missing file reads as an empty collection.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoredCollection:
        """Read the stored document.

        Raises
        ------
        RemoteUnavailableError
            If the file exists but cannot be read.
        DecodeError
            If the file contents are not a valid payload or the sync marker
            is malformed.
        """
        if not self._path.exists():
            logger.debug("LocalArtifactStore: %s missing, starting empty", self._path)
            return StoredCollection()
        try:
            blob = self._path.read_bytes()
        except OSError as exc:
            raise RemoteUnavailableError(
                f"Cannot read artifact store {self._path}: {exc}"
            ) from exc
        payload = decode_payload(blob)

        marker = None
        raw_marker = (payload.model_extra or {}).get(SYNC_MARKER_FIELD)
        if raw_marker is not None:
            try:
                marker = SyncMarker.model_validate(raw_marker)
            except ValidationError as exc:
                raise DecodeError(f"Invalid sync marker in {self._path}: {exc}") from exc

        return StoredCollection(
            artifacts=payload.artifacts, extras=payload_extras(payload), marker=marker
        )

    def save(
        self,
        artifacts: Iterable[Artifact],
        *,
        extras: dict[str, Any] | None = None,
        marker: SyncMarker | None = None,
    ) -> None:
        """Atomically replace the stored document.

        Raises
        ------
        PersistenceError
            If the document cannot be written.
        """
        fields = dict(extras or {})
        fields.pop(SYNC_MARKER_FIELD, None)
        if marker is not None:
            fields[SYNC_MARKER_FIELD] = marker.model_dump(mode="json")
        blob = encode_payload(artifacts, extras=fields)
        tmp = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(blob)
            os.replace(tmp, self._path)
        except OSError as exc:
            raise PersistenceError(
                f"Cannot write artifact store {self._path}: {exc}"
            ) from exc
        logger.debug("LocalArtifactStore: wrote %d bytes to %s", len(blob), self._path)
