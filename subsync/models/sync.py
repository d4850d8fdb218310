"""Sync payload, result and state models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from subsync.models.artifacts import Artifact, utc_now

CURRENT_SCHEMA_VERSION = 1


class SyncPlatform(str, Enum):
    """Remote store selected in settings."""

    NONE = "none"
    GIST = "gist"
    GITLAB = "gitlab"


class SyncOperation(str, Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"


class SyncOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"


class ErrorKind(str, Enum):
    """Stable, machine-readable error categories surfaced to front ends."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    NOT_CONFIGURED = "not_configured"
    AUTH = "auth"
    NETWORK = "network"
    CONFLICT = "conflict"
    QUOTA_EXCEEDED = "quota_exceeded"
    DECODE = "decode"
    ALREADY_IN_PROGRESS = "already_in_progress"
    CANCELLED = "cancelled"


class SyncPayload(BaseModel):
    """The serialized document exchanged with every remote store.

    Unknown top-level fields are preserved so that a payload written by a
    newer client round-trips through this one without losing data.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    schema_version: int = CURRENT_SCHEMA_VERSION
    exported_at: datetime = Field(default_factory=utc_now)
    artifacts: list[Artifact] = []


class SyncResult(BaseModel):
    """Outcome of one upload-all or download-all."""

    model_config = ConfigDict(frozen=True)

    operation: SyncOperation
    outcome: SyncOutcome = SyncOutcome.SUCCEEDED
    artifact_ids: list[str] = []
    payload_digest: str = ""  # "sha256:<hex>" of the blob written or read
    cancel_requested: bool = False
    finished_at: datetime = Field(default_factory=utc_now)

    @property
    def succeeded(self) -> bool:
        return self.outcome == SyncOutcome.SUCCEEDED


class SyncErrorInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


class SyncState(BaseModel):
    """Snapshot of the coordinator's loading flags and last outcome."""

    model_config = ConfigDict(frozen=True)

    is_uploading: bool = False
    is_downloading: bool = False
    last_upload_at: datetime | None = None
    last_download_at: datetime | None = None
    last_error: SyncErrorInfo | None = None


class SyncMarker(BaseModel):
    """Fingerprint of the enabled subset at the last successful upload or restore.

    Stored alongside the local collection so a new process still knows
    whether local state has drifted from the remote.
    """

    model_config = ConfigDict(frozen=True)

    digest: str
    synced_at: datetime = Field(default_factory=utc_now)
