"""subsync data models — all Pydantic v2, all frozen (immutable)."""

from subsync.models.artifacts import Artifact, ArtifactType
from subsync.models.sync import (
    CURRENT_SCHEMA_VERSION,
    ErrorKind,
    SyncErrorInfo,
    SyncMarker,
    SyncOperation,
    SyncOutcome,
    SyncPayload,
    SyncPlatform,
    SyncResult,
    SyncState,
)

__all__ = [
    # artifacts
    "Artifact",
    "ArtifactType",
    # sync
    "CURRENT_SCHEMA_VERSION",
    "ErrorKind",
    "SyncErrorInfo",
    "SyncMarker",
    "SyncOperation",
    "SyncOutcome",
    "SyncPayload",
    "SyncPlatform",
    "SyncResult",
    "SyncState",
]
