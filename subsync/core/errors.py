"""Error taxonomy for the repository, coordinator and remote adapters.

Every exception carries an ``ErrorKind`` so a front end can tell failures
apart without matching on message text.
"""

from __future__ import annotations

from typing import ClassVar

from subsync.models.sync import ErrorKind, SyncErrorInfo


class SubsyncError(Exception):
    """Base class for every error raised by subsync."""

    kind: ClassVar[ErrorKind]

    def info(self) -> SyncErrorInfo:
        return SyncErrorInfo(kind=self.kind, message=str(self))


class ArtifactValidationError(SubsyncError, ValueError):
    """Bad input rejected locally; never reaches the network."""

    kind = ErrorKind.VALIDATION


class OrderMismatchError(ArtifactValidationError):
    """A reorder request was not a permutation of the current ids."""


class NotFoundError(SubsyncError, KeyError):
    """An operation targeted an id that is not in the collection."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, artifact_id: str) -> None:
        super().__init__(artifact_id)
        self.artifact_id = artifact_id

    def __str__(self) -> str:
        return f"Artifact not found: {self.artifact_id}"


class PersistenceError(SubsyncError):
    """The local backing store could not be written."""

    kind = ErrorKind.PERSISTENCE


class RemoteUnavailableError(SubsyncError):
    """The local backing store could not be read."""

    kind = ErrorKind.REMOTE_UNAVAILABLE


class RemoteError(SubsyncError):
    """Base for failures reported by a remote adapter."""


class NotConfiguredError(RemoteError):
    """Credentials or a target location are missing."""

    kind = ErrorKind.NOT_CONFIGURED


class AuthError(RemoteError):
    """The remote rejected the configured credentials."""

    kind = ErrorKind.AUTH


class NetworkError(RemoteError):
    """Transport failure or timeout. Transient; callers may retry manually."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, *, timeout: bool = False) -> None:
        super().__init__(message)
        self.timeout = timeout


class ConflictError(RemoteError):
    """The remote refused a write because it changed concurrently."""

    kind = ErrorKind.CONFLICT


class QuotaExceededError(RemoteError):
    """The remote's storage or rate quota is exhausted."""

    kind = ErrorKind.QUOTA_EXCEEDED


class DecodeError(SubsyncError):
    """A payload does not match the expected schema."""

    kind = ErrorKind.DECODE


class AlreadyInProgressError(SubsyncError):
    """Single-flight rejection; the underlying operation did not fail."""

    kind = ErrorKind.ALREADY_IN_PROGRESS


class SyncCancelledError(SubsyncError):
    """Raised internally when a cancel is honoured before the remote call."""

    kind = ErrorKind.CANCELLED
