"""Sync coordinator — single-flight upload/download flows over the repository.

The coordinator is what a front end drives for the cloud buttons. It guards
each operation class with its own non-blocking lock, exposes derived
loading/disabled state, publishes every outcome on the event channel and
re-raises typed errors to the caller. It never retries on its own.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from subsync.core.auto_upload import AutoUploader
from subsync.core.cancel import CancelToken
from subsync.core.errors import (
    AlreadyInProgressError,
    ArtifactValidationError,
    NotConfiguredError,
    SubsyncError,
    SyncCancelledError,
)
from subsync.core.events import EventKind
from subsync.core.repository import ArtifactRepository
from subsync.models.artifacts import utc_now
from subsync.models.sync import (
    SyncErrorInfo,
    SyncOperation,
    SyncOutcome,
    SyncResult,
    SyncState,
)
from subsync.remote import RemoteAdapter
from subsync.remote.manual_file import ManualFileAdapter

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Orchestrates upload-all and download-all on top of the repository.

    Parameters
    ----------
    repository:
        The repository that owns canonical state. Its event channel is
        reused for coordinator notifications.
    remote:
        Adapter used for upload/download. Defaults to the repository's.
    timeout:
        Default timeout in seconds for remote calls.
    """

    def __init__(
        self,
        repository: ArtifactRepository,
        remote: RemoteAdapter | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self._repository = repository
        self._remote = remote or repository.remote
        self._timeout = timeout
        self._events = repository.events

        self._upload_lock = threading.Lock()
        self._download_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._state = SyncState()
        self._tokens: dict[SyncOperation, CancelToken] = {}
        self._auto_uploader: AutoUploader | None = None

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        with self._state_lock:
            return self._state

    @property
    def remote(self) -> RemoteAdapter:
        return self._remote

    @property
    def repository(self) -> ArtifactRepository:
        return self._repository

    @property
    def can_upload(self) -> bool:
        return (
            len(self._repository) > 0
            and self._remote.is_configured
            and not self.state.is_uploading
        )

    def can_download(self, import_path: Path | str | None = None) -> bool:
        """Whether a download may start now.

        An explicit *import_path* lifts the credential requirement, since
        the payload comes from a local file instead of the remote.
        """
        if self.state.is_downloading:
            return False
        return import_path is not None or self._remote.is_configured

    @property
    def preview_url(self) -> str:
        return self._remote.location

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_upload(self) -> bool:
        return self._cancel(SyncOperation.UPLOAD)

    def cancel_download(self) -> bool:
        return self._cancel(SyncOperation.DOWNLOAD)

    def _cancel(self, operation: SyncOperation) -> bool:
        """Request cancellation; returns False when nothing is in flight."""
        with self._state_lock:
            token = self._tokens.get(operation)
        if token is None:
            return False
        token.cancel()
        logger.info("Cancel requested for %s", operation.value)
        return True

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def upload_all(self, *, timeout: float | None = None) -> SyncResult:
        """Mirror the enabled artifacts to the remote.

        Raises
        ------
        AlreadyInProgressError
            If an upload is already running.
        ArtifactValidationError
            If there is nothing to upload.
        NotConfiguredError
            If the remote has no credentials; no network call is made.
        """
        def _run(token: CancelToken) -> SyncResult:
            if len(self._repository) == 0:
                raise ArtifactValidationError("There are no artifacts to upload")
            if not self._remote.is_configured:
                raise NotConfiguredError(
                    f"Sync platform {self._remote.name!r} is not configured"
                )
            return self._repository.sync_all_artifacts(
                adapter=self._remote,
                timeout=self._resolve_timeout(timeout),
                cancel_token=token,
            )

        return self._single_flight(SyncOperation.UPLOAD, self._upload_lock, _run)

    def download_all(
        self,
        *,
        import_path: Path | str | None = None,
        timeout: float | None = None,
    ) -> SyncResult:
        """Restore the whole collection from the remote or a backup file.

        Destructive: the local sequence is overwritten. Front ends must get
        the user's confirmation before calling this.

        Raises
        ------
        AlreadyInProgressError
            If a download is already running.
        NotConfiguredError, AuthError, NetworkError, DecodeError
            Propagated from the restore; local state is unchanged.
        """
        source = ManualFileAdapter(import_path) if import_path is not None else self._remote

        def _run(token: CancelToken) -> SyncResult:
            # Restore and refresh share one owner-lock acquisition inside
            # the repository; see ArtifactRepository.restore_artifacts.
            return self._repository.restore_artifacts(
                adapter=source,
                timeout=self._resolve_timeout(timeout),
                cancel_token=token,
                refresh=True,
            )

        return self._single_flight(SyncOperation.DOWNLOAD, self._download_lock, _run)

    def import_file(self, path: Path | str, *, timeout: float | None = None) -> SyncResult:
        """Manual restore from a backup file; same contract as ``download_all``."""
        return self.download_all(import_path=path, timeout=timeout)

    def export_file(
        self, path: Path | str, *, ids: Iterable[str] | None = None
    ) -> SyncResult:
        """Write a backup of the collection, or of just *ids*, to *path*."""
        return self._repository.export_to(ManualFileAdapter(path), ids=ids)

    # ------------------------------------------------------------------
    # Auto-upload
    # ------------------------------------------------------------------

    def start_auto_upload(
        self, interval_seconds: float, *, check_every: float
    ) -> AutoUploader:
        """Start uploading unsynced changes in the background."""
        self.stop_auto_upload()
        self._auto_uploader = AutoUploader(
            self, interval_seconds, check_every=check_every
        )
        self._auto_uploader.start()
        return self._auto_uploader

    def stop_auto_upload(self) -> None:
        if self._auto_uploader is not None:
            self._auto_uploader.stop()
            self._auto_uploader = None

    # ------------------------------------------------------------------
    # Single-flight machinery
    # ------------------------------------------------------------------

    def _single_flight(
        self,
        operation: SyncOperation,
        guard: threading.Lock,
        run: Callable[[CancelToken], SyncResult],
    ) -> SyncResult:
        if not guard.acquire(blocking=False):
            error = AlreadyInProgressError(
                f"{operation.value.capitalize()} is already in progress; retry later"
            )
            # The running operation owns the state; report the rejection
            # without recording it as a failure.
            self._events.emit(
                EventKind.SYNC_STATE_CHANGED,
                operation.value,
                rejected=True,
                error=error.info().model_dump(mode="json"),
                state=self.state.model_dump(mode="json"),
            )
            raise error

        token = CancelToken()
        try:
            self._set_flag(operation, True, token)
            try:
                result = run(token)
            except SyncCancelledError:
                logger.info("%s cancelled before the remote call", operation.value)
                result = SyncResult(operation=operation, outcome=SyncOutcome.CANCELLED)
                self._finish(operation, error=None, succeeded=False)
                self._events.emit(
                    EventKind.SYNC_STATE_CHANGED, operation.value, outcome=result.outcome.value
                )
                return result
            except SubsyncError as exc:
                logger.warning("%s failed (%s): %s", operation.value, exc.kind.value, exc)
                self._finish(operation, error=exc.info(), succeeded=False)
                self._events.emit(
                    EventKind.SYNC_FAILED, operation.value, error=exc.info().model_dump(mode="json")
                )
                raise

            self._finish(operation, error=None, succeeded=True)
            logger.info(
                "%s succeeded: %d artifacts, %s",
                operation.value,
                len(result.artifact_ids),
                result.payload_digest,
            )
            self._events.emit(
                EventKind.SYNC_SUCCEEDED,
                operation.value,
                artifact_ids=result.artifact_ids,
                payload_digest=result.payload_digest,
                cancel_requested=result.cancel_requested,
            )
            return result
        finally:
            self._clear_flag(operation)
            guard.release()

    def _set_flag(self, operation: SyncOperation, value: bool, token: CancelToken) -> None:
        with self._state_lock:
            self._tokens[operation] = token
            self._state = self._state.model_copy(update={self._flag_name(operation): value})
            state = self._state
        self._events.emit(
            EventKind.SYNC_STATE_CHANGED, operation.value, state=state.model_dump(mode="json")
        )

    def _clear_flag(self, operation: SyncOperation) -> None:
        with self._state_lock:
            self._tokens.pop(operation, None)
            self._state = self._state.model_copy(update={self._flag_name(operation): False})
            state = self._state
        self._events.emit(
            EventKind.SYNC_STATE_CHANGED, operation.value, state=state.model_dump(mode="json")
        )

    def _finish(
        self,
        operation: SyncOperation,
        *,
        error: SyncErrorInfo | None,
        succeeded: bool,
    ) -> None:
        update: dict[str, object] = {"last_error": error}
        if succeeded:
            stamp = "last_upload_at" if operation == SyncOperation.UPLOAD else "last_download_at"
            update[stamp] = utc_now()
        with self._state_lock:
            self._state = self._state.model_copy(update=update)

    @staticmethod
    def _flag_name(operation: SyncOperation) -> str:
        return "is_uploading" if operation == SyncOperation.UPLOAD else "is_downloading"

    def _resolve_timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self._timeout
