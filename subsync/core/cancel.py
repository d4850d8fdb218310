"""Cooperative cancellation for in-flight sync operations."""

from __future__ import annotations

import threading

from subsync.core.errors import SyncCancelledError


class CancelToken:
    """A one-shot cancel flag shared between a caller and a running operation.

    Cancellation is only honoured at checkpoints before the remote call
    starts. Once the call is under way, ``cancel()`` is recorded but the call
    runs to completion.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._remote_started = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def remote_started(self) -> bool:
        return self._remote_started.is_set()

    def checkpoint(self, stage: str) -> None:
        """Raise ``SyncCancelledError`` if a cancel arrived before *stage*."""
        if self._event.is_set():
            raise SyncCancelledError(f"Cancelled before {stage}")

    def begin_remote(self, stage: str) -> None:
        """Final checkpoint; after this call cancellation is advisory."""
        self.checkpoint(stage)
        self._remote_started.set()
