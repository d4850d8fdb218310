"""Periodic background upload of unsynced changes.

A daemon thread wakes every ``check_every`` seconds and uploads the enabled
subset when it has changed and the last sync is at least ``interval``
seconds old (or has never happened). It goes through the coordinator, so
single-flight, events and ``last_error`` behave exactly as for a manual
upload.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from subsync.core.errors import AlreadyInProgressError, SubsyncError
from subsync.models.artifacts import utc_now
from subsync.models.sync import SyncResult

if TYPE_CHECKING:
    from subsync.core.coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class AutoUploader:
    """Uploads on a timer while local state has drifted from the remote.

    Parameters
    ----------
    coordinator:
        Coordinator whose ``upload_all`` does the work.
    interval_seconds:
        Minimum age of the last sync before another automatic upload.
    check_every:
        Seconds between checks on the background thread.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        coordinator: SyncCoordinator,
        interval_seconds: float,
        *,
        check_every: float,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if interval_seconds <= 0 or check_every <= 0:
            raise ValueError("interval_seconds and check_every must be positive")
        self._coordinator = coordinator
        self._interval = interval_seconds
        self._check_every = check_every
        self._clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def is_due(self) -> bool:
        """Whether an automatic upload should start now."""
        repository = self._coordinator.repository
        if not repository.has_unsynced_changes or not self._coordinator.can_upload:
            return False
        last = repository.last_synced_at
        if last is None:
            return True
        return (self._clock() - last).total_seconds() >= self._interval

    def run_once(self) -> SyncResult | None:
        """Upload if due; returns the result, or None when nothing ran.

        Failures are already recorded by the coordinator (``last_error`` and
        a ``sync_failed`` event), so they are logged here and not raised.
        """
        if not self.is_due():
            return None
        logger.info("Auto-upload: local changes pending, uploading")
        try:
            return self._coordinator.upload_all()
        except AlreadyInProgressError:
            logger.info("Auto-upload: an upload is already running, skipping")
        except SubsyncError as exc:
            logger.warning("Auto-upload failed (%s): %s", exc.kind.value, exc)
        return None

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="subsync-auto-upload", daemon=True
        )
        self._thread.start()
        logger.info(
            "Auto-upload started: interval %.0fs, checking every %.0fs",
            self._interval,
            self._check_every,
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop.set()
        thread.join(timeout)
        self._thread = None
        logger.info("Auto-upload stopped")

    def _loop(self) -> None:
        while not self._stop.wait(self._check_every):
            self.run_once()
