"""Manual file adapter — backup/restore through a local JSON file.

The file holds exactly the document a cloud store would hold, so an export
can be imported on another device or pasted into a gist by hand.
"""

from __future__ import annotations

import errno
import logging
import os
from pathlib import Path

from subsync.core.errors import AuthError, NetworkError, NotConfiguredError, QuotaExceededError

logger = logging.getLogger(__name__)


class ManualFileAdapter:
    """Reads and writes the payload blob at a user-chosen path.

    Parameters
    ----------
    path:
        Backup file location. ``None`` leaves the adapter unconfigured.
    """

    def __init__(self, path: Path | str | None) -> None:
        self._path = Path(path) if path is not None else None

    @property
    def name(self) -> str:
        return "manual_file"

    @property
    def is_configured(self) -> bool:
        return self._path is not None

    @property
    def location(self) -> str:
        return str(self._path) if self._path is not None else ""

    def read(self, timeout: float | None = None) -> bytes:
        path = self._require_path()
        try:
            blob = path.read_bytes()
        except FileNotFoundError as exc:
            raise NotConfiguredError(f"Backup file not found: {path}") from exc
        except OSError as exc:
            raise _map_os_error(exc, path) from exc
        logger.debug("ManualFileAdapter: read %d bytes from %s", len(blob), path)
        return blob

    def write(self, blob: bytes, timeout: float | None = None) -> None:
        path = self._require_path()
        tmp = path.with_name(f"{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(blob)
            os.replace(tmp, path)
        except OSError as exc:
            raise _map_os_error(exc, path) from exc
        logger.debug("ManualFileAdapter: wrote %d bytes to %s", len(blob), path)

    def _require_path(self) -> Path:
        if self._path is None:
            raise NotConfiguredError("No backup file path given")
        return self._path


def _map_os_error(exc: OSError, path: Path) -> Exception:
    if isinstance(exc, PermissionError):
        return AuthError(f"Permission denied for {path}")
    if exc.errno in (errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)):
        return QuotaExceededError(f"No space left to write {path}")
    return NetworkError(f"I/O failure on {path}: {exc}")
