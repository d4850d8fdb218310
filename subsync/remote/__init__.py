"""Remote adapter protocol for subsync.

All remote stores implement the ``RemoteAdapter`` protocol: read and write
of a single serialized payload blob. The repository and coordinator only
ever talk to this protocol; choosing a concrete store happens once, in
``subsync.remote.factory``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class RemoteAdapter(Protocol):
    """Protocol that every remote store must implement.

    Attributes
    ----------
    name : str
        Short identifier of the strategy (``"gist"``, ``"gitlab"``,
        ``"manual_file"``, ``"none"``).
    is_configured : bool
        Whether the credentials or target needed for a call are present.
        Checking it never touches the network.
    location : str
        Human-facing URL or path of the stored payload, or ``""`` when not
        known yet.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def is_configured(self) -> bool:
        ...

    @property
    def location(self) -> str:
        ...

    def read(self, timeout: float | None = None) -> bytes:
        """Return the stored payload blob.

        Raises ``NotConfiguredError``, ``AuthError`` or ``NetworkError``.
        """
        ...

    def write(self, blob: bytes, timeout: float | None = None) -> None:
        """Replace the stored payload blob (last writer wins).

        Raises ``NotConfiguredError``, ``AuthError``, ``NetworkError``,
        ``ConflictError`` or ``QuotaExceededError``.
        """
        ...


__all__ = ["RemoteAdapter"]
