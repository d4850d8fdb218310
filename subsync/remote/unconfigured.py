"""Adapter used when no sync platform is selected."""

from __future__ import annotations

from subsync.core.errors import NotConfiguredError


class UnconfiguredAdapter:
    """Every call fails with ``NotConfiguredError``."""

    @property
    def name(self) -> str:
        return "none"

    @property
    def is_configured(self) -> bool:
        return False

    @property
    def location(self) -> str:
        return ""

    def read(self, timeout: float | None = None) -> bytes:
        raise NotConfiguredError("No sync platform selected")

    def write(self, blob: bytes, timeout: float | None = None) -> None:
        raise NotConfiguredError("No sync platform selected")
