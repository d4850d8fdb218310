"""Wiring shared by every CLI command: settings, logging, services, errors."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from subsync.config import SubsyncSettings
from subsync.core.coordinator import SyncCoordinator
from subsync.core.errors import SubsyncError
from subsync.core.local_store import LocalArtifactStore
from subsync.core.repository import ArtifactRepository
from subsync.remote.factory import create_remote_adapter

console = Console()
err_console = Console(stderr=True)


@dataclass
class Services:
    settings: SubsyncSettings
    repository: ArtifactRepository
    coordinator: SyncCoordinator


def configure_logging(level: str) -> None:
    """Route library logging through Rich once per process."""
    root = logging.getLogger()
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=err_console, show_path=False))
    root.setLevel(level.upper())


def build_services(ctx: typer.Context) -> Services:
    """Construct settings, store, adapter, repository and coordinator.

    The repository is loaded from the local store before it is returned.
    """
    overrides = ctx.obj or {}
    settings = SubsyncSettings(**{k: v for k, v in overrides.items() if v is not None})
    configure_logging(settings.log_level)

    remote = create_remote_adapter(settings)
    repository = ArtifactRepository(
        LocalArtifactStore(settings.store_path),
        remote,
        timeout=settings.timeout_seconds,
    )
    with handle_errors("load"):
        repository.fetch_all()
    coordinator = SyncCoordinator(repository, timeout=settings.timeout_seconds)
    return Services(settings=settings, repository=repository, coordinator=coordinator)


@contextmanager
def handle_errors(action: str) -> Iterator[None]:
    """Print a typed failure and exit with status 1."""
    try:
        yield
    except SubsyncError as exc:
        console.print(f"[bold red]{action} failed[/bold red] " + escape(f"[{exc.kind.value}] {exc}"))
        raise typer.Exit(code=1) from exc


def read_content(path: Path | None) -> str:
    if path is None:
        return ""
    return path.read_text(encoding="utf-8")
