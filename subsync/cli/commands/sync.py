"""Sync commands — upload, download, export, import, status, watch."""

from __future__ import annotations

import time
from pathlib import Path

import typer
from rich.panel import Panel

from subsync.cli.services import build_services, console, handle_errors
from subsync.core.auto_upload import AutoUploader
from subsync.models.sync import SyncResult


def _report(result: SyncResult, verb: str) -> None:
    if not result.succeeded:
        console.print(f"[yellow]{verb} cancelled[/yellow]")
        return
    console.print(
        f"[bold green]{verb} complete[/bold green]: "
        f"{len(result.artifact_ids)} artifact(s), {result.payload_digest}"
    )


def _confirm_overwrite(yes: bool, source: str) -> None:
    if yes:
        return
    if not typer.confirm(
        f"Replace ALL local artifacts with the contents of {source}?", default=False
    ):
        console.print("[dim]Aborted; local artifacts unchanged.[/dim]")
        raise typer.Exit(code=1)


def upload_cmd(ctx: typer.Context) -> None:
    """Mirror enabled artifacts to the configured remote (last writer wins)."""
    services = build_services(ctx)
    with handle_errors("upload"):
        result = services.coordinator.upload_all()
    _report(result, "Upload")
    if services.coordinator.preview_url:
        console.print(f"[dim]{services.coordinator.preview_url}[/dim]")


def download_cmd(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the overwrite prompt."),
) -> None:
    """Replace local artifacts with the remote copy."""
    services = build_services(ctx)
    _confirm_overwrite(yes, services.coordinator.remote.name)
    with handle_errors("download"):
        result = services.coordinator.download_all()
    _report(result, "Download")


def export_cmd(
    ctx: typer.Context,
    path: Path = typer.Argument(..., dir_okay=False, help="Backup file to write."),
    artifact_id: list[str] = typer.Option(
        [], "--id", help="Only export this artifact. Repeatable."
    ),
) -> None:
    """Write a backup, disabled artifacts included."""
    services = build_services(ctx)
    with handle_errors("export"):
        result = services.coordinator.export_file(path, ids=artifact_id or None)
    _report(result, "Export")


def import_cmd(
    ctx: typer.Context,
    path: Path = typer.Argument(..., dir_okay=False, help="Backup file to read."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the overwrite prompt."),
) -> None:
    """Replace local artifacts with a backup file."""
    services = build_services(ctx)
    _confirm_overwrite(yes, str(path))
    with handle_errors("import"):
        result = services.coordinator.import_file(path)
    _report(result, "Import")


def status_cmd(ctx: typer.Context) -> None:
    """Show sync configuration and collection counts."""
    services = build_services(ctx)
    settings = services.settings
    repository = services.repository
    coordinator = services.coordinator
    remote = coordinator.remote

    configured = "[green]Yes[/green]" if remote.is_configured else "[red]No[/red]"
    unsynced = "[yellow]Yes[/yellow]" if repository.has_unsynced_changes else "No"
    synced_at = repository.last_synced_at
    last_synced = synced_at.strftime("%Y-%m-%d %H:%M") if synced_at else "never"
    console.print(
        Panel(
            "\n".join([
                f"[bold]Platform:[/bold]      {settings.sync_platform.value}",
                f"[bold]Configured:[/bold]    {configured}",
                f"[bold]Location:[/bold]      {remote.location or '-'}",
                f"[bold]Backend:[/bold]       {settings.base_url}",
                f"[bold]Timeout:[/bold]       {settings.timeout_seconds}s",
                f"[bold]Store:[/bold]         {settings.store_path}",
                f"[bold]Artifacts:[/bold]     {len(repository)} "
                f"({len(repository.enabled())} enabled)",
                f"[bold]Can upload:[/bold]    {coordinator.can_upload}",
                f"[bold]Unsynced:[/bold]      {unsynced}",
                f"[bold]Last synced:[/bold]   {last_synced}",
            ]),
            title="[bold]subsync[/bold]",
            border_style="cyan",
            padding=(1, 2),
        )
    )


def watch_cmd(
    ctx: typer.Context,
    interval: int = typer.Option(
        None, "--interval", "-i", min=1, help="Minutes between uploads (default from settings)."
    ),
    check_every: int = typer.Option(
        None, "--check-every", min=1, help="Seconds between checks (default from settings)."
    ),
    once: bool = typer.Option(False, "--once", help="Check once and exit."),
) -> None:
    """Upload unsynced changes periodically until interrupted."""
    services = build_services(ctx)
    settings = services.settings
    interval_seconds = (interval or settings.sync_interval_minutes) * 60
    period = check_every or settings.auto_sync_check_seconds

    if once:
        uploader = AutoUploader(services.coordinator, interval_seconds, check_every=period)
        result = uploader.run_once()
        if result is None:
            console.print("[dim]Nothing to upload.[/dim]")
        else:
            _report(result, "Upload")
        return

    uploader = services.coordinator.start_auto_upload(interval_seconds, check_every=period)
    console.print(
        f"Watching for changes every {period}s; uploading at most every "
        f"{interval_seconds // 60} min. Press Ctrl-C to stop."
    )
    try:
        while uploader.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        services.coordinator.stop_auto_upload()
    console.print("[dim]Stopped.[/dim]")
