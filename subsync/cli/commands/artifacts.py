"""Artifact commands — list, add, duplicate, delete, enable/disable, reorder."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from subsync.cli.services import build_services, console, handle_errors, read_content
from subsync.models.artifacts import Artifact, ArtifactType


def _artifact_table(artifacts: list[Artifact], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="cyan", overflow="fold")
    table.add_column("Name")
    table.add_column("Type", style="green")
    table.add_column("Enabled", justify="center")
    for position, artifact in enumerate(artifacts):
        enabled = "[green]Yes[/green]" if artifact.is_enabled else "[red]No[/red]"
        table.add_row(
            str(position),
            artifact.id,
            artifact.name,
            artifact.type.value,
            enabled,
        )
    return table


def list_cmd(
    ctx: typer.Context,
    search: str = typer.Option("", "--search", "-s", help="Match name, content or tags."),
    artifact_type: ArtifactType = typer.Option(None, "--type", "-t", help="Only this type."),
) -> None:
    """List artifacts in their stored order."""
    services = build_services(ctx)
    artifacts = services.repository.search(search, artifact_type)
    if not artifacts:
        console.print("[dim]No artifacts.[/dim]")
        return
    console.print(_artifact_table(artifacts, f"Artifacts ({len(artifacts)})"))


def add_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Display name."),
    artifact_type: ArtifactType = typer.Option(..., "--type", "-t", help="Artifact type."),
    content_file: Path = typer.Option(
        None, "--content-file", "-f", exists=True, dir_okay=False, help="File with the body."
    ),
    description: str = typer.Option(None, "--description", "-d"),
    tag: list[str] = typer.Option([], "--tag", help="Repeatable."),
    disabled: bool = typer.Option(False, "--disabled", help="Create disabled."),
) -> None:
    """Append a new artifact."""
    services = build_services(ctx)
    with handle_errors("add"):
        artifact = services.repository.create(
            name,
            artifact_type,
            description=description,
            content=read_content(content_file),
            tags=list(tag),
            is_enabled=not disabled,
        )
    console.print(f"[bold green]Added[/bold green] {artifact.id}")


def duplicate_cmd(
    ctx: typer.Context,
    artifact_id: str = typer.Argument(..., help="Artifact to copy."),
) -> None:
    """Append a copy of an artifact under a new id."""
    services = build_services(ctx)
    with handle_errors("duplicate"):
        copy = services.repository.duplicate(artifact_id)
    console.print(f"[bold green]Duplicated[/bold green] {artifact_id} -> {copy.id}")


def delete_cmd(
    ctx: typer.Context,
    artifact_ids: list[str] = typer.Argument(..., help="One or more artifact ids."),
) -> None:
    """Delete artifacts. Unknown ids abort without deleting anything."""
    services = build_services(ctx)
    with handle_errors("delete"):
        removed = services.repository.delete_many(artifact_ids)
    console.print(f"[bold green]Deleted[/bold green] {len(removed)} artifact(s)")


def enable_cmd(
    ctx: typer.Context,
    artifact_ids: list[str] = typer.Argument(..., help="One or more artifact ids."),
) -> None:
    """Include artifacts in uploads."""
    services = build_services(ctx)
    with handle_errors("enable"):
        changed = services.repository.set_enabled(artifact_ids, True)
    console.print(f"[bold green]Enabled[/bold green] {len(changed)} artifact(s)")


def disable_cmd(
    ctx: typer.Context,
    artifact_ids: list[str] = typer.Argument(..., help="One or more artifact ids."),
) -> None:
    """Exclude artifacts from uploads; they stay stored locally."""
    services = build_services(ctx)
    with handle_errors("disable"):
        changed = services.repository.set_enabled(artifact_ids, False)
    console.print(f"[bold yellow]Disabled[/bold yellow] {len(changed)} artifact(s)")


def reorder_cmd(
    ctx: typer.Context,
    artifact_ids: list[str] = typer.Argument(..., help="Every artifact id, in the new order."),
) -> None:
    """Replace the whole order. Must list every id exactly once."""
    services = build_services(ctx)
    with handle_errors("reorder"):
        reordered = services.repository.reorder(artifact_ids)
    console.print(_artifact_table(reordered, "New order"))


def move_cmd(
    ctx: typer.Context,
    artifact_id: str = typer.Argument(...),
    index: int = typer.Argument(..., help="Target position, 0-based."),
) -> None:
    """Move one artifact to a new position."""
    services = build_services(ctx)
    with handle_errors("move"):
        reordered = services.repository.move(artifact_id, index)
    console.print(_artifact_table(reordered, "New order"))
