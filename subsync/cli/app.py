"""Main Typer application — imports and registers all CLI commands.

Entry point: ``subsync`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

from pathlib import Path

import typer

from subsync.cli.commands.artifacts import (
    add_cmd,
    delete_cmd,
    disable_cmd,
    duplicate_cmd,
    enable_cmd,
    list_cmd,
    move_cmd,
    reorder_cmd,
)
from subsync.cli.commands.sync import (
    download_cmd,
    export_cmd,
    import_cmd,
    status_cmd,
    upload_cmd,
    watch_cmd,
)

app = typer.Typer(
    name="subsync",
    help="subsync: manage rule/config artifacts and sync them to Gist, GitLab or a file.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    store: Path = typer.Option(
        None, "--store", help="Local artifact store file (overrides SUBSYNC_STORE_PATH)."
    ),
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (overrides SUBSYNC_LOG_LEVEL)."
    ),
) -> None:
    """Collect global overrides; settings are built per command."""
    ctx.obj = {"store_path": store, "log_level": log_level}


# Register subcommands
app.command(name="list", help="List artifacts in order.")(list_cmd)
app.command(name="add", help="Add an artifact.")(add_cmd)
app.command(name="duplicate", help="Copy an artifact.")(duplicate_cmd)
app.command(name="delete", help="Delete artifacts.")(delete_cmd)
app.command(name="enable", help="Enable artifacts for upload.")(enable_cmd)
app.command(name="disable", help="Disable artifacts for upload.")(disable_cmd)
app.command(name="reorder", help="Set the full artifact order.")(reorder_cmd)
app.command(name="move", help="Move one artifact.")(move_cmd)
app.command(name="upload", help="Upload enabled artifacts to the remote.")(upload_cmd)
app.command(name="download", help="Replace local artifacts with the remote copy.")(download_cmd)
app.command(name="export", help="Write a backup file.")(export_cmd)
app.command(name="import", help="Restore from a backup file.")(import_cmd)
app.command(name="status", help="Show sync status.")(status_cmd)
app.command(name="watch", help="Upload unsynced changes periodically.")(watch_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
