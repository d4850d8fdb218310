"""subsync CLI — Typer-based command-line interface.

Provides the ``subsync`` command with subcommands for managing artifacts,
reordering them, and uploading/downloading/exporting/importing the
collection.

All output uses Rich for formatted terminal display.
"""
