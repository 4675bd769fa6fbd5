"""pixelrelay CLI: Typer-based developer tooling.

Provides the ``pixelrelay`` command with subcommands for previewing a
destination mapping against a sample event and replaying recorded events
into local files.

All output uses Rich for formatted terminal display.
"""
