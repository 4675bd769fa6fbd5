"""Main Typer application: imports and registers all CLI commands.

Entry point: ``pixelrelay`` (configured via pyproject.toml console_scripts).

Commands: preview, replay.
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from pixelrelay.cli.commands.preview import preview_cmd
from pixelrelay.cli.commands.replay import replay_cmd
from pixelrelay.config import settings

app = typer.Typer(
    name="pixelrelay",
    help="pixelrelay: mapped, queued and retried delivery of analytics events.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="preview", help="Show how each destination maps a sample event.")(preview_cmd)
app.command(name="replay", help="Deliver recorded events into local JSON files.")(replay_cmd)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log at DEBUG level."
    ),
) -> None:
    """Configure logging for every subcommand."""
    level = logging.DEBUG if verbose or settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
