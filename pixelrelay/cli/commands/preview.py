"""``pixelrelay preview CONFIG EVENT``: show each destination's mapped payload.

For every destination in CONFIG, resolves the destination event key for the
sample EVENT and prints the payload the destination would receive.  Nothing
is delivered.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel

from pixelrelay.cli.commands._loading import load_configs_or_exit, load_events_or_exit
from pixelrelay.config import settings
from pixelrelay.core.hasher import payload_digest
from pixelrelay.destinations.mapped import DryRunDestination
from pixelrelay.models.delivery import DeliveryTask

console = Console()


def preview_cmd(
    config_path: Path = typer.Argument(
        ..., help="JSON file with one destination configuration or a list of them."
    ),
    event_path: Path = typer.Argument(
        ..., help="JSON file holding the sample event."
    ),
    ignore_unmapped: Optional[bool] = typer.Option(
        None,
        "--ignore-unmapped/--keep-unmapped",
        help="Drop event properties no mapping rule consumed.",
        show_default=False,
    ),
) -> None:
    """Preview the mapped payload of a sample event for every destination."""
    configs = load_configs_or_exit(config_path, console)
    events = load_events_or_exit(event_path, console)
    if len(events) != 1:
        console.print(
            f"[bold red]Expected exactly one event in {event_path}, "
            f"found {len(events)}[/bold red]"
        )
        raise typer.Exit(code=1)
    event = events[0]

    if ignore_unmapped is None:
        ignore_unmapped = settings.ignore_unmapped_properties

    console.print(
        f"[bold]Event[/bold] {event.id} "
        f"([cyan]{event.type.value}[/cyan] {event.effective_name or '-'})"
    )
    for config in configs:
        destination = DryRunDestination(
            config, ignore_unmapped_properties=ignore_unmapped
        )
        prepared = destination.prepare(DeliveryTask.for_destination(event, destination.name))
        if prepared is None:
            console.print(
                Panel(
                    "[dim]No event rule matches; this destination skips the event.[/dim]",
                    title=f"[cyan]{destination.name}[/cyan]",
                    border_style="yellow",
                )
            )
            continue

        event_key, payload = prepared
        console.print(
            Panel(
                JSON(json.dumps(payload, default=str)),
                title=f"[cyan]{destination.name}[/cyan] -> [green]{event_key}[/green]",
                subtitle=payload_digest(payload),
                border_style="cyan",
            )
        )
