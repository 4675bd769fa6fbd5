"""``pixelrelay replay CONFIG EVENTS``: deliver recorded events to local files.

Builds one local-file destination per configuration in CONFIG, delivers
every event in EVENTS through the dispatcher with the configured retry
policy and prints the outcome of every delivery task.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pixelrelay.cli.commands._loading import load_configs_or_exit, load_events_or_exit
from pixelrelay.config import settings
from pixelrelay.core.retry_queue import RetryQueue
from pixelrelay.destinations.local_file import LocalFileDestination
from pixelrelay.models.delivery import DeliveryRecord, TaskState
from pixelrelay.models.events import Event
from pixelrelay.models.mapping import DestinationConfig
from pixelrelay.routing.dispatcher import DeliveryDispatcher

console = Console()

_STATE_STYLE = {
    TaskState.DELIVERED: "[green]delivered[/green]",
    TaskState.FAILED: "[red]failed[/red]",
}


def replay_cmd(
    config_path: Path = typer.Argument(
        ..., help="JSON file with one destination configuration or a list of them."
    ),
    events_path: Path = typer.Argument(
        ..., help="JSON-lines file with one event per line."
    ),
    out_dir: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Directory for the written event files (defaults to PIXELRELAY_EVENTS_DIR).",
    ),
    max_attempts: Optional[int] = typer.Option(
        None,
        "--max-attempts",
        help="Retries per task after the first attempt (defaults to PIXELRELAY_MAX_ATTEMPTS).",
    ),
) -> None:
    """Replay recorded events through the dispatcher into local JSON files."""
    configs = load_configs_or_exit(config_path, console)
    events = load_events_or_exit(events_path, console)
    if not events:
        console.print(f"[yellow]No events in {events_path}[/yellow]")
        raise typer.Exit(code=0)

    base = out_dir or settings.events_dir
    attempts = settings.max_attempts if max_attempts is None else max_attempts
    records = asyncio.run(_replay(configs, events, base, attempts))

    table = Table(title=f"Replayed {len(events)} events to {base}")
    table.add_column("Task", style="cyan")
    table.add_column("Destination")
    table.add_column("State", justify="center")
    table.add_column("Attempts", justify="right")
    table.add_column("Reason", style="dim")
    for record in records:
        table.add_row(
            record.task_id,
            record.destination,
            _STATE_STYLE.get(record.state, record.state.value),
            str(record.attempts),
            escape(record.failure_reason or ""),
        )
    console.print(table)

    failed = sum(1 for r in records if r.state is TaskState.FAILED)
    if failed:
        console.print(f"[bold red]{failed} of {len(records)} tasks failed[/bold red]")
        raise typer.Exit(code=1)


async def _replay(
    configs: list[DestinationConfig],
    events: list[Event],
    base: Path,
    max_attempts: int,
) -> list[DeliveryRecord]:
    destinations = [
        LocalFileDestination(
            config,
            base_path=base,
            ignore_unmapped_properties=settings.ignore_unmapped_properties,
        )
        for config in configs
    ]
    queue = RetryQueue(max_attempts=max_attempts, backoff=settings.backoff_policy())
    dispatcher = DeliveryDispatcher(
        destinations, queue, history_limit=settings.history_limit
    )
    records: list[DeliveryRecord] = []
    dispatcher.on_outcome(records.append)
    for event in events:
        await dispatcher.deliver(event)
    await dispatcher.join()
    return records
