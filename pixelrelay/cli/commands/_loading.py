"""Shared input loading for CLI commands: configs and events from disk."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from pixelrelay.destinations.registry import ConfigurationError, load_destination_configs
from pixelrelay.models.events import Event
from pixelrelay.models.mapping import DestinationConfig


def load_configs_or_exit(path: Path, console: Console) -> list[DestinationConfig]:
    try:
        configs = load_destination_configs(path)
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    if not configs:
        console.print(f"[yellow]No destinations configured in {path}[/yellow]")
        raise typer.Exit(code=1)
    return configs


def load_events_or_exit(path: Path, console: Console) -> list[Event]:
    """Read events from a JSON document (object or array) or a JSON-lines file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        console.print(f"[bold red]Cannot read events:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    try:
        documents = [(1, json.loads(text))]
    except json.JSONDecodeError:
        documents = []
        for number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                documents.append((number, json.loads(line)))
            except json.JSONDecodeError as exc:
                console.print(
                    f"[bold red]Invalid JSON on line {number}:[/bold red] {escape(str(exc))}"
                )
                raise typer.Exit(code=1) from exc

    events: list[Event] = []
    for number, raw in documents:
        items = raw if isinstance(raw, list) else [raw]
        try:
            events.extend(Event.model_validate(item) for item in items)
        except ValidationError as exc:
            console.print(
                f"[bold red]Invalid event on line {number}:[/bold red] {escape(str(exc))}"
            )
            raise typer.Exit(code=1) from exc
    return events
