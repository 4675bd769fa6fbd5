"""Shared test fixtures for pixelrelay."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from pixelrelay.core.retry_queue import RetryQueue
from pixelrelay.models.events import Event, EventType
from pixelrelay.models.mapping import DestinationConfig

FIXED_NOW = datetime(2024, 3, 5, 13, 41, 5, 723000, tzinfo=timezone.utc)


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for written event files."""
    return tmp_path


@pytest.fixture
def fixed_now() -> Callable[[], datetime]:
    """Provide a clock frozen at 2024-03-05T13:41:05.723Z."""
    return lambda: FIXED_NOW


@pytest.fixture
def fast_queue() -> RetryQueue:
    """Provide a RetryQueue with two retries and no backoff delay."""
    return RetryQueue(max_attempts=2, backoff=lambda attempt: 0)


# ---------------------------------------------------------------------------
# Event factories shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory fixture: build an Event with sensible defaults."""

    def _factory(
        event_type: EventType = EventType.TRACK,
        name: str | None = "add_to_cart",
        **overrides: Any,
    ) -> Event:
        defaults: dict[str, Any] = {
            "id": "e1",
            "type": event_type,
            "name": name,
            "user_id": "user-42",
            "properties": {"items": [{"id": "a"}, {"id": "b"}], "currency": "EUR"},
        }
        defaults.update(overrides)
        return Event(**defaults)

    return _factory


@pytest.fixture
def cart_config() -> DestinationConfig:
    """A destination that maps add_to_cart items to content ids."""
    return DestinationConfig.model_validate(
        {
            "destination": "ads",
            "field_mappings": [
                {
                    "source_kind": "field",
                    "source_value": "properties.items.$.id",
                    "target_path": "contents.$.content_id",
                },
                {"source_kind": "field", "source_value": "userId", "target_path": "user_id"},
            ],
            "event_mappings": [
                {
                    "event_type": "track",
                    "source_event_name": "add_to_cart",
                    "destination_event_key": "AddToCart",
                }
            ],
        }
    )


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class RecordingObservability:
    """Observability sink that keeps everything it is told."""

    def __init__(self) -> None:
        self.failures: list[tuple[str, str]] = []
        self.diagnostics: list[tuple[str, dict[str, Any]]] = []
        self.exceptions: list[BaseException] = []

    def report_failure(self, task_id: str, reason: str) -> None:
        self.failures.append((task_id, reason))

    def report_diagnostic(self, message: str, **data: Any) -> None:
        self.diagnostics.append((message, data))

    def capture_exception(self, exc: BaseException) -> None:
        self.exceptions.append(exc)


@pytest.fixture
def observability() -> RecordingObservability:
    return RecordingObservability()
