"""Delivery task models: tasks, their state machine and terminal records."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pixelrelay.models.events import Event


class TaskState(str, Enum):
    """Lifecycle of a per-destination delivery task."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SCHEDULED = "scheduled"  # waiting out its backoff window
    DELIVERED = "delivered"
    FAILED = "failed"


# Terminal states (DELIVERED, FAILED) have no outgoing transitions.
VALID_TASK_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    TaskState.PENDING: {TaskState.IN_FLIGHT},
    TaskState.IN_FLIGHT: {TaskState.DELIVERED, TaskState.FAILED, TaskState.SCHEDULED},
    TaskState.SCHEDULED: {TaskState.PENDING},
    TaskState.DELIVERED: set(),
    TaskState.FAILED: set(),
}

TERMINAL_TASK_STATES = frozenset({TaskState.DELIVERED, TaskState.FAILED})


def task_id_for(event_id: str, destination: str) -> str:
    """Task identity: one task per (event, destination) pair."""
    return f"{event_id}/{destination}"


class DeliveryTask(BaseModel):
    """One event bound for one destination."""

    model_config = ConfigDict(frozen=True)

    id: str
    destination: str
    event: Event
    attempt: int = Field(default=0, ge=0)

    @classmethod
    def for_destination(cls, event: Event, destination: str) -> DeliveryTask:
        return cls(
            id=task_id_for(event.id, destination),
            destination=destination,
            event=event,
        )


class DeliveryRecord(BaseModel):
    """Immutable record of a task's terminal outcome."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    event_id: str
    destination: str
    state: TaskState
    attempts: int
    failure_reason: str | None = None
    recorded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class DeliveryHandle(BaseModel):
    """Returned by ``DeliveryDispatcher.deliver`` once tasks are enqueued."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    task_ids: tuple[str, ...] = ()
