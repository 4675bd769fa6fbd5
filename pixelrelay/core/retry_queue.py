"""Bounded-attempt retry queue with backoff scheduling.

Tasks move through three internal areas:

* **ready**: a FIFO of tasks that may be popped now;
* **in flight**: popped, awaiting their delivery outcome;
* **scheduled**: failed once, waiting out a backoff timer on the event
  loop before rejoining the ready FIFO.

When a scheduled task becomes ready again, every ``on_ready`` subscriber is
notified so the dispatcher can drain it.  The queue itself never awaits; it
is mutated only by its owner under the owner's drain lock.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from pixelrelay.models.delivery import DeliveryTask

logger = logging.getLogger(__name__)

Backoff = Callable[[int], float]
ReadyListener = Callable[[DeliveryTask], None]


class BackoffPolicy(BaseModel):
    """Exponential backoff: ``base_ms * factor ** (attempt - 1)``, capped.

    Instances are callable, so they can be passed straight to
    :class:`RetryQueue`.
    """

    model_config = ConfigDict(frozen=True)

    base_ms: float = Field(default=500.0, ge=0)
    factor: float = Field(default=2.0, ge=1.0)
    max_ms: float = Field(default=60_000.0, ge=0)

    def delay_ms(self, attempt: int) -> float:
        """Delay before retry number *attempt* (1-based)."""
        exponent = max(attempt - 1, 0)
        return min(self.base_ms * (self.factor**exponent), self.max_ms)

    def __call__(self, attempt: int) -> float:
        return self.delay_ms(attempt)


class RetryQueue:
    """FIFO of delivery tasks with bounded, backoff-delayed retries.

    Parameters
    ----------
    max_attempts:
        Number of retries a task may receive after its first delivery
        attempt.  ``push_with_backoff`` refuses the task once this many
        retries have been granted.
    backoff:
        Maps a retry number (1-based) to a delay in milliseconds.
    """

    def __init__(self, max_attempts: int = 3, backoff: Backoff | None = None) -> None:
        if max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {max_attempts}")
        self._max_attempts = max_attempts
        self._backoff: Backoff = backoff if backoff is not None else BackoffPolicy()
        self._ready: deque[DeliveryTask] = deque()
        self._in_flight: dict[str, DeliveryTask] = {}
        self._scheduled: dict[str, tuple[asyncio.TimerHandle, DeliveryTask]] = {}
        self._attempts: dict[str, int] = {}
        self._listeners: list[ReadyListener] = []
        self._empty = asyncio.Event()
        self._empty.set()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def ready_count(self) -> int:
        return len(self._ready)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def scheduled_count(self) -> int:
        return len(self._scheduled)

    def __len__(self) -> int:
        return self.ready_count + self.in_flight_count + self.scheduled_count

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def on_ready(self, listener: ReadyListener) -> None:
        """Call *listener* with each task whose backoff window has elapsed."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Queue operations
    # ------------------------------------------------------------------

    def push(self, *tasks: DeliveryTask) -> None:
        """Append new tasks (attempt 0) to the ready FIFO as one batch."""
        for task in tasks:
            fresh = task if task.attempt == 0 else task.model_copy(update={"attempt": 0})
            self._attempts[fresh.id] = 0
            self._ready.append(fresh)
        self._update_empty()

    def pop(self) -> DeliveryTask | None:
        """Remove and return the oldest ready task, or ``None``."""
        if not self._ready:
            return None
        task = self._ready.popleft()
        self._in_flight[task.id] = task
        return task

    def push_with_backoff(self, task: DeliveryTask) -> bool:
        """Schedule a retry of *task*.

        Returns False once the task has used up its retries; the caller
        must then treat it as terminally failed.  Must be called from
        within a running event loop.
        """
        attempt = max(self._attempts.get(task.id, task.attempt), task.attempt) + 1
        self._attempts[task.id] = attempt
        self._in_flight.pop(task.id, None)

        if attempt > self._max_attempts:
            logger.debug(
                "Task %s exhausted its %d retries", task.id, self._max_attempts
            )
            self._update_empty()
            return False

        previous = self._scheduled.pop(task.id, None)
        if previous is not None:
            previous[0].cancel()

        retry = task.model_copy(update={"attempt": attempt})
        delay_ms = max(float(self._backoff(attempt)), 0.0)
        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay_ms / 1000.0, self._on_backoff_elapsed, retry.id)
        self._scheduled[retry.id] = (handle, retry)
        self._update_empty()
        logger.debug(
            "Task %s scheduled for retry %d/%d in %.0f ms",
            task.id,
            attempt,
            self._max_attempts,
            delay_ms,
        )
        return True

    def settle(self, task_id: str) -> None:
        """Forget *task_id* after it reached a terminal state."""
        self._in_flight.pop(task_id, None)
        self._attempts.pop(task_id, None)
        self._update_empty()

    def is_empty(self) -> bool:
        """True when no task is ready, in flight or scheduled."""
        return not self._ready and not self._in_flight and not self._scheduled

    def attempts_for(self, task_id: str) -> int:
        """Retries granted so far to *task_id* (0 for unknown ids)."""
        return self._attempts.get(task_id, 0)

    async def join(self) -> None:
        """Wait until the queue is empty."""
        await self._empty.wait()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_backoff_elapsed(self, task_id: str) -> None:
        entry = self._scheduled.pop(task_id, None)
        if entry is None:
            return
        _, task = entry
        self._ready.append(task)
        for listener in list(self._listeners):
            try:
                listener(task)
            except Exception:  # noqa: BLE001
                logger.exception("Ready listener failed for task %s", task_id)

    def _update_empty(self) -> None:
        if self.is_empty():
            self._empty.set()
        else:
            self._empty.clear()
