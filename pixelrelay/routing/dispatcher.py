"""DeliveryDispatcher: fans events out to destinations through a RetryQueue.

``deliver(event)`` turns the event into one task per registered destination,
pushes them as one batch and returns immediately.  Background drains then
pop tasks one at a time (single-flight, under an ``asyncio.Lock``), yield to
the event loop and run the destination hooks.  A raising hook puts the task
back into the queue with backoff; once its retries are used up the task
fails and its failure is reported exactly once.

Task lifecycle (see ``VALID_TASK_TRANSITIONS``)::

    pending -> in_flight -> delivered
                         -> failed
                         -> scheduled -> pending -> ...
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import OrderedDict
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

from pixelrelay.core.retry_queue import RetryQueue
from pixelrelay.destinations import Destination, invoke_hook
from pixelrelay.destinations.registry import DestinationRegistry
from pixelrelay.models.delivery import (
    TERMINAL_TASK_STATES,
    VALID_TASK_TRANSITIONS,
    DeliveryHandle,
    DeliveryRecord,
    DeliveryTask,
    TaskState,
)
from pixelrelay.models.events import Event
from pixelrelay.models.mapping import DestinationConfig
from pixelrelay.routing.channel import AlwaysOnline, DeliveryChannel
from pixelrelay.routing.observability import LoggingObservabilitySink, ObservabilitySink

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 1000

FailureListener = Callable[[str, str], None]
OutcomeListener = Callable[[DeliveryRecord], None]


class InvalidTaskTransitionError(RuntimeError):
    """Raised when a delivery task is moved along a transition that is not valid."""


class DeliveryDispatcher:
    """Queued, retried fan-out of events to every registered destination.

    Parameters
    ----------
    destinations:
        A :class:`DestinationRegistry` or an iterable of destinations.
    queue:
        The retry queue.  Defaults to ``RetryQueue()``.
    channel:
        Connectivity probe; nothing is drained while it reports offline.
    observability:
        Receives terminal failures, diagnostics and background exceptions.
    history_limit:
        How many terminal records to keep.  Only tasks that are still
        queued or in flight are tracked beyond that; older outcomes are
        dropped first.  Use :meth:`on_outcome` to keep a full log.

    Usage
    -----
    >>> dispatcher = DeliveryDispatcher([crm, ads], RetryQueue(max_attempts=3))
    >>> handle = await dispatcher.deliver(event)
    >>> await dispatcher.join()
    >>> dispatcher.state_of(handle.task_ids[0])
    <TaskState.DELIVERED: 'delivered'>
    """

    def __init__(
        self,
        destinations: DestinationRegistry | Iterable[Destination],
        queue: RetryQueue | None = None,
        *,
        channel: DeliveryChannel | None = None,
        observability: ObservabilitySink | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        if history_limit < 0:
            raise ValueError(f"history_limit must be >= 0, got {history_limit}")
        if isinstance(destinations, DestinationRegistry):
            self._registry = destinations
        else:
            self._registry = DestinationRegistry(destinations)
        self._queue = queue if queue is not None else RetryQueue()
        self._channel: DeliveryChannel = channel or AlwaysOnline()
        self._observability: ObservabilitySink = (
            observability or LoggingObservabilitySink()
        )
        self._flush_lock = asyncio.Lock()
        self._history_limit = history_limit
        # Non-terminal tasks only; settled tasks live in _records.
        self._states: dict[str, TaskState] = {}
        self._records: OrderedDict[str, DeliveryRecord] = OrderedDict()
        self._failure_listeners: dict[str, FailureListener] = {}
        self._outcome_listeners: list[OutcomeListener] = []
        self._background: set[asyncio.Task[None]] = set()
        self._queue.on_ready(self._on_task_ready)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def registry(self) -> DestinationRegistry:
        return self._registry

    @property
    def queue(self) -> RetryQueue:
        return self._queue

    @property
    def records(self) -> list[DeliveryRecord]:
        """Most recent terminal outcomes, oldest first."""
        return list(self._records.values())

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def deliver(self, event: Event) -> DeliveryHandle:
        """Enqueue *event* for every registered destination.

        Returns as soon as the tasks are queued; no destination hook is
        awaited here.
        """
        tasks: list[DeliveryTask] = []
        for name in self._registry.names():
            task = DeliveryTask.for_destination(event, name)
            current = self._states.get(task.id)
            if current is not None and current not in TERMINAL_TASK_STATES:
                self._observability.report_diagnostic(
                    "Delivery task already queued; duplicate event ignored",
                    task_id=task.id,
                    state=current.value,
                )
                continue
            self._states[task.id] = TaskState.PENDING
            self._records.pop(task.id, None)
            self._failure_listeners[task.id] = self._observability.report_failure
            tasks.append(task)

        if not tasks:
            logger.warning("Event %s queued no delivery tasks", event.id)
            return DeliveryHandle(event_id=event.id)

        self._queue.push(*tasks)
        logger.debug("Queued event %s for %d destinations", event.id, len(tasks))
        for _ in tasks:
            self._spawn(self.flush())

        return DeliveryHandle(event_id=event.id, task_ids=tuple(t.id for t in tasks))

    async def flush(self) -> bool:
        """Pop and deliver at most one ready task.

        Returns True if a task was popped.  No-op while the queue has no
        ready task or the channel is offline.
        """
        async with self._flush_lock:
            if self._queue.ready_count == 0 or not self._channel.is_online():
                return False
            task = self._queue.pop()
            if task is None:
                return False
            self._transition(task.id, TaskState.IN_FLIGHT)

        await asyncio.sleep(0)
        await self._process(task)
        return True

    async def drain(self) -> int:
        """Deliver ready tasks until none remain; returns how many were popped."""
        popped = 0
        while await self.flush():
            popped += 1
        return popped

    async def join(self) -> None:
        """Wait until every queued task reached a terminal state.

        Tasks that are ready while the channel is offline keep this waiting
        until the channel is back and :meth:`drain` is called.
        """
        while True:
            await self._queue.join()
            pending = [t for t in self._background if not t.done()]
            if not pending:
                if self._queue.is_empty():
                    return
                continue
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Configuration and inspection
    # ------------------------------------------------------------------

    def update_configuration(self, config: DestinationConfig) -> None:
        """Replace a destination's mapping and event rules.

        Queued tasks are untouched; they are mapped with the new
        configuration when their hook runs.
        """
        self._registry.update_configuration(config)
        logger.info("Updated configuration for destination %s", config.destination)

    def state_of(self, task_id: str) -> TaskState | None:
        state = self._states.get(task_id)
        if state is not None:
            return state
        record = self._records.get(task_id)
        return record.state if record is not None else None

    def record_for(self, task_id: str) -> DeliveryRecord | None:
        return self._records.get(task_id)

    def on_outcome(self, listener: OutcomeListener) -> None:
        """Call *listener* with the record of every task that settles."""
        self._outcome_listeners.append(listener)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _process(self, task: DeliveryTask) -> None:
        targets = self._registry.matching(task.destination)
        if not targets:
            self._observability.report_diagnostic(
                "No destination registered for delivery task",
                task_id=task.id,
                destination=task.destination,
            )
            self._settle(task, TaskState.DELIVERED)
            return

        results = await asyncio.gather(
            *(self._invoke(destination, task) for destination in targets),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        for error in errors:
            if not isinstance(error, Exception):
                raise error

        if errors:
            self._handle_failure(task, errors[0])
        else:
            self._settle(task, TaskState.DELIVERED)

    async def _invoke(self, destination: Destination, task: DeliveryTask) -> Any:
        result = invoke_hook(destination, task)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _handle_failure(self, task: DeliveryTask, exc: BaseException) -> None:
        reason = f"{type(exc).__name__}: {exc}"
        logger.warning(
            "Delivery task %s failed on attempt %d: %s",
            task.id,
            task.attempt + 1,
            reason,
        )
        if self._queue.push_with_backoff(task):
            self._transition(task.id, TaskState.SCHEDULED)
        else:
            self._settle(task, TaskState.FAILED, reason)

    def _settle(
        self, task: DeliveryTask, state: TaskState, reason: str | None = None
    ) -> None:
        self._transition(task.id, state)
        self._states.pop(task.id, None)
        self._queue.settle(task.id)
        record = DeliveryRecord(
            task_id=task.id,
            event_id=task.event.id,
            destination=task.destination,
            state=state,
            attempts=task.attempt + 1,
            failure_reason=reason,
        )
        self._records[task.id] = record
        while len(self._records) > self._history_limit:
            self._records.popitem(last=False)

        listener = self._failure_listeners.pop(task.id, None)
        if state is TaskState.FAILED and listener is not None:
            listener(task.id, reason or "")

        for outcome_listener in list(self._outcome_listeners):
            try:
                outcome_listener(record)
            except Exception:  # noqa: BLE001
                logger.exception("Outcome listener failed for task %s", task.id)

    def _transition(self, task_id: str, target: TaskState) -> None:
        current = self.state_of(task_id)
        allowed = VALID_TASK_TRANSITIONS.get(current, set()) if current else set()
        if target not in allowed:
            raise InvalidTaskTransitionError(
                f"Cannot move task {task_id} from "
                f"{current.value if current else 'unknown'} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        self._states[task_id] = target

    def _on_task_ready(self, task: DeliveryTask) -> None:
        self._transition(task.id, TaskState.PENDING)
        self._spawn(self.flush())

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        background = asyncio.get_running_loop().create_task(self._guarded(coro))
        self._background.add(background)
        background.add_done_callback(self._background.discard)

    async def _guarded(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            await coro
        except Exception as exc:  # noqa: BLE001
            logger.error("Background delivery drain failed: %s", exc)
            self._observability.capture_exception(exc)
