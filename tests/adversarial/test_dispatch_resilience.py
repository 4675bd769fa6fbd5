"""Adversarial tests: dispatcher resilience and task state enforcement.

These tests verify that:
1. Hooks raising any Exception subclass are retried, then failed
2. A hook that hangs on one destination does not block another's delivery
3. Task states cannot skip the lifecycle (e.g. pending -> delivered)
4. Terminal tasks cannot be revived by a stray ready signal
"""

from __future__ import annotations

import asyncio

import pytest

from pixelrelay.destinations import DestinationBase
from pixelrelay.destinations.callback import CallbackDestination
from pixelrelay.models.delivery import DeliveryTask, TaskState
from pixelrelay.routing.dispatcher import DeliveryDispatcher, InvalidTaskTransitionError


class _CustomError(Exception):
    pass


def _raising(name: str, exc: Exception) -> CallbackDestination:
    def hook(task: DeliveryTask) -> DeliveryTask:
        raise exc

    return CallbackDestination(name, track=hook)


class _SlowDestination(DestinationBase):
    def __init__(self, name: str, release: asyncio.Event) -> None:
        super().__init__(name)
        self._release = release
        self.done = False

    async def track(self, task: DeliveryTask) -> DeliveryTask:
        await self._release.wait()
        self.done = True
        return task


class TestExceptionTypes:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [KeyError("k"), ValueError("v"), TypeError("t"), _CustomError("c"), OSError("io")],
    )
    async def test_any_exception_is_retried_then_failed(
        self, exc, make_event, fast_queue, observability
    ):
        dispatcher = DeliveryDispatcher(
            [_raising("bad", exc), DestinationBase("good")],
            fast_queue,
            observability=observability,
        )
        await dispatcher.deliver(make_event())
        await dispatcher.join()

        assert dispatcher.state_of("e1/bad") is TaskState.FAILED
        assert dispatcher.record_for("e1/bad").attempts == fast_queue.max_attempts + 1
        assert dispatcher.state_of("e1/good") is TaskState.DELIVERED
        assert len(observability.failures) == 1
        assert observability.failures[0][1].startswith(type(exc).__name__)


class TestSlowDestination:
    @pytest.mark.asyncio
    async def test_slow_hook_does_not_block_other_destination(
        self, make_event, fast_queue, observability
    ):
        release = asyncio.Event()
        slow = _SlowDestination("slow", release)
        dispatcher = DeliveryDispatcher(
            [slow, DestinationBase("fast")], fast_queue, observability=observability
        )

        await dispatcher.deliver(make_event())
        for _ in range(10):
            await asyncio.sleep(0)

        assert dispatcher.state_of("e1/fast") is TaskState.DELIVERED
        assert dispatcher.state_of("e1/slow") is TaskState.IN_FLIGHT

        release.set()
        await asyncio.wait_for(dispatcher.join(), timeout=1)
        assert slow.done
        assert dispatcher.state_of("e1/slow") is TaskState.DELIVERED


class TestStateBypass:
    @pytest.mark.asyncio
    async def test_cannot_skip_in_flight(self, make_event, fast_queue):
        dispatcher = DeliveryDispatcher([DestinationBase("ads")], fast_queue)
        dispatcher._states["e1/ads"] = TaskState.PENDING
        with pytest.raises(InvalidTaskTransitionError):
            dispatcher._transition("e1/ads", TaskState.DELIVERED)

    @pytest.mark.asyncio
    async def test_terminal_task_cannot_be_revived(self, make_event, fast_queue, observability):
        dispatcher = DeliveryDispatcher(
            [DestinationBase("ads")], fast_queue, observability=observability
        )
        await dispatcher.deliver(make_event())
        await dispatcher.join()

        with pytest.raises(InvalidTaskTransitionError):
            dispatcher._transition("e1/ads", TaskState.PENDING)
        assert dispatcher.state_of("e1/ads") is TaskState.DELIVERED

    def test_unknown_task_has_no_transitions(self, fast_queue):
        dispatcher = DeliveryDispatcher([], fast_queue)
        with pytest.raises(InvalidTaskTransitionError):
            dispatcher._transition("ghost/ads", TaskState.IN_FLIGHT)
