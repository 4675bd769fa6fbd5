"""Destination protocol and base class for pixelrelay event delivery.

Every destination exposes a ``name`` and one hook per event type
(``identify``, ``track``, ``page``, ``group``).  The dispatcher picks the
hook matching the task's event type and awaits it; a hook that raises
marks the delivery attempt as failed and triggers a retry.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Protocol, Union, runtime_checkable

from pixelrelay.models.delivery import DeliveryTask
from pixelrelay.models.events import EventType
from pixelrelay.models.mapping import DestinationConfig

HookResult = Union[DeliveryTask, Awaitable[DeliveryTask]]


@runtime_checkable
class Destination(Protocol):
    """Protocol that every pixelrelay destination must implement.

    Hooks may be plain functions or coroutines; both are awaited by the
    dispatcher.

    Attributes
    ----------
    name : str
        Unique destination name.  Task ids are derived from it
        (``"{event_id}/{name}"``).
    """

    @property
    def name(self) -> str:
        """Return the unique name of this destination."""
        ...

    def identify(self, task: DeliveryTask) -> HookResult: ...

    def track(self, task: DeliveryTask) -> HookResult: ...

    def page(self, task: DeliveryTask) -> HookResult: ...

    def group(self, task: DeliveryTask) -> HookResult: ...

    def update_configuration(self, config: DestinationConfig) -> None:
        """Replace mapping and event rules; queued tasks are unaffected."""
        ...


class DestinationBase:
    """Convenience base: every hook is a no-op success until overridden."""

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def identify(self, task: DeliveryTask) -> HookResult:
        return task

    def track(self, task: DeliveryTask) -> HookResult:
        return task

    def page(self, task: DeliveryTask) -> HookResult:
        return task

    def group(self, task: DeliveryTask) -> HookResult:
        return task

    def update_configuration(self, config: DestinationConfig) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"


def invoke_hook(destination: Destination, task: DeliveryTask) -> HookResult:
    """Call the hook of *destination* that handles *task*'s event type."""
    event_type = task.event.type
    if event_type is EventType.IDENTIFY:
        return destination.identify(task)
    if event_type is EventType.TRACK:
        return destination.track(task)
    if event_type is EventType.PAGE:
        return destination.page(task)
    if event_type is EventType.GROUP:
        return destination.group(task)
    raise ValueError(f"Unsupported event type: {event_type!r}")


__all__ = ["Destination", "DestinationBase", "HookResult", "invoke_hook"]
