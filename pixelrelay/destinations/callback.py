"""Destination built from plain callables, one per event type.

Useful for wiring an existing client library into the dispatcher without
writing a class::

    CallbackDestination("crm", track=crm_client.send_track)

An event type without a callable is a no-op success.
"""

from __future__ import annotations

from collections.abc import Callable

from pixelrelay.destinations import DestinationBase, HookResult
from pixelrelay.models.delivery import DeliveryTask

Hook = Callable[[DeliveryTask], HookResult]


class CallbackDestination(DestinationBase):
    """Delegates each hook to an optional callable."""

    def __init__(
        self,
        name: str,
        *,
        identify: Hook | None = None,
        track: Hook | None = None,
        page: Hook | None = None,
        group: Hook | None = None,
    ) -> None:
        super().__init__(name)
        self._identify = identify
        self._track = track
        self._page = page
        self._group = group

    def identify(self, task: DeliveryTask) -> HookResult:
        return self._identify(task) if self._identify else task

    def track(self, task: DeliveryTask) -> HookResult:
        return self._track(task) if self._track else task

    def page(self, task: DeliveryTask) -> HookResult:
        return self._page(task) if self._page else task

    def group(self, task: DeliveryTask) -> HookResult:
        return self._group(task) if self._group else task
