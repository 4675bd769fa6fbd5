"""Delivery channel probes: is there connectivity to deliver right now?"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class DeliveryChannel(Protocol):
    """Answers whether deliveries may be attempted at this moment."""

    def is_online(self) -> bool: ...


class AlwaysOnline:
    """Channel for server-side use, where connectivity is assumed."""

    def is_online(self) -> bool:
        return True


class StaticChannel:
    """Channel whose state is switched explicitly by the owner.

    Going back online does not drain anything by itself; call
    ``DeliveryDispatcher.drain()`` afterwards.
    """

    def __init__(self, online: bool = True) -> None:
        self._online = online

    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info("Delivery channel is now %s", "online" if online else "offline")
        self._online = online
