"""Mapping-driven destination base.

Implements the pattern every configurable destination shares:

1. resolve the destination event key from the event rules (skip the event
   when no rule matches);
2. project the event into a payload with the field mapper;
3. hand ``(event_key, payload)`` to :meth:`MappedDestination.send`.

Subclasses only implement ``send``.  :class:`DryRunDestination` keeps the
mapped events in memory instead of sending them.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from pixelrelay.core.event_rules import EventRuleResolver
from pixelrelay.core.field_mapper import FieldMapper
from pixelrelay.core.transformations import Transformation
from pixelrelay.destinations import DestinationBase
from pixelrelay.models.delivery import DeliveryTask
from pixelrelay.models.mapping import DestinationConfig

logger = logging.getLogger(__name__)


class MappedDestination(DestinationBase, abc.ABC):
    """Abstract base for destinations configured by mapping and event rules.

    Parameters
    ----------
    config:
        The destination's mapping configuration.  Its ``destination`` field
        becomes the destination name.
    transformations:
        Transformation chains keyed by payload target path.
    ignore_unmapped_properties:
        Drop event properties that no FIELD rule consumed.
    now:
        Clock forwarded to the field mapper (for deterministic tests).
    """

    def __init__(
        self,
        config: DestinationConfig,
        *,
        transformations: Mapping[str, Iterable[Transformation]] | None = None,
        ignore_unmapped_properties: bool = False,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__(config.destination)
        self._transformations = dict(transformations or {})
        self._ignore_unmapped = ignore_unmapped_properties
        self._now = now
        self.update_configuration(config)

    @property
    def config(self) -> DestinationConfig:
        return self._config

    def update_configuration(self, config: DestinationConfig) -> None:
        """Rebuild the field mapper and event-rule index from *config*."""
        if config.destination != self.name:
            raise ValueError(
                f"Configuration for {config.destination!r} cannot be applied "
                f"to destination {self.name!r}"
            )
        mapper_kwargs: dict[str, Any] = {}
        if self._now is not None:
            mapper_kwargs["now"] = self._now
        self._config = config
        self._mapper = FieldMapper(config.field_mappings, **mapper_kwargs)
        self._resolver = EventRuleResolver(config.event_mappings)
        logger.info(
            "Destination %s configured: %d field rules, %d event rules",
            self.name,
            len(config.field_mappings),
            len(config.event_mappings),
        )

    def prepare(self, task: DeliveryTask) -> tuple[str, dict[str, Any]] | None:
        """Return ``(event_key, payload)`` for *task*, or ``None`` to skip it."""
        record = task.event.to_record()
        resolved = self._resolver.resolve(task.event, record)
        if resolved is None:
            return None
        payload = self._mapper.map(
            record,
            self._transformations,
            ignore_unmapped_properties=self._ignore_unmapped,
        )
        return resolved.destination_event_key, payload

    @abc.abstractmethod
    async def send(
        self, event_key: str, payload: dict[str, Any], task: DeliveryTask
    ) -> None:
        """Deliver one mapped event.  Raise to request a retry."""
        ...

    async def identify(self, task: DeliveryTask) -> DeliveryTask:
        return await self._forward(task)

    async def track(self, task: DeliveryTask) -> DeliveryTask:
        return await self._forward(task)

    async def page(self, task: DeliveryTask) -> DeliveryTask:
        return await self._forward(task)

    async def group(self, task: DeliveryTask) -> DeliveryTask:
        return await self._forward(task)

    async def _forward(self, task: DeliveryTask) -> DeliveryTask:
        prepared = self.prepare(task)
        if prepared is None:
            logger.debug(
                "Destination %s has no rule for %s event %r; skipping %s",
                self.name,
                task.event.type.value,
                task.event.effective_name,
                task.id,
            )
            return task
        event_key, payload = prepared
        await self.send(event_key, payload, task)
        return task


class DryRunDestination(MappedDestination):
    """Maps events without sending them; ``sent`` holds what would have gone out."""

    def __init__(self, config: DestinationConfig, **kwargs: Any) -> None:
        super().__init__(config, **kwargs)
        self.sent: list[tuple[str, dict[str, Any]]] = []

    async def send(
        self, event_key: str, payload: dict[str, Any], task: DeliveryTask
    ) -> None:
        self.sent.append((event_key, payload))
