"""Event-rule resolution: source event -> destination event key.

Rules sharing a ``(type, name)`` group are kept in configured order.  That
order is the only disambiguation between overlapping rules: the first rule
whose filters all match wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pixelrelay.core.filters import matches
from pixelrelay.models.events import DEFAULT_EVENT_NAMES, Event, EventType
from pixelrelay.models.mapping import EventRule, ResolvedEvent

logger = logging.getLogger(__name__)

RuleKey = tuple[EventType, str | None]


class EventRuleResolver:
    """Indexes a destination's enabled event rules for lookup.

    Parameters
    ----------
    rules:
        The destination's configured rules, in priority order.  Disabled
        rules are dropped at construction.
    """

    def __init__(self, rules: Iterable[EventRule]) -> None:
        self._groups: dict[RuleKey, list[EventRule]] = {}
        for rule in rules:
            if not rule.enabled:
                continue
            name = rule.source_event_name or DEFAULT_EVENT_NAMES.get(rule.event_type)
            self._groups.setdefault((rule.event_type, name), []).append(rule)

    @property
    def group_count(self) -> int:
        """Number of distinct ``(type, name)`` groups indexed."""
        return len(self._groups)

    def rules_for(self, event_type: EventType, name: str | None) -> list[EventRule]:
        """Return a copy of the rule group for ``(event_type, name)``."""
        return list(self._groups.get((event_type, name), []))

    def resolve(
        self, event: Event, record: dict[str, Any] | None = None
    ) -> ResolvedEvent | None:
        """Return the destination event key for *event*, or ``None``.

        ``None`` means the destination has no rule for this event and must
        skip it.  *record* is the event's dict form used for filter
        evaluation; it is built from the event when omitted.
        """
        group = self._groups.get((event.type, event.effective_name))
        if not group:
            return None

        if record is None:
            record = event.to_record()

        for rule in group:
            if matches(record, rule.filters):
                return ResolvedEvent(destination_event_key=rule.destination_event_key)

        logger.debug(
            "No event rule matched %s event %r (%d candidates)",
            event.type.value,
            event.effective_name,
            len(group),
        )
        return None
