"""Inbound analytics event model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """The four event kinds every destination exposes a hook for."""

    TRACK = "track"
    PAGE = "page"
    GROUP = "group"
    IDENTIFY = "identify"


# Name used for rule lookup when an event carries no explicit name.
# Track events have no default: an unnamed track only matches unnamed rules.
DEFAULT_EVENT_NAMES: dict[EventType, str | None] = {
    EventType.TRACK: None,
    EventType.PAGE: "page",
    EventType.GROUP: "group",
    EventType.IDENTIFY: "identify",
}


class Event(BaseModel):
    """A single business event as captured by the SDK.

    Field names follow Python conventions; the wire aliases (``event``,
    ``userId``, ``externalIds`` ...) are what mapping and filter paths see,
    because :meth:`to_record` dumps by alias.  Unknown keys are preserved.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: EventType
    name: str | None = Field(default=None, alias="event")
    user_id: str | None = Field(default=None, alias="userId")
    anonymous_id: str | None = Field(default=None, alias="anonymousId")
    group_id: str | None = Field(default=None, alias="groupId")
    properties: dict[str, Any] = Field(default_factory=dict)
    traits: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)
    external_ids: dict[str, Any] = Field(default_factory=dict, alias="externalIds")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def effective_name(self) -> str | None:
        """The explicit event name, or the default name for its type."""
        return self.name or DEFAULT_EVENT_NAMES.get(self.type)

    def to_record(self) -> dict[str, Any]:
        """Return a fresh JSON-compatible dict of this event.

        Every call builds a new tree, so callers may mutate the result.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
