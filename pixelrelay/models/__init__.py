"""pixelrelay data models: all Pydantic v2, all frozen (immutable)."""

from pixelrelay.models.delivery import (
    TERMINAL_TASK_STATES,
    VALID_TASK_TRANSITIONS,
    DeliveryHandle,
    DeliveryRecord,
    DeliveryTask,
    TaskState,
    task_id_for,
)
from pixelrelay.models.events import DEFAULT_EVENT_NAMES, Event, EventType
from pixelrelay.models.mapping import (
    DestinationConfig,
    DestinationSetting,
    EventRule,
    Filter,
    FilterOperator,
    MappingRule,
    ResolvedEvent,
    SourceKind,
)

__all__ = [
    # events
    "EventType",
    "Event",
    "DEFAULT_EVENT_NAMES",
    # mapping
    "SourceKind",
    "MappingRule",
    "FilterOperator",
    "Filter",
    "EventRule",
    "ResolvedEvent",
    "DestinationSetting",
    "DestinationConfig",
    # delivery
    "TaskState",
    "VALID_TASK_TRANSITIONS",
    "TERMINAL_TASK_STATES",
    "DeliveryTask",
    "DeliveryRecord",
    "DeliveryHandle",
    "task_id_for",
]
