"""pixelrelay: mapped, queued and retried delivery of analytics events.

Analytics events (identify, track, page, group) are projected into each
destination's payload shape by declarative field mappings, routed by
filter-aware event rules, and delivered through a bounded retry queue:
  - Path expressions with array broadcast (``items.$.id``)
  - FIELD / TEMPLATE (Jinja2) / CONSTANT / VARIABLE mapping sources
  - Event rules with conjunctive property filters
  - Per-destination fan-out with exponential backoff
  - One failure report per task whose retries run out
"""

__version__ = "0.1.0"
__description__ = "Mapped, queued and retried delivery of analytics events"

from pixelrelay.core.field_mapper import FieldMapper
from pixelrelay.core.retry_queue import BackoffPolicy, RetryQueue
from pixelrelay.destinations import Destination, DestinationBase
from pixelrelay.destinations.registry import DestinationRegistry
from pixelrelay.models.events import Event, EventType
from pixelrelay.routing.dispatcher import DeliveryDispatcher

__all__ = [
    "BackoffPolicy",
    "DeliveryDispatcher",
    "Destination",
    "DestinationBase",
    "DestinationRegistry",
    "Event",
    "EventType",
    "FieldMapper",
    "RetryQueue",
    "__version__",
]
