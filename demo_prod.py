"""Production smoke test: delivers one event through the full relay.

Usage:
    python demo_prod.py
"""

from __future__ import annotations

import asyncio

from pixelrelay.config import settings
from pixelrelay.destinations.local_file import LocalFileDestination
from pixelrelay.models.events import Event, EventType
from pixelrelay.models.mapping import DestinationConfig
from pixelrelay.routing.dispatcher import DeliveryDispatcher

SMOKE_CONFIG = {
    "destination": "smoke",
    "field_mappings": [
        {"source_kind": "field", "source_value": "userId", "target_path": "user.id"},
        {
            "source_kind": "field",
            "source_value": "properties.items.$.id",
            "target_path": "contents.$.content_id",
        },
        {"source_kind": "variable", "source_value": "CURRENT_TIME", "target_path": "sent_at"},
    ],
    "event_mappings": [
        {
            "event_type": "track",
            "source_event_name": "add_to_cart",
            "destination_event_key": "AddToCart",
        }
    ],
}


async def run() -> None:
    destination = LocalFileDestination(
        DestinationConfig.model_validate(SMOKE_CONFIG), base_path=settings.events_dir
    )
    dispatcher = DeliveryDispatcher(
        [destination], settings.retry_queue(), history_limit=settings.history_limit
    )
    event = Event(
        type=EventType.TRACK,
        name="add_to_cart",
        user_id="smoke-user",
        properties={"items": [{"id": "sku-1"}, {"id": "sku-2"}]},
    )
    handle = await dispatcher.deliver(event)
    await dispatcher.join()

    for task_id in handle.task_ids:
        record = dispatcher.record_for(task_id)
        state = record.state.value if record else "unknown"
        print(f"  [{'OK' if state == 'delivered' else '!!'}] {task_id}: {state}")
    for path in destination.list_events():
        print(f"  wrote {path}")


def main() -> None:
    """Run a production smoke delivery."""
    print("pixelrelay PRODUCTION SMOKE")
    print(f"Environment: {settings.environment} | Events dir: {settings.events_dir}")
    print()
    asyncio.run(run())
    print()
    print("Smoke delivery complete")


if __name__ == "__main__":
    main()
