"""Local file destination: writes mapped events to local JSON files.

Layout: {base_path}/{subdirectory or destination name}/{event_id}.json

Each file holds ``{"event": <destination event key>, "payload": {...}}``
serialized to canonical JSON, so replaying the same events produces
byte-identical files.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from pixelrelay.core.hasher import canonical_json_bytes
from pixelrelay.destinations.mapped import MappedDestination
from pixelrelay.models.delivery import DeliveryTask
from pixelrelay.models.mapping import DestinationConfig

logger = logging.getLogger(__name__)

SUBDIRECTORY_SETTING = "subdirectory"


class LocalFileDestination(MappedDestination):
    """Writes each mapped event to a JSON file.

    Parameters
    ----------
    config:
        Mapping configuration.  An optional ``subdirectory`` setting
        overrides the directory name (defaults to the destination name).
    base_path:
        Root directory for event files.  Defaults to ``.pixelrelay/events``.
    """

    def __init__(
        self,
        config: DestinationConfig,
        base_path: Path | str | None = None,
        **kwargs: Any,
    ) -> None:
        self._base = Path(base_path) if base_path else Path(".pixelrelay/events")
        super().__init__(config, **kwargs)

    @property
    def directory(self) -> Path:
        subdirectory = self.config.settings_dict.get(SUBDIRECTORY_SETTING)
        return self._base / str(subdirectory or self.name)

    async def send(
        self, event_key: str, payload: dict[str, Any], task: DeliveryTask
    ) -> None:
        data = {"event": event_key, "payload": payload}
        target_file = await asyncio.to_thread(self._write, task.event.id, data)
        logger.debug("LocalFileDestination: wrote %s to %s", task.id, target_file)

    def _write(self, event_id: str, data: dict[str, Any]) -> Path:
        target_dir = self.directory
        target_dir.mkdir(parents=True, exist_ok=True)
        target_file = target_dir / f"{event_id}.json"
        target_file.write_bytes(canonical_json_bytes(data))
        return target_file

    def list_events(self) -> list[Path]:
        """List the event files written so far."""
        directory = self.directory
        if not directory.exists():
            return []
        return sorted(directory.glob("*.json"))

    def read_event(self, path: Path) -> dict:
        """Read and parse a single event file."""
        return json.loads(path.read_bytes())
