"""DestinationRegistry: the ordered set of destinations an event fans out to.

Also loads destination mapping configurations from JSON files, either a
single configuration object or a list of them.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from pixelrelay.destinations import Destination
from pixelrelay.models.mapping import DestinationConfig

logger = logging.getLogger(__name__)

_CONFIG_LIST = TypeAdapter(list[DestinationConfig])


class UnknownDestinationError(LookupError):
    """Raised when an operation names a destination that is not registered."""


class ConfigurationError(ValueError):
    """Raised when a destination configuration file cannot be loaded."""


class DestinationRegistry:
    """Ordered registry of destinations.

    Destinations are fanned out to in registration order.  Registering the
    same instance twice is ignored; distinct instances may share a name, in
    which case all of them receive tasks for that name.
    """

    def __init__(self, destinations: Iterable[Destination] = ()) -> None:
        self._destinations: list[Destination] = []
        for destination in destinations:
            self.register(destination)

    def register(self, destination: Destination) -> None:
        if not isinstance(destination, Destination):
            raise TypeError(
                f"{destination!r} does not implement the Destination protocol"
            )
        if destination in self._destinations:
            return
        self._destinations.append(destination)
        logger.info("Registered destination: %s", destination.name)

    def unregister(self, destination: Destination) -> None:
        try:
            self._destinations.remove(destination)
            logger.info("Unregistered destination: %s", destination.name)
        except ValueError:
            pass

    def get(self, name: str) -> Destination:
        """Return the first destination called *name*."""
        for destination in self._destinations:
            if destination.name == name:
                return destination
        raise UnknownDestinationError(f"No destination named {name!r}")

    def matching(self, name: str) -> list[Destination]:
        """All destinations called *name*, in registration order."""
        return [d for d in self._destinations if d.name == name]

    def names(self) -> list[str]:
        """Distinct destination names, in registration order."""
        return list(dict.fromkeys(d.name for d in self._destinations))

    def update_configuration(self, config: DestinationConfig) -> None:
        """Apply *config* to every destination named ``config.destination``."""
        targets = self.matching(config.destination)
        if not targets:
            raise UnknownDestinationError(
                f"Cannot update configuration: no destination named "
                f"{config.destination!r}"
            )
        for destination in targets:
            destination.update_configuration(config)

    def __iter__(self) -> Iterator[Destination]:
        return iter(list(self._destinations))

    def __len__(self) -> int:
        return len(self._destinations)

    def __contains__(self, name: object) -> bool:
        return any(d.name == name for d in self._destinations)


def load_destination_configs(path: Path | str) -> list[DestinationConfig]:
    """Read destination configurations from a JSON file.

    Raises
    ------
    ConfigurationError
        If the file is missing, is not JSON, or does not describe
        destination configurations.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc

    if isinstance(raw, dict):
        raw = [raw]
    try:
        configs = _CONFIG_LIST.validate_python(raw)
    except ValidationError as exc:
        raise ConfigurationError(
            f"{path} is not a valid destination configuration: {exc}"
        ) from exc

    logger.debug("Loaded %d destination configs from %s", len(configs), path)
    return configs
