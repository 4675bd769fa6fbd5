"""Get/set over nested records with broadcast (``.$``) paths.

A path is dot-separated (``properties.items.0.id``; ``items[0]`` is also
accepted).  The broadcast segment ``.$`` stands for "every element of the
array at this point"::

    get_value(record, "properties.items.$.id")   # -> ["a", "b"]
    set_value(payload, "contents.$.content_id", ["a", "b"])

Only one broadcast segment is allowed per path.  Invalid paths never raise:
``get_value`` returns ``None`` and ``set_value`` leaves the record untouched.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping
from typing import Any

BROADCAST_SEPARATOR = ".$"

# Writes past this index are ignored rather than padding a list with None.
MAX_LIST_INDEX = 10_000

_SEGMENT_RE = re.compile(r"[^.\[\]]+")


class _Missing:
    """Marks an absent key, as opposed to a key holding ``None``."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def is_broadcast_path(path: str) -> bool:
    """Return True if *path* contains a broadcast segment."""
    return BROADCAST_SEPARATOR in path


def split_path(path: str) -> list[str]:
    """Split a path into its segments (``a.b[0].c`` -> ``a, b, 0, c``)."""
    return _SEGMENT_RE.findall(path)


def get_value(record: Any, path: str) -> Any:
    """Resolve *path* in *record*; ``None`` when absent or invalid."""
    value = lookup(record, path)
    return None if value is MISSING else value


def lookup(record: Any, path: str) -> Any:
    """Like :func:`get_value`, but returns :data:`MISSING` for absent keys."""
    if is_broadcast_path(path):
        return _lookup_broadcast(record, path)
    return _lookup_plain(record, path)


def set_value(record: Any, path: str, value: Any) -> Any:
    """Write *value* at *path* inside *record* and return *record*."""
    if is_broadcast_path(path):
        return _set_broadcast(record, path, value)
    return _set_plain(record, path, value)


# ---------------------------------------------------------------------------
# Plain paths
# ---------------------------------------------------------------------------


def _child(container: Any, key: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(key, MISSING)
    if isinstance(container, list) and key.isdecimal():
        index = int(key)
        return container[index] if index < len(container) else MISSING
    return MISSING


def _lookup_plain(record: Any, path: str) -> Any:
    keys = split_path(path)
    if not keys:
        return MISSING
    current = record
    for key in keys:
        current = _child(current, key)
        if current is MISSING:
            return MISSING
    return current


def _assign(container: Any, key: str, value: Any) -> bool:
    if isinstance(container, MutableMapping):
        container[key] = value
        return True
    if isinstance(container, list) and key.isdecimal():
        index = int(key)
        if index > MAX_LIST_INDEX:
            return False
        if index >= len(container):
            container.extend([None] * (index + 1 - len(container)))
        container[index] = value
        return True
    return False


def _set_plain(record: Any, path: str, value: Any) -> Any:
    keys = split_path(path)
    if not keys or not isinstance(record, (MutableMapping, list)):
        return record

    current = record
    for key, next_key in zip(keys, keys[1:]):
        child = _child(current, key)
        if not isinstance(child, (MutableMapping, list)):
            child = [] if next_key.isdecimal() else {}
            if not _assign(current, key, child):
                return record
        current = child

    _assign(current, keys[-1], value)
    return record


# ---------------------------------------------------------------------------
# Broadcast paths
# ---------------------------------------------------------------------------


def _split_broadcast(path: str) -> tuple[str, str | None] | None:
    """Return ``(array_path, sub_path)``; ``None`` for an invalid path.

    ``sub_path`` is ``None`` when the path ends at the broadcast segment.
    """
    if path == BROADCAST_SEPARATOR:
        return None
    parts = path.split(BROADCAST_SEPARATOR)
    if len(parts) != 2:
        return None
    array_path, rest = parts
    if rest == "":
        return array_path, None
    if not rest.startswith("."):
        return None
    return array_path, rest[1:]


def _lookup_broadcast(record: Any, path: str) -> Any:
    split = _split_broadcast(path)
    if split is None:
        return None
    array_path, sub_path = split

    array = _lookup_plain(record, array_path)
    if array is MISSING:
        return None
    if not array:
        return array
    if not isinstance(array, list):
        return None
    if sub_path is None:
        return array

    values: list[Any] = []
    found = False
    for element in array:
        nested = _lookup_plain(element, sub_path)
        if nested is MISSING:
            values.append(None)
        else:
            values.append(nested)
            found = True

    return values if found else None


def _set_broadcast(record: Any, path: str, value: Any) -> Any:
    split = _split_broadcast(path)
    if split is None:
        return record
    array_path, sub_path = split
    if sub_path is None:
        return _set_plain(record, array_path, value)

    array = _lookup_plain(record, array_path)
    if array is MISSING:
        array = []
    if not isinstance(array, list):
        return record

    if isinstance(value, list):
        for index, item in enumerate(value):
            if index >= len(array):
                array.append({})
            if isinstance(array[index], MutableMapping):
                _set_plain(array[index], sub_path, item)
    else:
        if not array:
            array.append({})
        for element in array:
            if isinstance(element, MutableMapping):
                _set_plain(element, sub_path, value)

    return _set_plain(record, array_path, array)
