"""Value transformations applied to mapped fields before they are written.

Destinations register chains of these per target path, e.g.::

    {"em": [trim, to_lower_case], "ph": [to_digits_only_phone]}

Each transformation passes falsy input through unchanged so that chains
never turn a missing value into a present one.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

Transformation = Callable[[Any], Any]

_NON_DIGITS = re.compile(r"\D")
_E164_MIN_DIGITS = 10


def apply_transformations(value: Any, transformations: Iterable[Transformation]) -> Any:
    """Feed *value* through each transformation, left to right."""
    result = value
    for transformation in transformations:
        result = transformation(result)
    return result


def to_digits_only_phone(phone: Any) -> Any:
    if not phone:
        return phone
    return _NON_DIGITS.sub("", str(phone))


def trim(value: Any) -> Any:
    """Strip surrounding whitespace; a blank string becomes ``None``."""
    if not value or not isinstance(value, str):
        return value
    return value.strip() or None


def to_lower_case(value: Any) -> Any:
    """Lower-case a string; a blank string becomes ``None``."""
    if not value or not isinstance(value, str):
        return value
    return value.lower() or None


def one_letter_gender(value: Any) -> Any:
    """``"female"`` -> ``"f"``; case is preserved."""
    if not value or not isinstance(value, str):
        return value
    return value.strip()[:1]


def compact_birthday(value: Any) -> Any:
    """Format an ISO-8601 date or datetime as ``YYYYMMDD``.

    Returns ``None`` when the value cannot be parsed as a date.
    """
    if not value:
        return value
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    return parsed.strftime("%Y%m%d")


def to_int(value: Any) -> int | None:
    """Parse a leading integer (``"42px"`` -> 42); ``None`` when absent."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = re.match(r"\s*([+-]?\d+)", str(value)) if value is not None else None
    return int(match.group(1)) if match else None


def to_e164(phone: Any) -> Any:
    """Convert a phone number that already carries its country code to E.164.

    Numbers with fewer than ten digits are rejected (``None``).
    """
    if not phone:
        return phone
    digits = to_digits_only_phone(phone)
    if len(digits) < _E164_MIN_DIGITS:
        return None
    return f"+{digits}"
