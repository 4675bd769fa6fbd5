"""Filter evaluation: a conjunction of field-level predicates.

Every comparison tolerates a missing or ``None`` actual value and resolves
to ``False`` instead of raising (``not-contains`` and ``!=`` being the
natural exceptions).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from numbers import Real
from typing import Any

from pixelrelay.core.path_value import get_value
from pixelrelay.models.mapping import Filter, FilterOperator

Predicate = Callable[[Any, Any], bool]


def matches(record: Any, filters: Iterable[Filter] | None) -> bool:
    """Return True when every filter matches *record*.

    An empty or absent filter list matches unconditionally.  Evaluation
    stops at the first filter that fails.
    """
    if not filters:
        return True
    for item in filters:
        if not match_filter(record, item):
            return False
    return True


def match_filter(record: Any, item: Filter) -> bool:
    """Evaluate a single filter against *record*."""
    predicate = _PREDICATES.get(item.operator)
    if predicate is None:
        return False
    actual = get_value(record, item.field)
    return predicate(actual, item.value)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    # "One of" fallback: equality against a list means membership.
    if isinstance(expected, (list, tuple, set, frozenset)):
        return any(actual == candidate for candidate in expected)
    return False


def _not_equals(actual: Any, expected: Any) -> bool:
    return actual != expected


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        needle = _as_text(expected)
        return needle is not None and needle in actual
    if isinstance(actual, (list, tuple)):
        return any(element == expected for element in actual)
    return False


def _not_contains(actual: Any, expected: Any) -> bool:
    return not _contains(actual, expected)


def _starts_with(actual: Any, expected: Any) -> bool:
    needle = _as_text(expected)
    return isinstance(actual, str) and needle is not None and actual.startswith(needle)


def _ends_with(actual: Any, expected: Any) -> bool:
    needle = _as_text(expected)
    return isinstance(actual, str) and needle is not None and actual.endswith(needle)


def _numeric(compare: Callable[[float, float], bool]) -> Predicate:
    def predicate(actual: Any, expected: Any) -> bool:
        left = _as_number(actual, allow_text=False)
        right = _as_number(expected, allow_text=True)
        if left is None or right is None:
            return False
        return compare(left, right)

    return predicate


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, Real) and not isinstance(value, bool):
        return str(value)
    return None


def _as_number(value: Any, *, allow_text: bool) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        return float(value)
    if allow_text and isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


_PREDICATES: dict[FilterOperator, Predicate] = {
    FilterOperator.EQUALS: _equals,
    FilterOperator.NOT_EQUALS: _not_equals,
    FilterOperator.CONTAINS: _contains,
    FilterOperator.NOT_CONTAINS: _not_contains,
    FilterOperator.STARTS_WITH: _starts_with,
    FilterOperator.ENDS_WITH: _ends_with,
    FilterOperator.GREATER_THAN: _numeric(lambda a, b: a > b),
    FilterOperator.GREATER_THAN_OR_EQ: _numeric(lambda a, b: a >= b),
    FilterOperator.LESS_THAN: _numeric(lambda a, b: a < b),
    FilterOperator.LESS_THAN_OR_EQ: _numeric(lambda a, b: a <= b),
}
