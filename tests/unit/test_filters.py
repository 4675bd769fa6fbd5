"""Unit tests for filter evaluation."""

from __future__ import annotations

import pytest

from pixelrelay.core.filters import match_filter, matches
from pixelrelay.models.mapping import Filter, FilterOperator

RECORD = {
    "event": "purchase",
    "properties": {
        "currency": "EUR",
        "value": 120.5,
        "coupon": "SPRING-24",
        "tags": ["vip", "newsletter"],
        "quantity": 3,
        "in_stock": True,
    },
}


def _f(field: str, operator: str, value=None) -> Filter:
    return Filter(field=field, operator=operator, value=value)


class TestMatches:
    def test_empty_filter_list_matches(self):
        assert matches(RECORD, [])
        assert matches(RECORD, None)

    def test_conjunction(self):
        filters = [
            _f("properties.currency", "=", "EUR"),
            _f("properties.value", ">", 100),
        ]
        assert matches(RECORD, filters)
        assert not matches(RECORD, filters + [_f("properties.quantity", "<", 2)])


class TestOperators:
    @pytest.mark.parametrize(
        "field, operator, value, expected",
        [
            ("properties.currency", "=", "EUR", True),
            ("properties.currency", "==", "EUR", True),
            ("properties.currency", "=", "USD", False),
            ("properties.currency", "=", ["USD", "EUR"], True),
            ("properties.currency", "!=", "USD", True),
            ("properties.coupon", "contains", "SPRING", True),
            ("properties.tags", "contains", "vip", True),
            ("properties.tags", "contains", "gold", False),
            ("properties.tags", "not-contains", "gold", True),
            ("properties.coupon", "starts-with", "SPR", True),
            ("properties.coupon", "ends-with", "24", True),
            ("properties.coupon", "ends-with", 24, True),
            ("properties.value", ">=", 120.5, True),
            ("properties.value", "<", "200", True),
            ("properties.quantity", "<=", 3, True),
            ("properties.quantity", ">", 3, False),
        ],
    )
    def test_operator(self, field, operator, value, expected):
        assert match_filter(RECORD, _f(field, operator, value)) is expected

    def test_missing_field_never_raises(self):
        for operator in FilterOperator:
            match_filter(RECORD, _f("properties.nope", operator, "x"))

    def test_missing_field_comparisons_are_false(self):
        assert not match_filter(RECORD, _f("properties.nope", ">", 1))
        assert not match_filter(RECORD, _f("properties.nope", "contains", "x"))
        assert match_filter(RECORD, _f("properties.nope", "not-contains", "x"))

    def test_bool_is_not_numeric(self):
        assert not match_filter(RECORD, _f("properties.in_stock", ">", 0))

    def test_text_actual_is_not_coerced_for_numeric_comparison(self):
        record = {"properties": {"value": "150"}}
        assert not match_filter(record, _f("properties.value", ">", 100))
