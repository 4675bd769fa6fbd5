"""Unit tests for the stock value transformations."""

from __future__ import annotations

import pytest

from pixelrelay.core.transformations import (
    apply_transformations,
    compact_birthday,
    one_letter_gender,
    to_digits_only_phone,
    to_e164,
    to_int,
    to_lower_case,
    trim,
)


class TestTransformations:
    def test_chain_applies_left_to_right(self):
        assert apply_transformations("  Jane@Example.COM ", [trim, to_lower_case]) == "jane@example.com"

    def test_empty_chain_is_identity(self):
        assert apply_transformations("x", []) == "x"

    def test_digits_only_phone(self):
        assert to_digits_only_phone("+33 (0)6-12-34") == "33061234"
        assert to_digits_only_phone("") == ""

    def test_trim_and_lower_blank_become_none(self):
        assert trim("   ") is None
        assert to_lower_case("ABC") == "abc"
        assert trim(None) is None
        assert trim(5) == 5

    def test_one_letter_gender(self):
        assert one_letter_gender("female") == "f"
        assert one_letter_gender("Male") == "M"

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("1990-07-14", "19900714"),
            ("1990-07-14T10:00:00Z", "19900714"),
            ("not a date", None),
        ],
    )
    def test_compact_birthday(self, value, expected):
        assert compact_birthday(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [(42, 42), ("42px", 42), (" -7", -7), (3.9, 3), ("abc", None), (None, None), (True, None)],
    )
    def test_to_int(self, value, expected):
        assert to_int(value) == expected

    def test_to_e164(self):
        assert to_e164("33 6 12 34 56 78") == "+33612345678"
        assert to_e164("12345") is None
        assert to_e164(None) is None
