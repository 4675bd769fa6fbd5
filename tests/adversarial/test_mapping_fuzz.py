"""Adversarial tests: mapping and filters never raise on hostile input.

These tests verify that:
1. Malformed paths resolve to nothing instead of raising
2. Broken or hostile templates are skipped or sandboxed
3. Filters tolerate any value type on either side
4. Records of unexpected shapes produce empty or partial payloads
"""

from __future__ import annotations

import pytest

from pixelrelay.core.field_mapper import FieldMapper
from pixelrelay.core.filters import matches
from pixelrelay.core.path_value import get_value, set_value
from pixelrelay.models.mapping import Filter, FilterOperator, MappingRule

HOSTILE_PATHS = [
    "",
    ".",
    "..",
    ".$",
    "$",
    "$.$",
    "a.$.b.$.c",
    "a.$$",
    "a[",
    "a]]",
    "a.-1",
    "a.99999999999",
    "properties.$",
    "__class__.__mro__",
]

HOSTILE_RECORDS = [
    {},
    {"a": None},
    {"a": [None, 1, "x", {"b": None}]},
    {"a": {"$": 1}},
    {"properties": "not a dict"},
    {"properties": {"items": {"0": {"id": 1}}}},
]


class TestPathFuzz:
    @pytest.mark.parametrize("path", HOSTILE_PATHS)
    @pytest.mark.parametrize("record", HOSTILE_RECORDS)
    def test_get_never_raises(self, record, path):
        get_value(record, path)

    @pytest.mark.parametrize("path", HOSTILE_PATHS)
    def test_set_never_raises(self, path):
        payload = {"a": [1, None, {"b": 2}]}
        set_value(payload, path, [1, 2])
        set_value(payload, path, "scalar")

    def test_dunder_paths_do_not_reach_attributes(self):
        assert get_value({"x": 1}, "__class__.__mro__") is None


class TestTemplateFuzz:
    @pytest.mark.parametrize(
        "template",
        [
            "{{ record.__class__.__mro__ }}",
            "{{ record.__init__.__globals__ }}",
            "{% for x in record %}{{ x }}",
            "{{ record | nosuchfilter }}",
            "{{ 1 / 0 }}",
            "{{ record.a.b.c.d }}",
        ],
    )
    def test_hostile_templates_do_not_raise(self, template):
        mapper = FieldMapper(
            [
                MappingRule(source_kind="template", source_value=template, target_path="t"),
                MappingRule(source_kind="constant", source_value="kept", target_path="k"),
            ]
        )
        payload = mapper.map({"a": {"b": 1}})
        assert payload["k"] == "kept"


class TestFilterFuzz:
    @pytest.mark.parametrize("operator", list(FilterOperator))
    @pytest.mark.parametrize("value", [None, 0, -1.5, "", "abc", [], [1, "a"], {"k": 1}, True])
    @pytest.mark.parametrize("record", HOSTILE_RECORDS)
    def test_filters_never_raise(self, record, operator, value):
        matches(record, [Filter(field="a", operator=operator, value=value)])


class TestRecordFuzz:
    @pytest.mark.parametrize("record", HOSTILE_RECORDS)
    def test_mapper_tolerates_any_record(self, record):
        rules = [
            MappingRule(source_kind="field", source_value=path, target_path=f"out{i}")
            for i, path in enumerate(HOSTILE_PATHS)
        ]
        rules.append(
            MappingRule(source_kind="field", source_value="properties.items.$.id", target_path="c.$.id")
        )
        payload = FieldMapper(rules).map(record)
        assert isinstance(payload, dict)
