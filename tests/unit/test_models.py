"""Unit tests for pixelrelay data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pixelrelay.models import (
    VALID_TASK_TRANSITIONS,
    DeliveryTask,
    DestinationConfig,
    Event,
    EventRule,
    EventType,
    Filter,
    FilterOperator,
    MappingRule,
    SourceKind,
    TaskState,
    task_id_for,
)


class TestEvent:
    def test_wire_aliases(self):
        event = Event.model_validate(
            {"type": "track", "event": "purchase", "userId": "u1", "externalIds": {"email": "x"}}
        )
        assert event.name == "purchase"
        assert event.user_id == "u1"
        record = event.to_record()
        assert record["event"] == "purchase"
        assert record["userId"] == "u1"
        assert record["externalIds"] == {"email": "x"}
        assert "anonymousId" not in record

    def test_unknown_keys_are_preserved(self):
        event = Event.model_validate({"type": "page", "channel": "web"})
        assert event.to_record()["channel"] == "web"

    def test_effective_name(self):
        assert Event(type=EventType.PAGE).effective_name == "page"
        assert Event(type=EventType.TRACK).effective_name is None
        assert Event(type=EventType.TRACK, name="x").effective_name == "x"

    def test_ids_are_unique(self):
        assert Event(type=EventType.TRACK).id != Event(type=EventType.TRACK).id

    def test_frozen(self):
        event = Event(type=EventType.TRACK)
        with pytest.raises(ValidationError):
            event.name = "changed"

    def test_to_record_returns_fresh_tree(self):
        event = Event(type=EventType.TRACK, properties={"items": [1]})
        event.to_record()["properties"]["items"].append(2)
        assert event.to_record()["properties"]["items"] == [1]


class TestMappingModels:
    @pytest.mark.parametrize("raw", [1, "1", "field", "FIELD", SourceKind.FIELD])
    def test_source_kind_codes(self, raw):
        rule = MappingRule(source_kind=raw, source_value="userId", target_path="uid")
        assert rule.source_kind is SourceKind.FIELD

    def test_unknown_source_kind(self):
        with pytest.raises(ValidationError):
            MappingRule(source_kind=9, source_value="x", target_path="y")

    def test_nested_rule_form(self):
        rule = MappingRule.model_validate(
            {"source": {"type": 4, "value": "UUID"}, "target": {"name": "event_id"}}
        )
        assert rule.source_kind is SourceKind.VARIABLE
        assert rule.target_path == "event_id"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("==", FilterOperator.EQUALS),
            ("not contains", FilterOperator.NOT_CONTAINS),
            ("starts_with", FilterOperator.STARTS_WITH),
            (">=", FilterOperator.GREATER_THAN_OR_EQ),
        ],
    )
    def test_filter_operator_aliases(self, raw, expected):
        assert Filter(field="a", operator=raw).operator is expected

    def test_unknown_filter_operator(self):
        with pytest.raises(ValidationError):
            Filter(field="a", operator="~=")

    def test_event_rule_name_alias(self):
        rule = EventRule.model_validate(
            {"event_type": "track", "event_name": "x", "destination_event_key": "X"}
        )
        assert rule.source_event_name == "x"
        assert rule.enabled is True

    def test_destination_settings_dict(self):
        config = DestinationConfig.model_validate(
            {
                "destination_app": "ads",
                "settings": [
                    {"key": "pixel_id", "value": "1"},
                    {"key": "pixel_id", "value": "2"},
                ],
            }
        )
        assert config.destination == "ads"
        assert config.settings_dict == {"pixel_id": "2"}


class TestDeliveryModels:
    def test_task_identity(self):
        task = DeliveryTask.for_destination(Event(id="e1", type=EventType.TRACK), "ads")
        assert task.id == task_id_for("e1", "ads") == "e1/ads"
        assert task.attempt == 0

    def test_negative_attempt_rejected(self):
        with pytest.raises(ValidationError):
            DeliveryTask(id="x", destination="y", event=Event(type=EventType.TRACK), attempt=-1)

    def test_terminal_states_have_no_exits(self):
        assert VALID_TASK_TRANSITIONS[TaskState.DELIVERED] == set()
        assert VALID_TASK_TRANSITIONS[TaskState.FAILED] == set()

    def test_every_state_has_a_transition_entry(self):
        assert set(VALID_TASK_TRANSITIONS) == set(TaskState)
