"""Destination mapping configuration: field rules, event rules and filters.

These models are plain configuration data.  Each destination loads its
``DestinationConfig`` once and reuses it for every event until the
configuration is replaced.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from pixelrelay.models.events import EventType


class SourceKind(str, Enum):
    """Where a mapping rule takes its value from."""

    FIELD = "field"
    TEMPLATE = "template"
    CONSTANT = "constant"
    VARIABLE = "variable"

    @classmethod
    def _missing_(cls, value: object) -> SourceKind | None:
        # Numeric codes used by exported sync configurations.
        codes = {1: cls.FIELD, 2: cls.TEMPLATE, 3: cls.CONSTANT, 4: cls.VARIABLE}
        if isinstance(value, int) and not isinstance(value, bool):
            return codes.get(value)
        if isinstance(value, str):
            lowered = value.lower()
            if lowered.isdecimal():
                return codes.get(int(lowered))
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class FilterOperator(str, Enum):
    """Comparison applied by a single filter."""

    EQUALS = "="
    NOT_EQUALS = "!="
    CONTAINS = "contains"
    NOT_CONTAINS = "not-contains"
    STARTS_WITH = "starts-with"
    ENDS_WITH = "ends-with"
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQ = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQ = "<="

    @classmethod
    def _missing_(cls, value: object) -> FilterOperator | None:
        aliases = {
            "==": cls.EQUALS,
            "not contains": cls.NOT_CONTAINS,
            "not_contains": cls.NOT_CONTAINS,
            "starts_with": cls.STARTS_WITH,
            "ends_with": cls.ENDS_WITH,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


class MappingRule(BaseModel):
    """Projects one source value onto one target path of the payload.

    Accepts both the flat form::

        {"source_kind": "field", "source_value": "traits.email",
         "target_path": "em"}

    and the nested form found in exported sync configurations::

        {"source": {"type": 1, "value": "traits.email"},
         "target": {"name": "em"}}
    """

    model_config = ConfigDict(frozen=True)

    source_kind: SourceKind
    source_value: str
    target_path: str

    @model_validator(mode="before")
    @classmethod
    def _flatten_nested_form(cls, data: Any) -> Any:
        if isinstance(data, dict) and "source" in data and "target" in data:
            source = data.get("source") or {}
            target = data.get("target") or {}
            return {
                "source_kind": source.get("type"),
                "source_value": source.get("value", ""),
                "target_path": target.get("name", ""),
            }
        return data


class Filter(BaseModel):
    """A single field-level predicate evaluated against an event record."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: FilterOperator
    value: Any = None


class EventRule(BaseModel):
    """Maps a source event (type + name) to a destination event key.

    Several rules may share the same ``(event_type, source_event_name)``;
    they are evaluated in declared order and the first one whose filters
    all match wins.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = True
    event_type: EventType
    source_event_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("source_event_name", "event_name"),
    )
    destination_event_key: str
    filters: list[Filter] = Field(default_factory=list)


class ResolvedEvent(BaseModel):
    """Result of a successful event-rule lookup."""

    model_config = ConfigDict(frozen=True)

    destination_event_key: str


class DestinationSetting(BaseModel):
    """A single key/value setting attached to a destination."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str


class DestinationConfig(BaseModel):
    """Everything a destination needs to translate events: no code, only data."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    destination: str = Field(
        validation_alias=AliasChoices("destination", "destination_app"),
    )
    settings: list[DestinationSetting] = Field(default_factory=list)
    field_mappings: list[MappingRule] = Field(default_factory=list)
    event_mappings: list[EventRule] = Field(default_factory=list)

    @property
    def settings_dict(self) -> dict[str, str]:
        """Fold the settings list into a dict; later keys win."""
        return {setting.key: setting.value for setting in self.settings}
