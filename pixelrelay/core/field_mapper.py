"""Field mapping: projects an event record into a destination payload.

A mapper is built once per destination from its ``MappingRule`` list and
reused for every event.  Rules are applied in order; each one resolves a
source value, runs the transformation chain registered for its target path,
and writes the result with :func:`set_value`.  Blank results are never
written.

Templates are Jinja2, rendered in a sandbox with the record bound to
``record``::

    MappingRule(source_kind="template",
                source_value="{{ record.traits.first_name }} {{ record.traits.last_name }}",
                target_path="full_name")

Nothing raised while resolving a single rule escapes :meth:`FieldMapper.map`;
the field is simply left out and the failure is logged.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from jinja2 import ChainableUndefined, Template, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from pixelrelay.core.path_value import (
    BROADCAST_SEPARATOR,
    get_value,
    is_broadcast_path,
    set_value,
    split_path,
)
from pixelrelay.core.transformations import Transformation, apply_transformations
from pixelrelay.models.mapping import MappingRule, SourceKind

logger = logging.getLogger(__name__)

CURRENT_DATE_VAR_NAME = "CURRENT_DATE"
CURRENT_TIME_VAR_NAME = "CURRENT_TIME"
UUID_VAR_NAME = "UUID"

TEMPLATE_RECORD_KEY = "record"
PROPERTIES_PREFIX = "properties."

TransformationMap = Mapping[str, Iterable[Transformation]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_uuid() -> str:
    return str(uuid.uuid4())


def is_blank(value: Any) -> bool:
    """Falsy values are blank: ``None``, ``0``, ``False`` and empty strings/collections."""
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return not value


class FieldMapper:
    """Applies one destination's mapping rules to event records.

    Parameters
    ----------
    rules:
        The destination's mapping rules, applied in order.
    now:
        Clock used by the ``CURRENT_DATE`` / ``CURRENT_TIME`` variables.
    id_factory:
        Source of values for the ``UUID`` variable.
    """

    def __init__(
        self,
        rules: Iterable[MappingRule],
        *,
        now: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_uuid,
    ) -> None:
        self._rules: list[MappingRule] = list(rules)
        self._now = now
        self._id_factory = id_factory
        self._env = SandboxedEnvironment(undefined=ChainableUndefined, autoescape=False)
        # Compiled templates keyed by rule position; None marks a template
        # that failed to compile.
        self._templates: dict[int, Template | None] = {}
        for index, rule in enumerate(self._rules):
            if rule.source_kind is SourceKind.TEMPLATE:
                self._templates[index] = self._compile(rule)

    @property
    def rules(self) -> list[MappingRule]:
        return list(self._rules)

    def map(
        self,
        record: Mapping[str, Any] | None,
        transformations: TransformationMap | None = None,
        *,
        ignore_unmapped_properties: bool = False,
    ) -> dict[str, Any]:
        """Project *record* into a new payload dict.

        Parameters
        ----------
        record:
            The event record (see ``Event.to_record``).  Never mutated.
        transformations:
            Optional chains keyed by target path.
        ignore_unmapped_properties:
            When False (the default), properties not consumed by a FIELD
            rule are copied into the payload under their own key.
        """
        if not record:
            return {}

        payload: dict[str, Any] = {}
        consumed: set[str] = set()

        for index, rule in enumerate(self._rules):
            if rule.source_kind is SourceKind.FIELD:
                consumed_key = _consumed_property(rule.source_value)
                if consumed_key is not None:
                    consumed.add(consumed_key)

            try:
                value = self._resolve(index, rule, record)
                chain = transformations.get(rule.target_path) if transformations else None
                if chain and not is_blank(value):
                    value = apply_transformations(value, chain)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Mapping rule %s -> %s failed: %s",
                    rule.source_value,
                    rule.target_path,
                    exc,
                )
                continue

            if not is_blank(value):
                set_value(payload, rule.target_path, value)

        if ignore_unmapped_properties:
            return payload

        properties = record.get("properties")
        if isinstance(properties, Mapping):
            for key, value in properties.items():
                if key not in consumed:
                    payload[key] = copy.deepcopy(value)

        return payload

    # ------------------------------------------------------------------
    # Source resolution
    # ------------------------------------------------------------------

    def _resolve(self, index: int, rule: MappingRule, record: Mapping[str, Any]) -> Any:
        kind = rule.source_kind
        if kind is SourceKind.FIELD:
            return copy.deepcopy(get_value(record, rule.source_value))
        if kind is SourceKind.TEMPLATE:
            return self._render(index, record)
        if kind is SourceKind.CONSTANT:
            return rule.source_value
        if kind is SourceKind.VARIABLE:
            return self._variable(rule.source_value)
        return None

    def _compile(self, rule: MappingRule) -> Template | None:
        try:
            return self._env.from_string(rule.source_value)
        except TemplateError as exc:
            logger.warning(
                "Template for %s does not compile and will be skipped: %s",
                rule.target_path,
                exc,
            )
            return None

    def _render(self, index: int, record: Mapping[str, Any]) -> str | None:
        template = self._templates.get(index)
        if template is None:
            return None
        try:
            return template.render({TEMPLATE_RECORD_KEY: record})
        except TemplateError as exc:
            logger.warning("Template render failed: %s", exc)
            return None

    def _variable(self, name: str) -> str:
        if name == CURRENT_DATE_VAR_NAME:
            return self._current().strftime("%Y-%m-%d")
        if name == CURRENT_TIME_VAR_NAME:
            current = self._current()
            return current.strftime("%Y-%m-%dT%H:%M:%S.") + f"{current.microsecond // 1000:03d}Z"
        if name == UUID_VAR_NAME:
            return self._id_factory()
        logger.debug("Unknown mapping variable %r", name)
        return ""

    def _current(self) -> datetime:
        current = self._now()
        if current.tzinfo is None:
            return current.replace(tzinfo=timezone.utc)
        return current.astimezone(timezone.utc)


def _consumed_property(source_path: str) -> str | None:
    """Top-level ``properties`` key a FIELD rule takes over, if any.

    A broadcast rule takes the whole array key.  A nested rule such as
    ``properties.address.city`` takes nothing; ``address`` is still copied.
    """
    if not source_path.startswith(PROPERTIES_PREFIX):
        return None
    if is_broadcast_path(source_path):
        source_path = source_path.split(BROADCAST_SEPARATOR)[0]
    segments = split_path(source_path[len(PROPERTIES_PREFIX):])
    return segments[0] if len(segments) == 1 else None
