"""Bind raw custom field submissions to typed value maps and back.

The raw side is the untyped bag a form or API payload carries, keyed by field
name. The typed side holds values already coerced through the field type
registry and checked against each definition's rules. Field failures are
collected into an error map instead of being raised one at a time, so callers
can report every problem in a single response.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy.orm import Session

from app.constants.custom_fields import REFERENCE_TARGETS, CustomFieldEntityType, CustomFieldType
from app.models import CustomFieldDefinition
from app.services.custom_field_definitions import definitions_by_name, list_definitions
from app.services.custom_field_entities import entity_exists, get_entity_lookup, refresh_entity_cache
from app.services.custom_field_errors import (
    CoercionError,
    CustomFieldValidationError,
    EntityNotFoundError,
    FieldError,
    RequiredFieldError,
    ValidationError,
)
from app.services.custom_field_rules import apply_rules
from app.services.custom_field_types import format_value, get_handler, to_wire
from app.services.custom_field_values import default_value_for, get_values, set_values

logger = logging.getLogger(__name__)


@dataclass
class FieldBinding:
    name: str
    value: Any = None
    error: FieldError | None = None
    included: bool = False


@dataclass
class BindingResult:
    values: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, FieldError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error_messages(self) -> dict[str, str]:
        return {name: error.message for name, error in self.errors.items()}


def is_absent(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, str):
        return not raw.strip()
    if isinstance(raw, (list, tuple, set, frozenset, dict)):
        return len(raw) == 0
    return False


def bind_field(definition: CustomFieldDefinition, raw: Any, present: bool = True) -> FieldBinding:
    """Run one raw value through absence, coercion and rule checks."""
    binding = FieldBinding(name=definition.name)

    if not present or is_absent(raw):
        if definition.is_required and definition.default_value is None:
            binding.error = RequiredFieldError(f"{definition.label} is required", definition.name)
        elif present and not definition.is_required:
            # An explicit empty value on an optional field clears it.
            binding.included = True
        return binding

    handler = get_handler(definition.field_type)
    try:
        typed = handler.coerce(raw)
    except CoercionError as exc:
        exc.field_name = definition.name
        binding.error = exc
        return binding

    problem = handler.check(typed, definition) or apply_rules(
        definition.field_type, typed, definition.validation_rules
    )
    if problem:
        binding.error = ValidationError(problem, definition.name)
        return binding

    binding.value = typed
    binding.included = True
    return binding


def bind_values(
    definitions: Iterable[CustomFieldDefinition],
    raw_values: Mapping[str, Any],
    partial: bool = False,
) -> BindingResult:
    """Bind a raw bag against ``definitions``; names without a definition are dropped.

    With ``partial`` only the supplied names are bound, so required fields that
    are not part of the submission are left alone.
    """
    result = BindingResult()
    for definition in definitions:
        present = definition.name in raw_values
        if partial and not present:
            continue
        binding = bind_field(definition, raw_values.get(definition.name), present)
        if binding.error is not None:
            result.errors[definition.name] = binding.error
        elif binding.included:
            result.values[definition.name] = binding.value
    return result


def _check_references(
    db: Session,
    definitions: Sequence[CustomFieldDefinition],
    result: BindingResult,
) -> None:
    for definition in definitions:
        target = REFERENCE_TARGETS.get(CustomFieldType(definition.field_type))
        value = result.values.get(definition.name)
        if target is None or value is None or get_entity_lookup(target) is None:
            continue
        if not entity_exists(db, target, value):
            result.values.pop(definition.name)
            result.errors[definition.name] = ValidationError(
                f"Referenced {target.value} '{value}' does not exist", definition.name
            )


def to_typed_map(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    raw_values: Mapping[str, Any],
    partial: bool = False,
) -> BindingResult:
    definitions = list_definitions(db, entity_type)
    result = bind_values(definitions, raw_values, partial=partial)
    _check_references(db, definitions, result)
    return result


def to_raw_map(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID,
    include_inactive: bool = False,
) -> list[dict[str, Any]]:
    """Stored values of one entity with display text and definition metadata, in form order.

    ``value`` and ``display`` fall back to the definition default when nothing
    is stored; ``is_set`` tells the two apart.
    """
    definitions = list_definitions(db, entity_type, include_inactive=include_inactive)
    stored = get_values(db, entity_type, entity_id, include_inactive=include_inactive, apply_defaults=False)
    entries = []
    for definition in definitions:
        value = stored.get(definition.name)
        is_set = value is not None
        if not is_set:
            value = default_value_for(definition)
        entries.append(
            {
                "name": definition.name,
                "label": definition.label,
                "field_type": definition.field_type,
                "help_text": definition.help_text,
                "placeholder_text": definition.placeholder_text,
                "is_required": definition.is_required,
                "is_active": definition.is_active,
                "display_order": definition.display_order,
                "is_set": is_set,
                "value": to_wire(definition.field_type, value),
                "display": format_value(definition.field_type, value, definition),
            }
        )
    return entries


def raw_map_values(entries: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Project :func:`to_raw_map` entries onto a raw map that binds back to the stored typed values.

    Unset fields are left out, so defaults and cleared values stay absent.
    """
    return {entry["name"]: entry["value"] for entry in entries if entry["is_set"]}


def toggle_option(current: Iterable[str] | None, option: str) -> frozenset[str]:
    selected = frozenset(current or ())
    if option in selected:
        return selected - {option}
    return selected | {option}


def typed_map_to_json(
    values: Mapping[str, Any],
    definitions: Mapping[str, CustomFieldDefinition] | None = None,
) -> dict[str, Any]:
    definitions = definitions or {}
    payload: dict[str, Any] = {}
    for name, value in values.items():
        definition = definitions.get(name)
        if definition is not None:
            payload[name] = to_wire(definition.field_type, value)
        elif isinstance(value, (set, frozenset)):
            payload[name] = sorted(value)
        else:
            payload[name] = to_jsonable_python(value)
    return payload


def save_custom_field_values(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID,
    raw_values: Mapping[str, Any],
    actor: str | None = None,
    partial: bool = False,
) -> dict[str, Any]:
    """Bind and persist a submission for one entity, returning its stored typed values.

    Raises :class:`EntityNotFoundError` when the owning instance is unknown and
    :class:`CustomFieldValidationError` carrying every field failure when any
    field does not bind. Value rows and the entity's cached JSON copy are written
    in the same transaction.
    """
    entity_type = CustomFieldEntityType(entity_type)
    if not entity_exists(db, entity_type, entity_id):
        raise EntityNotFoundError(entity_type, entity_id)

    result = to_typed_map(db, entity_type, raw_values, partial=partial)
    if result.errors:
        logger.info(
            "Rejected custom field values for %s %s: %s",
            entity_type.value,
            entity_id,
            ", ".join(sorted(result.errors)),
        )
        raise CustomFieldValidationError(result.errors)

    try:
        set_values(db, entity_type, entity_id, result.values, actor=actor, commit=False)
        stored = get_values(db, entity_type, entity_id)
        refresh_entity_cache(
            db,
            entity_type,
            entity_id,
            typed_map_to_json(stored, definitions_by_name(db, entity_type)),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return stored


def apply_toggles(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID,
    toggles: Iterable[Any],
    actor: str | None = None,
) -> dict[str, Any]:
    """Replay multi-select toggles against stored selections and save the result.

    ``toggles`` items expose ``name`` and ``option``. Toggling the same option
    twice restores the original selection.
    """
    definitions = definitions_by_name(db, entity_type)
    current = get_values(db, entity_type, entity_id)
    changed: dict[str, Any] = {}
    errors: dict[str, FieldError] = {}

    for toggle in toggles:
        definition = definitions.get(toggle.name)
        if definition is None:
            continue
        if definition.field_type != CustomFieldType.SELECT_MULTI_CHECKBOX.value:
            errors[toggle.name] = ValidationError(
                f"{definition.label} does not support option toggles", toggle.name
            )
            continue
        selection = changed.get(toggle.name, current.get(toggle.name))
        changed[toggle.name] = toggle_option(selection, toggle.option)

    if errors:
        raise CustomFieldValidationError(errors)
    # An emptied selection is sent as an empty list, which clears optional fields.
    raw = {name: sorted(selection) for name, selection in changed.items()}
    return save_custom_field_values(db, entity_type, entity_id, raw, actor=actor, partial=True)


__all__ = [
    "BindingResult",
    "FieldBinding",
    "apply_toggles",
    "bind_field",
    "bind_values",
    "is_absent",
    "raw_map_values",
    "save_custom_field_values",
    "to_raw_map",
    "to_typed_map",
    "toggle_option",
    "typed_map_to_json",
]
