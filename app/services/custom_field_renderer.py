"""Form controls, read-only displays and form validation state for custom fields."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from app.constants.custom_fields import CustomFieldEntityType, CustomFieldType
from app.models import CustomFieldDefinition
from app.services.custom_field_binder import bind_field, toggle_option
from app.services.custom_field_definitions import list_definitions
from app.services.custom_field_errors import FieldError
from app.services.custom_field_types import format_value, get_handler, to_wire
from app.services.custom_field_values import default_value_for, get_values

_PHONE_STRIP = re.compile(r"[^\d+]")

_LINK_SCHEMES = {
    CustomFieldType.EMAIL: "mailto:",
    CustomFieldType.PHONE: "tel:",
}


def render_control(definition: CustomFieldDefinition, value: Any = None) -> dict[str, Any]:
    handler = get_handler(definition.field_type)
    rules = definition.validation_rules or {}
    control = {
        "name": definition.name,
        "label": definition.label,
        "field_type": CustomFieldType(definition.field_type).value,
        "required": definition.is_required,
        "placeholder": definition.placeholder_text,
        "help_text": definition.help_text,
        **handler.render(definition),
        "value": to_wire(definition.field_type, value),
    }
    for key in ("min", "max"):
        if rules.get(key) is not None:
            control[key] = rules[key]
    if rules.get("maxLength") is not None:
        control["max_length"] = rules["maxLength"]
    return control


def render_display(definition: CustomFieldDefinition, value: Any = None) -> dict[str, Any]:
    field_type = CustomFieldType(definition.field_type)
    display = {
        "name": definition.name,
        "label": definition.label,
        "kind": "text",
        "text": format_value(field_type, value, definition),
    }
    if value is None:
        display["kind"] = "empty"
    elif field_type == CustomFieldType.SELECT_MULTI_CHECKBOX:
        display["kind"] = "tags"
        display["tags"] = get_handler(field_type).ordered(value, definition)
    elif field_type in _LINK_SCHEMES:
        target = _PHONE_STRIP.sub("", value) if field_type == CustomFieldType.PHONE else value
        display.update(kind="link", href=f"{_LINK_SCHEMES[field_type]}{target}")
    elif field_type == CustomFieldType.URL:
        display.update(kind="link", href=value)
    elif field_type in (CustomFieldType.FILE_UPLOAD, CustomFieldType.IMAGE_UPLOAD):
        display.update(kind="link", href=value["url"])
    return display


class FieldStatus(str, Enum):
    PRISTINE = "pristine"
    DIRTY = "dirty"
    VALID = "valid"
    INVALID = "invalid"


@dataclass
class FieldState:
    definition: CustomFieldDefinition
    raw: Any = None
    value: Any = None
    status: FieldStatus = FieldStatus.PRISTINE
    error: FieldError | None = None

    @property
    def name(self) -> str:
        return self.definition.name

    def validate(self) -> None:
        binding = bind_field(self.definition, self.raw, present=True)
        self.error = binding.error
        if binding.error is not None:
            self.value = None
            self.status = FieldStatus.INVALID
        else:
            self.value = binding.value
            self.status = FieldStatus.VALID


class FormState:
    """Validation state of one custom field form.

    Each field starts ``pristine``, becomes ``dirty`` on input and is then
    validated to ``valid`` or ``invalid``. Any change re-validates every field
    touched so far. The form is valid when every required field is ``valid``
    and no field is ``invalid``.
    """

    def __init__(
        self,
        definitions: Iterable[CustomFieldDefinition],
        initial_values: Mapping[str, Any] | None = None,
    ):
        initial_values = initial_values or {}
        self.fields: dict[str, FieldState] = {}
        for definition in definitions:
            value = initial_values.get(definition.name)
            self.fields[definition.name] = FieldState(
                definition=definition,
                raw=to_wire(definition.field_type, value),
                value=value,
            )

    def _field(self, name: str) -> FieldState:
        try:
            return self.fields[name]
        except KeyError:
            raise KeyError(f"Unknown custom field: {name}") from None

    def _revalidate(self) -> None:
        for state in self.fields.values():
            if state.status is not FieldStatus.PRISTINE:
                state.validate()

    def set_value(self, name: str, raw: Any) -> FieldState:
        state = self._field(name)
        state.raw = raw
        state.status = FieldStatus.DIRTY
        self._revalidate()
        return state

    def toggle(self, name: str, option: str) -> FieldState:
        state = self._field(name)
        if CustomFieldType(state.definition.field_type) != CustomFieldType.SELECT_MULTI_CHECKBOX:
            raise ValueError(f"Custom field {name} is not a multi-select field")
        current = state.value
        if state.status is FieldStatus.INVALID:
            try:
                current = get_handler(state.definition.field_type).coerce(state.raw)
            except FieldError:
                current = None
        return self.set_value(name, sorted(toggle_option(current, option)))

    def validate_all(self) -> bool:
        for state in self.fields.values():
            state.validate()
        return self.is_valid

    @property
    def is_valid(self) -> bool:
        for state in self.fields.values():
            if state.status is FieldStatus.INVALID:
                return False
            if state.definition.is_required and state.status is not FieldStatus.VALID:
                return False
        return True

    @property
    def states(self) -> dict[str, str]:
        return {name: state.status.value for name, state in self.fields.items()}

    @property
    def errors(self) -> dict[str, str]:
        return {
            name: state.error.message
            for name, state in self.fields.items()
            if state.error is not None
        }

    @property
    def typed_values(self) -> dict[str, Any]:
        values = {}
        for name, state in self.fields.items():
            if state.status is FieldStatus.VALID:
                values[name] = state.value
            elif state.status is FieldStatus.PRISTINE and state.value is not None:
                values[name] = state.value
        return values


def build_form(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID | None = None,
) -> list[dict[str, Any]]:
    """Controls for every active field of ``entity_type`` in display order."""
    definitions = list_definitions(db, entity_type)
    if entity_id is not None:
        values = get_values(db, entity_type, entity_id)
    else:
        values = {definition.name: default_value_for(definition) for definition in definitions}
    return [render_control(definition, values.get(definition.name)) for definition in definitions]


def build_display(
    db: Session,
    entity_type: CustomFieldEntityType | str,
    entity_id: UUID,
    include_inactive: bool = False,
) -> list[dict[str, Any]]:
    definitions = list_definitions(db, entity_type, include_inactive=include_inactive)
    values = get_values(db, entity_type, entity_id, include_inactive=include_inactive)
    return [render_display(definition, values.get(definition.name)) for definition in definitions]


__all__ = [
    "FieldState",
    "FieldStatus",
    "FormState",
    "build_display",
    "build_form",
    "render_control",
    "render_display",
]
