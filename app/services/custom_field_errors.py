"""Error taxonomy for the custom field engine.

Store-level errors (:class:`DuplicateNameError`, :class:`InvalidSpecError`,
:class:`NotFoundError`) are raised and end the call. Field-level errors
(:class:`CoercionError`, :class:`RequiredFieldError`, :class:`ValidationError`)
are collected by the binder into an error map; only the write path wraps the
whole map in a single :class:`CustomFieldValidationError`.
"""
from __future__ import annotations

from typing import Any, Mapping


class CustomFieldError(Exception):
    """Base class for every error raised by the custom field engine."""


class DuplicateNameError(CustomFieldError):
    def __init__(self, entity_type: str, name: str):
        self.entity_type = str(getattr(entity_type, "value", entity_type))
        self.name = name
        super().__init__(
            f"Custom field with name '{name}' already exists for entity type '{self.entity_type}'"
        )


class InvalidSpecError(CustomFieldError):
    pass


class NotFoundError(CustomFieldError):
    pass


class EntityNotFoundError(NotFoundError):
    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = str(getattr(entity_type, "value", entity_type))
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} '{entity_id}' not found")


class FieldError(CustomFieldError):
    """A failure scoped to a single field; carried as a value, not raised upward."""

    code = "invalid"

    def __init__(self, message: str, field_name: str | None = None):
        super().__init__(message)
        self.message = message
        self.field_name = field_name

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class CoercionError(FieldError):
    code = "coercion"

    def __init__(
        self,
        raw_value: Any,
        expected_type: str,
        message: str | None = None,
        field_name: str | None = None,
    ):
        self.raw_value = raw_value
        self.expected_type = str(getattr(expected_type, "value", expected_type))
        super().__init__(
            message or f"Value {raw_value!r} is not a valid {self.expected_type}",
            field_name=field_name,
        )


class RequiredFieldError(FieldError):
    code = "required"


class ValidationError(FieldError):
    code = "validation"


class CustomFieldValidationError(CustomFieldError):
    """Raised by the write path when one or more fields failed to bind."""

    def __init__(self, errors: Mapping[str, FieldError]):
        self.errors = dict(errors)
        names = ", ".join(sorted(self.errors))
        super().__init__(f"Custom field validation failed: {names}")

    def messages(self) -> dict[str, str]:
        return {name: error.message for name, error in self.errors.items()}


__all__ = [
    "CoercionError",
    "CustomFieldError",
    "CustomFieldValidationError",
    "DuplicateNameError",
    "EntityNotFoundError",
    "FieldError",
    "InvalidSpecError",
    "NotFoundError",
    "RequiredFieldError",
    "ValidationError",
]
