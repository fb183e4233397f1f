"""Administrator-configured validation rules for custom field values.

Rules are stored on a definition as a JSON object, e.g.
``{"minLength": 2, "maxLength": 40, "pattern": "^[A-Z]"}`` or
``{"min": 0, "max": 10, "decimalPlaces": 2}``.
"""
from __future__ import annotations

import posixpath
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from app.constants.custom_fields import CustomFieldType
from app.services.custom_field_errors import InvalidSpecError

LENGTH_RULES = ("minLength", "maxLength")
BOUND_RULES = ("min", "max")
DATE_RULES = ("minDate", "maxDate")
SELECTION_RULES = ("minSelections", "maxSelections")
RULE_KEYS = frozenset(
    LENGTH_RULES + BOUND_RULES + DATE_RULES + SELECTION_RULES
    + ("pattern", "decimalPlaces", "allowedExtensions")
)


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidOperation
    return Decimal(str(value))


def _as_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError
    return value


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)


def validate_rules_spec(rules: Mapping[str, Any] | None) -> None:
    """Raise :class:`InvalidSpecError` when a rule set cannot be interpreted."""
    if rules is None:
        return
    if not isinstance(rules, Mapping):
        raise InvalidSpecError("Validation rules must be an object")

    unknown = sorted(set(rules) - RULE_KEYS)
    if unknown:
        raise InvalidSpecError(f"Unknown validation rules: {', '.join(unknown)}")

    try:
        for key in LENGTH_RULES + SELECTION_RULES + ("decimalPlaces",):
            if rules.get(key) is not None:
                _as_count(rules[key])
    except ValueError:
        raise InvalidSpecError(f"Validation rule '{key}' must be a non-negative integer") from None

    try:
        bounds = {key: _as_decimal(rules[key]) for key in BOUND_RULES if rules.get(key) is not None}
    except InvalidOperation:
        raise InvalidSpecError("Validation rules 'min' and 'max' must be numbers") from None
    if len(bounds) == 2 and bounds["min"] > bounds["max"]:
        raise InvalidSpecError("Validation rule 'min' must not exceed 'max'")

    try:
        dates = {key: _as_datetime(rules[key]) for key in DATE_RULES if rules.get(key)}
    except ValueError:
        raise InvalidSpecError("Validation rules 'minDate' and 'maxDate' must be ISO dates") from None
    if len(dates) == 2 and dates["minDate"] > dates["maxDate"]:
        raise InvalidSpecError("Validation rule 'minDate' must not be after 'maxDate'")

    for low, high in (LENGTH_RULES, SELECTION_RULES):
        if rules.get(low) is not None and rules.get(high) is not None and rules[low] > rules[high]:
            raise InvalidSpecError(f"Validation rule '{low}' must not exceed '{high}'")

    pattern = rules.get("pattern")
    if pattern is not None:
        if not isinstance(pattern, str):
            raise InvalidSpecError("Validation rule 'pattern' must be a string")
        try:
            re.compile(pattern)
        except re.error as exc:
            raise InvalidSpecError(f"Invalid regex pattern: {exc}") from None

    extensions = rules.get("allowedExtensions")
    if extensions is not None and (
        not isinstance(extensions, list) or not all(isinstance(item, str) for item in extensions)
    ):
        raise InvalidSpecError("Validation rule 'allowedExtensions' must be a list of strings")


def _check_length(value: str, rules: Mapping[str, Any]) -> str | None:
    min_length = rules.get("minLength")
    max_length = rules.get("maxLength")
    if min_length and len(value) < min_length:
        return f"Must be at least {min_length} characters long"
    if max_length and len(value) > max_length:
        return f"Must not exceed {max_length} characters"
    pattern = rules.get("pattern")
    if pattern and not re.search(pattern, value):
        return "Invalid format"
    return None


def _check_bounds(value: int | Decimal, rules: Mapping[str, Any]) -> str | None:
    minimum = rules.get("min")
    maximum = rules.get("max")
    if minimum is not None and value < _as_decimal(minimum):
        return f"Must be at least {minimum}"
    if maximum is not None and value > _as_decimal(maximum):
        return f"Must not exceed {maximum}"
    places = rules.get("decimalPlaces")
    if places is not None and isinstance(value, Decimal):
        exponent = value.normalize().as_tuple().exponent
        if isinstance(exponent, int) and -exponent > places:
            return f"Must not have more than {places} decimal places"
    return None


def _check_dates(value: date | datetime, rules: Mapping[str, Any]) -> str | None:
    moment = _as_datetime(value)
    if rules.get("minDate") and moment < _as_datetime(rules["minDate"]):
        return f"Date must be after {rules['minDate']}"
    if rules.get("maxDate") and moment > _as_datetime(rules["maxDate"]):
        return f"Date must be before {rules['maxDate']}"
    return None


def _check_selections(value: frozenset[str], rules: Mapping[str, Any]) -> str | None:
    minimum = rules.get("minSelections")
    maximum = rules.get("maxSelections")
    if minimum is not None and len(value) < minimum:
        return f"Select at least {minimum} options"
    if maximum is not None and len(value) > maximum:
        return f"Select at most {maximum} options"
    return None


def _check_extension(value: Mapping[str, str], rules: Mapping[str, Any]) -> str | None:
    allowed = [item.lower().lstrip(".") for item in rules.get("allowedExtensions") or []]
    if not allowed:
        return None
    extension = posixpath.splitext(value.get("name") or "")[1].lstrip(".").lower()
    if extension not in allowed:
        return f"File type must be one of: {', '.join(allowed)}"
    return None


def apply_rules(field_type: CustomFieldType | str, value: Any, rules: Mapping[str, Any] | None) -> str | None:
    """Return the first rule violation message for a typed value, or ``None``."""
    if not rules or value is None:
        return None

    field_type = CustomFieldType(getattr(field_type, "value", field_type))
    if isinstance(value, str):
        return _check_length(value, rules)
    if isinstance(value, (int, Decimal)) and not isinstance(value, bool):
        return _check_bounds(value, rules)
    if isinstance(value, (date, datetime)):
        return _check_dates(value, rules)
    if isinstance(value, frozenset):
        return _check_selections(value, rules)
    if field_type in (CustomFieldType.FILE_UPLOAD, CustomFieldType.IMAGE_UPLOAD):
        return _check_extension(value, rules)
    return None


__all__ = ["RULE_KEYS", "apply_rules", "validate_rules_spec"]
