"""Field type registry for custom fields.

Each supported field type is a small handler object that knows which storage
slot it writes to, how to coerce a raw submitted value into its typed form,
how to format the typed value for display and which form control renders it.
Adding a field type means adding one handler and registering it here.
"""
from __future__ import annotations

import json
import posixpath
import re
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping
from urllib.parse import urlparse

from app.config import get_settings
from app.constants.custom_fields import REFERENCE_TARGETS, CustomFieldType, ValueSlot
from app.services.custom_field_errors import CoercionError

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_TRUE_STRINGS = {"true", "1", "yes", "y", "on"}
_FALSE_STRINGS = {"false", "0", "no", "n", "off"}
_STORAGE_EPOCH = date(1970, 1, 1)

# custom_field_values.decimal_value is NUMERIC(15, 4)
DECIMAL_SCALE = 4
DECIMAL_LIMIT = Decimal(10) ** (15 - DECIMAL_SCALE)
BIGINT_LIMIT = 2**63 - 1

DEFAULT_IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "svg", "bmp")


def _field_type_value(field_type: Any) -> str:
    return str(getattr(field_type, "value", field_type))


def _decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def _plain_decimal(value: Decimal) -> str:
    normalized = value.normalize()
    if normalized == normalized.to_integral():
        normalized = normalized.quantize(Decimal(1))
    return format(normalized, "f")


class FieldTypeHandler:
    """Strategy for one field type: storage slot, coercion, formatting and control."""

    field_type: CustomFieldType
    slot: ValueSlot = ValueSlot.STRING
    control: str = "text"
    input_type: str | None = "text"

    def coerce(self, raw: Any) -> Any:
        raise NotImplementedError

    def check(self, value: Any, definition: Any = None) -> str | None:
        """Return a message when a typed value breaks a constraint built into the type."""
        return None

    def to_storage(self, value: Any) -> Any:
        return value

    def from_storage(self, stored: Any) -> Any:
        return stored

    def to_wire(self, value: Any) -> Any:
        return value

    def format(self, value: Any, definition: Any = None) -> str:
        return str(value)

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {"control": self.control, "input_type": self.input_type}

    def _fail(self, raw: Any, message: str | None = None) -> CoercionError:
        return CoercionError(raw, self.field_type, message)


class TextHandler(FieldTypeHandler):
    max_length: int | None = None

    def __init__(self, field_type: CustomFieldType, control: str = "text", max_length: int | None = None):
        self.field_type = field_type
        self.control = control
        self.input_type = "text" if control == "text" else None
        self.max_length = max_length

    def coerce(self, raw: Any) -> str:
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float, Decimal)):
            raise self._fail(raw, "Must be text")
        return str(raw)

    def check(self, value: str, definition: Any = None) -> str | None:
        if self.max_length and len(value) > self.max_length:
            return f"Must not exceed {self.max_length} characters"
        return None

    def render(self, definition: Any = None) -> dict[str, Any]:
        attributes = super().render(definition)
        if self.max_length:
            attributes["max_length"] = self.max_length
        if self.control == "textarea":
            attributes["rows"] = 3
        return attributes


class EmailHandler(TextHandler):
    def __init__(self):
        super().__init__(CustomFieldType.EMAIL)
        self.input_type = "email"

    def coerce(self, raw: Any) -> str:
        value = super().coerce(raw).strip()
        if not _EMAIL_PATTERN.match(value):
            raise self._fail(raw, "Must be a valid email address")
        return value


class PhoneHandler(TextHandler):
    def __init__(self):
        super().__init__(CustomFieldType.PHONE)
        self.input_type = "tel"

    def coerce(self, raw: Any) -> str:
        value = super().coerce(raw).strip()
        if not _PHONE_PATTERN.match(_PHONE_SEPARATORS.sub("", value)):
            raise self._fail(raw, "Must be a valid phone number")
        return value


class UrlHandler(TextHandler):
    def __init__(self):
        super().__init__(CustomFieldType.URL)
        self.input_type = "url"

    def coerce(self, raw: Any) -> str:
        value = super().coerce(raw).strip()
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.netloc:
            raise self._fail(raw, "Must be a valid URL")
        return value


class IntegerHandler(FieldTypeHandler):
    field_type = CustomFieldType.NUMBER_INTEGER
    slot = ValueSlot.INTEGER
    control = "number"
    input_type = "number"

    def coerce(self, raw: Any) -> int:
        if isinstance(raw, bool):
            raise self._fail(raw, "Must be a valid integer")
        if isinstance(raw, int):
            return raw
        if isinstance(raw, (float, Decimal)):
            try:
                value = int(raw)
            except (ValueError, OverflowError):
                raise self._fail(raw, "Must be a valid integer") from None
            if value != raw:
                raise self._fail(raw, "Must be a valid integer")
            return value
        if isinstance(raw, str) and _INTEGER_PATTERN.match(raw.strip()):
            return int(raw.strip())
        raise self._fail(raw, "Must be a valid integer")

    def check(self, value: int, definition: Any = None) -> str | None:
        if abs(value) > BIGINT_LIMIT:
            return f"Must be between {-BIGINT_LIMIT} and {BIGINT_LIMIT}"
        return None

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {**super().render(definition), "step": "1"}


class DecimalHandler(FieldTypeHandler):
    slot = ValueSlot.DECIMAL
    control = "number"
    input_type = "number"
    step = "0.01"

    def __init__(self, field_type: CustomFieldType = CustomFieldType.NUMBER_DECIMAL):
        self.field_type = field_type

    def coerce(self, raw: Any) -> Decimal:
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float, Decimal)):
            raise self._fail(raw, "Must be a valid number")
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            raise self._fail(raw, "Must be a valid number") from None
        if not value.is_finite():
            raise self._fail(raw, "Must be a valid number")
        return value

    def check(self, value: Decimal, definition: Any = None) -> str | None:
        if abs(value) >= DECIMAL_LIMIT:
            return f"Must be smaller than {int(DECIMAL_LIMIT):,}"
        if _decimal_places(value) > DECIMAL_SCALE:
            return f"Must not have more than {DECIMAL_SCALE} decimal places"
        return None

    def from_storage(self, stored: Any) -> Decimal | None:
        return None if stored is None else Decimal(str(stored))

    def to_wire(self, value: Decimal) -> str:
        return _plain_decimal(value)

    def format(self, value: Decimal, definition: Any = None) -> str:
        return _plain_decimal(value)

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {**super().render(definition), "step": self.step}


class CurrencyHandler(DecimalHandler):
    def __init__(self):
        super().__init__(CustomFieldType.CURRENCY)

    def format(self, value: Decimal, definition: Any = None) -> str:
        code = get_settings().custom_field_currency_code
        return f"{code} {value:,.2f}"

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {
            **super().render(definition),
            "min": 0,
            "prefix": get_settings().custom_field_currency_code,
        }


class PercentageHandler(DecimalHandler):
    step = "0.1"

    def __init__(self):
        super().__init__(CustomFieldType.PERCENTAGE)

    def check(self, value: Decimal, definition: Any = None) -> str | None:
        if value < 0 or value > 100:
            return "Percentage must be between 0 and 100"
        return super().check(value, definition)

    def format(self, value: Decimal, definition: Any = None) -> str:
        return f"{_plain_decimal(value)}%"

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {**super().render(definition), "min": 0, "max": 100, "suffix": "%"}


class DateHandler(FieldTypeHandler):
    field_type = CustomFieldType.DATE
    slot = ValueSlot.DATE
    control = "date"
    input_type = "date"

    def coerce(self, raw: Any) -> date:
        if isinstance(raw, datetime):
            return raw.date()
        if isinstance(raw, date):
            return raw
        if isinstance(raw, str):
            text = raw.strip()
            try:
                return date.fromisoformat(text)
            except ValueError:
                pass
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            except ValueError:
                pass
        raise self._fail(raw, "Must be a valid date")

    def to_storage(self, value: date) -> datetime:
        return datetime.combine(value, time.min)

    def from_storage(self, stored: Any) -> date | None:
        if not isinstance(stored, datetime):
            return stored
        if stored.time() != time.min:
            raise self._fail(stored, "Stored value is not a date")
        return stored.date()

    def to_wire(self, value: date) -> str:
        return value.isoformat()

    def format(self, value: date, definition: Any = None) -> str:
        return value.strftime(get_settings().custom_field_date_format)


class DateTimeHandler(FieldTypeHandler):
    field_type = CustomFieldType.DATETIME
    slot = ValueSlot.DATE
    control = "datetime"
    input_type = "datetime-local"

    def coerce(self, raw: Any) -> datetime:
        if isinstance(raw, datetime):
            value = raw
        elif isinstance(raw, date):
            value = datetime.combine(raw, time.min)
        elif isinstance(raw, str):
            try:
                value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
            except ValueError:
                raise self._fail(raw, "Must be a valid date and time") from None
        else:
            raise self._fail(raw, "Must be a valid date and time")
        # Stored without a zone; aware inputs are normalised to UTC.
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def to_wire(self, value: datetime) -> str:
        return value.isoformat()

    def format(self, value: datetime, definition: Any = None) -> str:
        return value.strftime(get_settings().custom_field_datetime_format)


class TimeHandler(FieldTypeHandler):
    field_type = CustomFieldType.TIME
    slot = ValueSlot.DATE
    control = "time"
    input_type = "time"

    def coerce(self, raw: Any) -> time:
        if isinstance(raw, datetime):
            return raw.time()
        if isinstance(raw, time):
            return raw.replace(tzinfo=None)
        if isinstance(raw, str):
            try:
                return time.fromisoformat(raw.strip()).replace(tzinfo=None)
            except ValueError:
                pass
        raise self._fail(raw, "Must be a valid time")

    def to_storage(self, value: time) -> datetime:
        return datetime.combine(_STORAGE_EPOCH, value)

    def from_storage(self, stored: Any) -> time | None:
        if not isinstance(stored, datetime):
            return stored
        if stored.date() != _STORAGE_EPOCH:
            raise self._fail(stored, "Stored value is not a time")
        return stored.time()

    def to_wire(self, value: time) -> str:
        return value.isoformat()

    def format(self, value: time, definition: Any = None) -> str:
        return value.strftime(get_settings().custom_field_time_format)


class BooleanHandler(FieldTypeHandler):
    field_type = CustomFieldType.BOOLEAN
    slot = ValueSlot.BOOLEAN
    control = "tri_state"
    input_type = None

    def coerce(self, raw: Any) -> bool:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, int) and raw in (0, 1):
            return bool(raw)
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise self._fail(raw, "Must be a valid boolean value")

    def format(self, value: bool, definition: Any = None) -> str:
        return "Yes" if value else "No"

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {
            **super().render(definition),
            "options": [
                {"value": "", "label": "Select..."},
                {"value": "true", "label": "Yes"},
                {"value": "false", "label": "No"},
            ],
        }


def _options_of(definition: Any) -> list[str]:
    return list(getattr(definition, "select_options", None) or [])


class SingleSelectHandler(FieldTypeHandler):
    field_type = CustomFieldType.SELECT_SINGLE_DROPDOWN
    control = "select"
    input_type = None

    def coerce(self, raw: Any) -> str:
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float, Decimal)):
            raise self._fail(raw, "Must be a single option")
        return str(raw).strip()

    def check(self, value: str, definition: Any = None) -> str | None:
        options = _options_of(definition)
        if definition is not None and value not in options:
            return f"Must be one of: {', '.join(options)}"
        return None

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {**super().render(definition), "options": _options_of(definition)}


class MultiSelectHandler(FieldTypeHandler):
    """Typed value is a frozenset of option strings."""

    field_type = CustomFieldType.SELECT_MULTI_CHECKBOX
    slot = ValueSlot.JSON
    control = "checkbox_group"
    input_type = None

    def coerce(self, raw: Any) -> frozenset[str]:
        items: Iterable[Any]
        if isinstance(raw, str):
            text = raw.strip()
            if text.startswith("["):
                try:
                    items = json.loads(text)
                except json.JSONDecodeError:
                    raise self._fail(raw, "Must be a list of options") from None
                if not isinstance(items, list):
                    raise self._fail(raw, "Must be a list of options")
            else:
                items = [text]
        elif isinstance(raw, (list, tuple, set, frozenset)):
            items = raw
        else:
            raise self._fail(raw, "Must be a list of options")

        values = set()
        for item in items:
            if isinstance(item, bool) or not isinstance(item, (str, int)):
                raise self._fail(raw, "Must be a list of options")
            values.add(str(item).strip())
        return frozenset(values)

    def check(self, value: frozenset[str], definition: Any = None) -> str | None:
        if definition is None:
            return None
        options = _options_of(definition)
        for item in sorted(value):
            if item not in options:
                return f"Invalid option '{item}'. Must be one of: {', '.join(options)}"
        return None

    def to_storage(self, value: frozenset[str]) -> list[str]:
        return sorted(value)

    def from_storage(self, stored: Any) -> frozenset[str] | None:
        if stored is None:
            return None
        if not isinstance(stored, list):
            raise self._fail(stored, "Stored value is not a list of options")
        return frozenset(stored)

    def to_wire(self, value: frozenset[str]) -> list[str]:
        return sorted(value)

    def ordered(self, value: Iterable[str], definition: Any = None) -> list[str]:
        options = _options_of(definition)
        position = {option: index for index, option in enumerate(options)}
        return sorted(value, key=lambda item: (position.get(item, len(options)), item))

    def format(self, value: frozenset[str], definition: Any = None) -> str:
        return ", ".join(self.ordered(value, definition))

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {**super().render(definition), "options": _options_of(definition)}


class ReferenceHandler(FieldTypeHandler):
    control = "reference"
    input_type = None

    def __init__(self, field_type: CustomFieldType):
        self.field_type = field_type

    def coerce(self, raw: Any) -> uuid.UUID:
        if isinstance(raw, uuid.UUID):
            return raw
        if isinstance(raw, str):
            try:
                return uuid.UUID(raw.strip())
            except ValueError:
                pass
        raise self._fail(raw, "Must be a valid identifier")

    def to_storage(self, value: uuid.UUID) -> str:
        return str(value)

    def from_storage(self, stored: Any) -> uuid.UUID | None:
        if stored is None:
            return None
        try:
            return uuid.UUID(str(stored))
        except ValueError:
            return None

    def to_wire(self, value: uuid.UUID) -> str:
        return str(value)

    def render(self, definition: Any = None) -> dict[str, Any]:
        return {**super().render(definition), "target": REFERENCE_TARGETS[self.field_type].value}


class FileHandler(FieldTypeHandler):
    """Typed value is ``{"url": str, "name": str}`` pointing at an uploaded file."""

    slot = ValueSlot.JSON
    control = "file"
    input_type = "file"

    def __init__(self, field_type: CustomFieldType, accept: str | None = None):
        self.field_type = field_type
        self.accept = accept

    def coerce(self, raw: Any) -> dict[str, str]:
        if isinstance(raw, str) and raw.strip():
            url, name = raw.strip(), None
        elif isinstance(raw, Mapping) and isinstance(raw.get("url"), str) and raw["url"].strip():
            url = raw["url"].strip()
            name = raw.get("name")
            if name is not None and not isinstance(name, str):
                raise self._fail(raw, "File name must be text")
        else:
            raise self._fail(raw, "Must be a file reference")
        return {"url": url, "name": name or posixpath.basename(urlparse(url).path) or url}

    def check(self, value: dict[str, str], definition: Any = None) -> str | None:
        if self.field_type != CustomFieldType.IMAGE_UPLOAD:
            return None
        rules = getattr(definition, "validation_rules", None) or {}
        if rules.get("allowedExtensions"):
            return None
        extension = posixpath.splitext(value["name"])[1].lstrip(".").lower()
        if extension not in DEFAULT_IMAGE_EXTENSIONS:
            return f"Must be an image ({', '.join(DEFAULT_IMAGE_EXTENSIONS)})"
        return None

    def to_wire(self, value: dict[str, str]) -> dict[str, str]:
        return dict(value)

    def format(self, value: dict[str, str], definition: Any = None) -> str:
        return value.get("name") or value.get("url", "")

    def render(self, definition: Any = None) -> dict[str, Any]:
        attributes = super().render(definition)
        if self.accept:
            attributes["accept"] = self.accept
        return attributes


class JsonHandler(FieldTypeHandler):
    field_type = CustomFieldType.JSON_DATA
    slot = ValueSlot.JSON
    control = "json"
    input_type = None

    def coerce(self, raw: Any) -> Any:
        if isinstance(raw, str):
            try:
                return json.loads(raw)
            except json.JSONDecodeError:
                raise self._fail(raw, "Must be valid JSON") from None
        try:
            json.dumps(raw)
        except (TypeError, ValueError):
            raise self._fail(raw, "Must be valid JSON") from None
        return raw

    def format(self, value: Any, definition: Any = None) -> str:
        return json.dumps(value, sort_keys=True, separators=(",", ":"))


_HANDLERS: dict[CustomFieldType, FieldTypeHandler] = {}


def register_handler(handler: FieldTypeHandler) -> FieldTypeHandler:
    _HANDLERS[CustomFieldType(handler.field_type)] = handler
    return handler


for _handler in (
    TextHandler(CustomFieldType.TEXT_SINGLE_LINE, max_length=255),
    TextHandler(CustomFieldType.TEXT_MULTI_LINE, control="textarea", max_length=1000),
    TextHandler(CustomFieldType.TEXT_RICH, control="rich_text"),
    IntegerHandler(),
    DecimalHandler(),
    DateHandler(),
    DateTimeHandler(),
    TimeHandler(),
    BooleanHandler(),
    SingleSelectHandler(),
    MultiSelectHandler(),
    EmailHandler(),
    PhoneHandler(),
    UrlHandler(),
    ReferenceHandler(CustomFieldType.USER_REFERENCE),
    ReferenceHandler(CustomFieldType.CLIENT_REFERENCE),
    FileHandler(CustomFieldType.FILE_UPLOAD),
    FileHandler(CustomFieldType.IMAGE_UPLOAD, accept="image/*"),
    JsonHandler(),
    CurrencyHandler(),
    PercentageHandler(),
):
    register_handler(_handler)


def get_handler(field_type: CustomFieldType | str) -> FieldTypeHandler:
    try:
        return _HANDLERS[CustomFieldType(_field_type_value(field_type))]
    except (KeyError, ValueError):
        raise KeyError(f"Unsupported custom field type: {field_type}") from None


def slot_for(field_type: CustomFieldType | str) -> ValueSlot:
    return get_handler(field_type).slot


def coerce(field_type: CustomFieldType | str, raw_value: Any) -> Any:
    return get_handler(field_type).coerce(raw_value)


def format_value(field_type: CustomFieldType | str, value: Any, definition: Any = None) -> str:
    if value is None:
        return get_settings().custom_field_empty_display
    return get_handler(field_type).format(value, definition)


def to_wire(field_type: CustomFieldType | str, value: Any) -> Any:
    return None if value is None else get_handler(field_type).to_wire(value)


def from_wire(field_type: CustomFieldType | str, value: Any) -> Any:
    """Inverse of :func:`to_wire`; typed values pass through unchanged."""
    if value is None:
        return None
    handler = get_handler(field_type)
    if handler.field_type == CustomFieldType.JSON_DATA:
        return value
    return handler.coerce(value)


__all__ = [
    "DECIMAL_SCALE",
    "FieldTypeHandler",
    "coerce",
    "format_value",
    "from_wire",
    "get_handler",
    "register_handler",
    "slot_for",
    "to_wire",
]
