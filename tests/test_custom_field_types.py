from datetime import date, datetime, time
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID

import pytest

from app.constants.custom_fields import CustomFieldType, ValueSlot
from app.services.custom_field_errors import CoercionError
from app.services.custom_field_types import (
    coerce,
    format_value,
    from_wire,
    get_handler,
    slot_for,
    to_wire,
)


def test_every_field_type_has_a_handler() -> None:
    for field_type in CustomFieldType:
        assert get_handler(field_type).field_type == field_type
        assert get_handler(field_type.value) is get_handler(field_type)


def test_unknown_field_type_is_rejected() -> None:
    with pytest.raises(KeyError):
        get_handler("hologram")


@pytest.mark.parametrize(
    ("field_type", "slot"),
    [
        (CustomFieldType.TEXT_RICH, ValueSlot.STRING),
        (CustomFieldType.NUMBER_INTEGER, ValueSlot.INTEGER),
        (CustomFieldType.CURRENCY, ValueSlot.DECIMAL),
        (CustomFieldType.BOOLEAN, ValueSlot.BOOLEAN),
        (CustomFieldType.TIME, ValueSlot.DATE),
        (CustomFieldType.SELECT_MULTI_CHECKBOX, ValueSlot.JSON),
        (CustomFieldType.USER_REFERENCE, ValueSlot.STRING),
        (CustomFieldType.IMAGE_UPLOAD, ValueSlot.JSON),
    ],
)
def test_storage_slot_per_type(field_type: CustomFieldType, slot: ValueSlot) -> None:
    assert slot_for(field_type) == slot


def test_integer_coercion_boundary() -> None:
    assert coerce(CustomFieldType.NUMBER_INTEGER, "42") == 42
    assert coerce(CustomFieldType.NUMBER_INTEGER, 7.0) == 7

    for raw in ("abc", "4.5", 4.5, True, None):
        with pytest.raises(CoercionError) as excinfo:
            coerce(CustomFieldType.NUMBER_INTEGER, raw)
        assert excinfo.value.expected_type == "number_integer"


def test_decimal_types() -> None:
    value = coerce(CustomFieldType.NUMBER_DECIMAL, "12.50")
    assert value == Decimal("12.50")
    assert to_wire(CustomFieldType.NUMBER_DECIMAL, value) == "12.5"

    with pytest.raises(CoercionError):
        coerce(CustomFieldType.NUMBER_DECIMAL, "twelve")
    with pytest.raises(CoercionError):
        coerce(CustomFieldType.NUMBER_DECIMAL, "NaN")

    handler = get_handler(CustomFieldType.NUMBER_DECIMAL)
    assert handler.check(Decimal("1.23456")) == "Must not have more than 4 decimal places"
    assert handler.check(Decimal("1.2345")) is None


def test_currency_and_percentage_display() -> None:
    assert format_value(CustomFieldType.CURRENCY, Decimal("1234.5")) == "SAR 1,234.50"
    assert format_value(CustomFieldType.PERCENTAGE, Decimal("12.50")) == "12.5%"

    percentage = get_handler(CustomFieldType.PERCENTAGE)
    assert percentage.check(Decimal("101")) == "Percentage must be between 0 and 100"
    assert percentage.check(Decimal("0")) is None


def test_date_and_time_types() -> None:
    assert coerce(CustomFieldType.DATE, "2024-03-01") == date(2024, 3, 1)
    assert coerce(CustomFieldType.DATETIME, "2024-03-01T10:00:00+02:00") == datetime(2024, 3, 1, 8, 0)
    assert coerce(CustomFieldType.TIME, "09:30") == time(9, 30)

    date_handler = get_handler(CustomFieldType.DATE)
    stored = date_handler.to_storage(date(2024, 3, 1))
    assert stored == datetime(2024, 3, 1, 0, 0)
    assert date_handler.from_storage(stored) == date(2024, 3, 1)

    time_handler = get_handler(CustomFieldType.TIME)
    assert time_handler.from_storage(time_handler.to_storage(time(9, 30))) == time(9, 30)

    with pytest.raises(CoercionError):
        coerce(CustomFieldType.DATE, "03/01/2024")

    assert format_value(CustomFieldType.DATE, date(2024, 3, 1)) == "2024-03-01"
    assert format_value(CustomFieldType.DATETIME, datetime(2024, 3, 1, 8, 5)) == "2024-03-01 08:05"


def test_boolean_coercion_and_display() -> None:
    assert coerce(CustomFieldType.BOOLEAN, "yes") is True
    assert coerce(CustomFieldType.BOOLEAN, 0) is False
    with pytest.raises(CoercionError):
        coerce(CustomFieldType.BOOLEAN, "maybe")

    assert format_value(CustomFieldType.BOOLEAN, False) == "No"
    assert get_handler(CustomFieldType.BOOLEAN).render()["control"] == "tri_state"


def test_text_shapes() -> None:
    assert coerce(CustomFieldType.EMAIL, " ops@example.com ") == "ops@example.com"
    assert coerce(CustomFieldType.PHONE, "+1 (555) 010-2000") == "+1 (555) 010-2000"
    assert coerce(CustomFieldType.URL, "https://example.com/a") == "https://example.com/a"

    for field_type, raw in (
        (CustomFieldType.EMAIL, "not-an-email"),
        (CustomFieldType.PHONE, "call me"),
        (CustomFieldType.URL, "example.com"),
        (CustomFieldType.TEXT_SINGLE_LINE, {"nested": True}),
    ):
        with pytest.raises(CoercionError):
            coerce(field_type, raw)

    single_line = get_handler(CustomFieldType.TEXT_SINGLE_LINE)
    assert single_line.check("x" * 256) == "Must not exceed 255 characters"


def test_select_types() -> None:
    definition = SimpleNamespace(select_options=["low", "medium", "high"], validation_rules=None)

    single = get_handler(CustomFieldType.SELECT_SINGLE_DROPDOWN)
    assert single.check("high", definition) is None
    assert single.check("extreme", definition) == "Must be one of: low, medium, high"

    multi = get_handler(CustomFieldType.SELECT_MULTI_CHECKBOX)
    selected = multi.coerce('["high", "low"]')
    assert selected == frozenset({"high", "low"})
    assert multi.coerce("low") == frozenset({"low"})
    assert multi.to_storage(selected) == ["high", "low"]
    assert multi.format(selected, definition) == "low, high"
    assert "extreme" in multi.check(frozenset({"extreme"}), definition)


def test_reference_file_and_json_types() -> None:
    reference = "0b0c1d8e-5c63-4a4a-9b59-8b2f9d1f4a10"
    assert coerce(CustomFieldType.CLIENT_REFERENCE, reference) == UUID(reference)
    with pytest.raises(CoercionError):
        coerce(CustomFieldType.USER_REFERENCE, "someone")
    assert get_handler(CustomFieldType.USER_REFERENCE).render()["target"] == "user"

    upload = coerce(CustomFieldType.FILE_UPLOAD, "https://files.example.com/docs/report.pdf")
    assert upload == {"url": "https://files.example.com/docs/report.pdf", "name": "report.pdf"}
    image = get_handler(CustomFieldType.IMAGE_UPLOAD)
    assert image.check(upload) is not None
    assert image.check({"url": "https://files.example.com/logo.png", "name": "logo.png"}) is None

    assert coerce(CustomFieldType.JSON_DATA, '{"b": 1, "a": [1, 2]}') == {"b": 1, "a": [1, 2]}
    with pytest.raises(CoercionError):
        coerce(CustomFieldType.JSON_DATA, "{broken")
    assert format_value(CustomFieldType.JSON_DATA, {"b": 1, "a": 2}) == '{"a":2,"b":1}'


def test_empty_values_use_configured_placeholder() -> None:
    assert format_value(CustomFieldType.TEXT_SINGLE_LINE, None) == "Not specified"
    assert to_wire(CustomFieldType.NUMBER_INTEGER, None) is None


def test_wire_values_bind_back_to_typed_values() -> None:
    samples = {
        CustomFieldType.NUMBER_DECIMAL: Decimal("3.25"),
        CustomFieldType.DATE: date(2024, 1, 31),
        CustomFieldType.SELECT_MULTI_CHECKBOX: frozenset({"a", "b"}),
        CustomFieldType.USER_REFERENCE: UUID("0b0c1d8e-5c63-4a4a-9b59-8b2f9d1f4a10"),
        CustomFieldType.JSON_DATA: "plain string",
    }
    for field_type, value in samples.items():
        assert from_wire(field_type, to_wire(field_type, value)) == value
