from datetime import date, datetime
from decimal import Decimal

import pytest

from app.services.custom_field_errors import InvalidSpecError
from app.services.custom_field_rules import apply_rules, validate_rules_spec


def test_text_rules() -> None:
    rules = {"minLength": 3, "maxLength": 5, "pattern": "^[A-Z]"}
    assert apply_rules("text_single_line", "Abcd", rules) is None
    assert apply_rules("text_single_line", "Ab", rules) == "Must be at least 3 characters long"
    assert apply_rules("text_single_line", "Abcdef", rules) == "Must not exceed 5 characters"
    assert apply_rules("text_single_line", "abcd", rules) == "Invalid format"


def test_numeric_rules() -> None:
    rules = {"min": 1, "max": "10.5", "decimalPlaces": 1}
    assert apply_rules("number_integer", 10, rules) is None
    assert apply_rules("number_integer", 0, rules) == "Must be at least 1"
    assert apply_rules("number_decimal", Decimal("10.6"), rules) == "Must not exceed 10.5"
    assert apply_rules("number_decimal", Decimal("2.25"), rules) == "Must not have more than 1 decimal places"
    assert apply_rules("number_decimal", Decimal("2.50"), rules) is None


def test_date_rules() -> None:
    rules = {"minDate": "2024-01-01", "maxDate": "2024-12-31T23:59:59Z"}
    assert apply_rules("date", date(2024, 6, 1), rules) is None
    assert apply_rules("date", date(2023, 12, 31), rules) == "Date must be after 2024-01-01"
    assert apply_rules("datetime", datetime(2025, 1, 1, 0, 0), rules) is not None


def test_selection_and_extension_rules() -> None:
    assert apply_rules("select_multi_checkbox", frozenset({"a"}), {"minSelections": 2}) == "Select at least 2 options"
    assert apply_rules("select_multi_checkbox", frozenset({"a", "b", "c"}), {"maxSelections": 2}) == "Select at most 2 options"

    rules = {"allowedExtensions": [".pdf", "DOCX"]}
    assert apply_rules("file_upload", {"url": "https://x/a.PDF", "name": "a.PDF"}, rules) is None
    assert apply_rules("file_upload", {"url": "https://x/a.exe", "name": "a.exe"}, rules) == (
        "File type must be one of: pdf, docx"
    )


def test_no_rules_or_no_value_pass() -> None:
    assert apply_rules("number_integer", 5, None) is None
    assert apply_rules("number_integer", None, {"min": 10}) is None
    assert apply_rules("boolean", True, {"min": 10}) is None


@pytest.mark.parametrize(
    "rules",
    [
        ["min"],
        {"unknownRule": 1},
        {"minLength": -1},
        {"maxSelections": True},
        {"min": "ten"},
        {"minLength": 5, "maxLength": 2},
        {"minDate": "tomorrow"},
        {"minDate": "2024-02-01", "maxDate": "2024-01-01"},
        {"pattern": "[unclosed"},
        {"allowedExtensions": "pdf"},
    ],
)
def test_invalid_rule_specs(rules) -> None:
    with pytest.raises(InvalidSpecError):
        validate_rules_spec(rules)


def test_valid_rule_spec() -> None:
    validate_rules_spec(None)
    validate_rules_spec({"min": 0, "max": 100, "decimalPlaces": 2, "pattern": r"^\d+$"})
