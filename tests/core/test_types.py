"""Tests for bizframe.core.types module."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from bizframe.core.types import TypeManager


@pytest.fixture
def types():
    return TypeManager()


class TestValueToString:
    def test_none_is_empty(self, types):
        assert types.value_to_string("Number", None, None) == ""

    def test_text(self, types):
        assert types.value_to_string("Text", None, 42) == "42"
        assert types.value_to_string("Unknown", None, "abc") == "abc"

    def test_number(self, types):
        assert types.value_to_string("Number", "%.2f", 3.14159) == "3.14"
        assert types.value_to_string("Number", None, 7) == "7"

    @pytest.mark.parametrize(
        ("fmt", "value", "expected"),
        [
            (None, 1234.5, "$1,234.50"),
            ("€", Decimal("-3"), "-€3.00"),
            ("", 10, "10.00"),
        ],
    )
    def test_currency(self, types, fmt, value, expected):
        assert types.value_to_string("Currency", fmt, value) == expected

    def test_boolean(self, types):
        assert types.value_to_string("Boolean", "Yes|No", True) == "Yes"
        assert types.value_to_string("Boolean", "Yes|No", "0") == "No"
        assert types.value_to_string("Boolean", None, "on") == "1"

    def test_dates(self, types):
        assert types.value_to_string("Date", None, date(2024, 3, 1)) == "2024-03-01"
        assert types.value_to_string("Date", "%d/%m/%Y", date(2024, 3, 1)) == "01/03/2024"
        assert (
            types.value_to_string("Datetime", None, datetime(2024, 3, 1, 9, 5, 0))
            == "2024-03-01 09:05:00"
        )
        assert types.value_to_string("Date", None, "2024-03-01") == "2024-03-01"


class TestStringToValue:
    def test_empty(self, types):
        assert types.string_to_value("Number", None, "  ") is None
        assert types.string_to_value("Date", None, None) is None
        assert types.string_to_value("Text", None, None) == ""

    def test_number(self, types):
        assert types.string_to_value("Number", None, "1,234") == 1234
        assert types.string_to_value("Number", None, "3.5") == 3.5

    def test_number_invalid(self, types):
        with pytest.raises(ValueError):
            types.string_to_value("Number", None, "abc")

    def test_currency(self, types):
        assert types.string_to_value("Currency", None, "$1,234.50") == Decimal("1234.50")

    def test_currency_invalid(self, types):
        with pytest.raises(ValueError, match="Invalid currency"):
            types.string_to_value("Currency", None, "lots")

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("Yes", True), ("No", False), ("true", True), ("0", False)],
    )
    def test_boolean(self, types, text, expected):
        assert types.string_to_value("Boolean", "Yes|No", text) is expected

    def test_dates(self, types):
        assert types.string_to_value("Date", None, "2024-03-01") == date(2024, 3, 1)
        assert types.string_to_value("Datetime", None, "2024-03-01 09:05:00") == datetime(
            2024, 3, 1, 9, 5, 0
        )
