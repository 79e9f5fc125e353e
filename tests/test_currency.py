"""Tests for the BRL currency helpers."""

from decimal import Decimal

import pytest

from finantech.utils.currency import (
    format_cents_input,
    format_csv_amount,
    format_currency,
    format_with_symbol,
    parse_currency,
)


class TestParseCurrency:

    def test_empty_string_is_zero(self):
        assert parse_currency("") == Decimal("0")

    @pytest.mark.parametrize("text,expected", [
        ("100,00", Decimal("100.00")),
        ("1.234,56", Decimal("1234.56")),
        ("10.000,00", Decimal("10000.00")),
        ("1.000.000,99", Decimal("1000000.99")),
        ("999,99", Decimal("999.99")),
        ("0,01", Decimal("0.01")),
    ])
    def test_parses_formatted_values(self, text, expected):
        assert parse_currency(text) == expected

    @pytest.mark.parametrize("text", ["abc", "12abc34", "NaN", "Infinity"])
    def test_invalid_text_is_zero(self, text):
        assert parse_currency(text) == Decimal("0")


class TestFormatCurrency:

    @pytest.mark.parametrize("value,expected", [
        (Decimal("100"), "100,00"),
        (Decimal("99.99"), "99,99"),
        (Decimal("1234.56"), "1.234,56"),
        (Decimal("10000"), "10.000,00"),
        (Decimal("1000000.99"), "1.000.000,99"),
        (Decimal("0"), "0,00"),
        (Decimal("0.01"), "0,01"),
        (Decimal("0.1"), "0,10"),
    ])
    def test_formats_with_grouping(self, value, expected):
        assert format_currency(value) == expected

    def test_rounds_to_two_decimals(self):
        assert format_currency(10.999) == "11,00"
        assert format_currency(10.994) == "10,99"
        assert format_currency(Decimal("0.005")) == "0,01"

    def test_negative_values(self):
        assert format_currency(Decimal("-1234.5")) == "-1.234,50"

    def test_with_symbol(self):
        assert format_with_symbol(100) == "R$ 100,00"
        assert format_with_symbol(Decimal("1500.50")) == "R$ 1.500,50"

    def test_parse_inverts_format(self):
        assert parse_currency(format_currency(Decimal("98765.43"))) == Decimal("98765.43")


class TestFormatCsvAmount:

    def test_zero_is_bare(self):
        assert format_csv_amount(Decimal("0")) == "0"
        assert format_csv_amount(Decimal("0.00")) == "0"

    def test_no_thousands_grouping(self):
        assert format_csv_amount(Decimal("1234.56")) == "1234,56"
        assert format_csv_amount(Decimal("1500.5")) == "1500,50"

    def test_always_two_decimals(self):
        assert format_csv_amount(Decimal("150")) == "150,00"


class TestCentsInput:

    def test_digits_are_cents(self):
        assert format_cents_input("12345") == "123,45"

    def test_large_values_are_grouped(self):
        assert format_cents_input("123456789") == "1.234.567,89"

    def test_non_digits_are_ignored(self):
        assert format_cents_input("R$ 1.234,5") == "123,45"

    def test_empty(self):
        assert format_cents_input("") == ""
        assert format_cents_input("abc") == ""
