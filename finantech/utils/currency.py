"""
Brazilian Real formatting and parsing.

Display format groups thousands with '.' and uses ',' for the decimal
separator: Decimal("1234.56") -> "1.234,56".

The spreadsheet CSV uses a plainer variant without grouping (see
format_csv_amount), because the template's cells are read back by a
parser that only swaps the decimal comma.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal, going through str() for floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _quantize(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value: Number) -> str:
    """
    Format a value as BRL without the currency symbol.

    Examples:
        1234.56 -> "1.234,56"
        0 -> "0,00"
        10.999 -> "11,00"
    """
    amount = _quantize(value)
    sign = "-" if amount < 0 else ""
    int_part, dec_part = f"{abs(amount):.2f}".split(".")
    grouped = f"{int(int_part):,}".replace(",", ".")
    return f"{sign}{grouped},{dec_part}"


def format_with_symbol(value: Number) -> str:
    """Format a value as BRL with the 'R$' symbol."""
    return f"R$ {format_currency(value)}"


def parse_currency(text: str) -> Decimal:
    """
    Parse a BRL-formatted string back to Decimal.

    Thousands dots are dropped and the decimal comma becomes a point.
    Empty or unparsable text is 0.

    Examples:
        "1.234,56" -> Decimal("1234.56")
        "abc" -> Decimal("0")
    """
    if not text:
        return ZERO

    normalized = text.strip().replace(".", "").replace(",", ".")
    try:
        value = Decimal(normalized)
    except InvalidOperation:
        return ZERO
    if not value.is_finite():
        return ZERO
    return value


def format_csv_amount(value: Number) -> str:
    """
    Render a spreadsheet cell amount.

    Zero is the bare "0"; anything else has exactly two decimals with a
    decimal comma and no thousands grouping ("1500,50").
    """
    amount = to_decimal(value)
    if amount == 0:
        return "0"
    return f"{_quantize(amount):.2f}".replace(".", ",")


def format_cents_input(text: str) -> str:
    """
    Input mask for amount fields: every typed digit is a cent.

    Non-digits are ignored. "12345" -> "123,45", "" -> "".
    """
    digits = "".join(ch for ch in text if ch in "0123456789")
    if not digits:
        return ""
    return format_currency(Decimal(int(digits)) / 100)
