"""Utility helpers."""

from finantech.utils.currency import (
    format_cents_input,
    format_csv_amount,
    format_currency,
    format_with_symbol,
    parse_currency,
    to_decimal,
)

__all__ = [
    "format_cents_input",
    "format_csv_amount",
    "format_currency",
    "format_with_symbol",
    "parse_currency",
    "to_decimal",
]
