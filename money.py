from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 8.99 from expanding to their binary value
    return Decimal(str(value))


def round_currency(value: Number) -> Decimal:
    """Round to two fractional digits, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def cents_to_amount(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def amount_to_cents(amount: Number) -> int:
    return int((round_currency(amount) * 100).quantize(Decimal("1")))


def format_plain_amount(amount: Number) -> str:
    """Render an amount without trailing zeros: 70.00 -> "70", 12.50 -> "12.5"."""
    value = to_decimal(amount)
    if value == value.to_integral_value():
        return str(value.quantize(Decimal("1")))
    return format(value.normalize(), "f")


def format_currency(amount: Number) -> str:
    return f"${round_currency(amount):,.2f}"
