# Overview: Exact integer storage units for kilograms and money.

"""
Quantities are stored as integer grams and money as integer cents, so every
SQL comparison, increment and SUM is exact on every backend. Services and
the API work in Decimal kg / currency units and convert at the model edge.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

GRAMS_PER_KG = 1000
CENTS_PER_UNIT = 100


def _scaled(value, factor: int) -> int:
    return int((Decimal(value) * factor).to_integral_value(rounding=ROUND_HALF_UP))


def to_grams(kg) -> int:
    """Decimal kg -> integer grams (inputs are validated to 3 decimal places)."""
    return _scaled(kg, GRAMS_PER_KG)


def from_grams(grams) -> Decimal:
    return Decimal(int(grams or 0)).scaleb(-3)


def to_cents(amount) -> int:
    """Decimal amount -> integer cents (inputs are validated to 2 decimal places)."""
    return _scaled(amount, CENTS_PER_UNIT)


def from_cents(cents) -> Decimal:
    return Decimal(int(cents or 0)).scaleb(-2)
