"""
Fixed-Point Money Helpers.

Money is never summed as binary floats. Values are scaled to integer
cents (half-up rounding), multiplied and accumulated as integers, and
only converted back to a two-decimal value at the boundary.

Example:
    >>> line_total_cents(3, 0.1)
    30
    >>> cents_to_amount(sum([line_total_cents(1, 0.1), line_total_cents(1, 0.2)]))
    0.3
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Union

Number = Union[int, float, Decimal, str]

_UNIT = Decimal(1)
_HUNDRED = Decimal(100)


def is_finite_number(value: Any) -> bool:
    """Check that a value converts to a finite float."""
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def to_cents(value: Number) -> int:
    """
    Scale a decimal value to integer hundredths, rounding half-up.

    Args:
        value: Amount or quantity.

    Returns:
        Integer number of hundredths.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if not is_finite_number(value):
        raise ValueError(f"Not a finite amount: {value!r}")
    scaled = Decimal(str(value)) * _HUNDRED
    return int(scaled.quantize(_UNIT, rounding=ROUND_HALF_UP))


def line_total_cents(quantity: Number, unit_amount: Number) -> int:
    """
    Compute quantity * unit amount in integer cents.

    Both operands are scaled to hundredths first, so the raw product is
    in ten-thousandths; it is rescaled once and rounded half-up.
    """
    product = to_cents(quantity) * to_cents(unit_amount)
    return int((Decimal(product) / _HUNDRED).quantize(_UNIT, rounding=ROUND_HALF_UP))


def cents_to_amount(cents: int) -> float:
    """Convert integer cents back to a two-decimal float."""
    return float(Decimal(cents) / _HUNDRED)


def format_cents(cents: int) -> str:
    """Render integer cents as a two-decimal string."""
    return f"{Decimal(cents) / _HUNDRED:.2f}"


def round_money(value: Number) -> float:
    """Round a value to two decimals, half-up."""
    return cents_to_amount(to_cents(value))


def format_money(value: Number) -> str:
    """Render a value with exactly two decimals, half-up."""
    return format_cents(to_cents(value))
