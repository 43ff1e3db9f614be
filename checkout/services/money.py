"""
Money Utilities - Safe Decimal operations for monetary values.

Prices travel through the engine as integer minor units (centavos).
Decimal is used only where a fraction appears (percentage discounts,
gateway payloads in reais) so that rounding is explicit.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal, None]

# Precision for BRL major units (2 decimal places)
MONEY_PRECISION = Decimal("0.01")

CURRENCY_SYMBOL = "R$"


def to_decimal(value: Number) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero (12.5 -> 13)."""
    return int(to_decimal(value).to_integral_value(rounding=ROUND_HALF_UP))


def to_minor_units(value: Number) -> int:
    """
    Convert an amount in reais to centavos.

    Example:
        to_minor_units("49.90") -> 4990
    """
    return round_half_up(to_decimal(value) * 100)


def from_minor_units(minor: int) -> Decimal:
    """Convert centavos to reais (4990 -> Decimal("49.90"))."""
    return (Decimal(minor) / Decimal(100)).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def percent_of(minor: int, percent_value: Number) -> int:
    """Percentage of an amount in minor units, rounded half-up."""
    return round_half_up(Decimal(minor) * to_decimal(percent_value) / Decimal(100))


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


def format_brl(minor: int) -> str:
    """
    Format centavos the way the checkout page shows prices.

    Example:
        format_brl(123456) -> "R$ 1.234,56"
    """
    amount = from_minor_units(minor)
    sign = "-" if amount < 0 else ""
    formatted = f"{abs(amount):,.2f}"
    # en-US grouping -> pt-BR grouping
    formatted = formatted.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{CURRENCY_SYMBOL} {formatted}"
