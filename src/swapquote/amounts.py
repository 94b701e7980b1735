"""Big-number helpers for string-encoded amounts.

Amounts travel as decimal text. Native amounts are whole base units
(satoshis, wei); denominated amounts are what providers quote in
(e.g. "1.5" ETH). All math runs in Decimal with a wide context so
base-unit amounts never lose precision.
"""

import re
from decimal import ROUND_CEILING, ROUND_DOWN, Context, Decimal, localcontext
from typing import Union

NATIVE_AMOUNT_RE = re.compile(r"^[0-9]+$")

# 100 significant digits covers any uint256 amount with room to spare
DECIMAL_CONTEXT = Context(prec=100)

Number = Union[str, int, Decimal]


def is_native_amount(value: str) -> bool:
    """Check that a string is a whole number of base units."""
    return bool(NATIVE_AMOUNT_RE.match(value))


def to_decimal(value: Number) -> Decimal:
    """Parse a number, rejecting floats to keep exact arithmetic."""
    if isinstance(value, float):
        raise TypeError("float amounts are not accepted, pass a string")
    return Decimal(value)


def format_decimal(value: Decimal) -> str:
    """Render a Decimal as plain text with no exponent or trailing zeros."""
    if value == 0:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def native_to_denomination(native_amount: Number, multiplier: Number) -> str:
    """Convert base units to a denominated amount.

    Args:
        native_amount: Amount in base units (e.g. "150000000")
        multiplier: Base units per whole coin (e.g. "100000000")

    Returns:
        Denominated amount as plain decimal text (e.g. "1.5")
    """
    with localcontext(DECIMAL_CONTEXT):
        return format_decimal(to_decimal(native_amount) / to_decimal(multiplier))


def denomination_to_native(amount: Number, multiplier: Number) -> str:
    """Convert a denominated amount to base units.

    Fractions of a base unit are kept; use ``to_integer`` where a whole
    number is required.
    """
    with localcontext(DECIMAL_CONTEXT):
        return format_decimal(to_decimal(amount) * to_decimal(multiplier))


def to_integer(amount: Number, round_up: bool = False) -> str:
    """Drop the fractional part of an amount (or round it up)."""
    rounding = ROUND_CEILING if round_up else ROUND_DOWN
    with localcontext(DECIMAL_CONTEXT):
        return format_decimal(to_decimal(amount).to_integral_value(rounding=rounding))


def scale(amount: Number, factor: Number) -> Decimal:
    """Multiply two amounts exactly."""
    with localcontext(DECIMAL_CONTEXT):
        return to_decimal(amount) * to_decimal(factor)


def relative_shortfall(target: Number, realized: Number) -> Decimal:
    """Fraction of ``target`` that ``realized`` falls short by."""
    with localcontext(DECIMAL_CONTEXT):
        target_dec = to_decimal(target)
        if target_dec == 0:
            return Decimal(0)
        return (target_dec - to_decimal(realized)) / target_dec
