"""
Monetary helpers.

Balances are kept as Decimal internally and rounded to 2 places with
ROUND_HALF_UP whenever they leave the service.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

Number = Union[Decimal, int, float, str]

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Optional[Number]) -> Decimal:
    """
    Convert an incoming number to Decimal without binary float drift.

    Floats go through their shortest repr, so 1000.005 becomes
    Decimal("1000.005") instead of Decimal("1000.00499999...").
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid monetary amount: {value!r}") from e


def round_money(value: Optional[Number]) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def money_to_float(value: Optional[Number]) -> float:
    """Rounded amount as a JSON-friendly float."""
    return float(round_money(value))


def profit_loss(balance: Number, equity: Number) -> Decimal:
    return to_decimal(equity) - to_decimal(balance)


def profit_loss_percentage(balance: Number, equity: Number) -> Decimal:
    """(equity - balance) / balance * 100, or 0 for an empty balance."""
    balance = to_decimal(balance)
    if balance == ZERO:
        return ZERO
    return (to_decimal(equity) - balance) / balance * Decimal("100")
