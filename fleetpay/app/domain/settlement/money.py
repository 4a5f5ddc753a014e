"""
Money arithmetic.

Every monetary amount in the engine is a `decimal.Decimal`; binary floats
never touch a settlement. Derived quantities are rounded once, at the end
of their formula, to cents with ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

ZERO = Decimal("0")
CENT = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")

MoneyLike = Union[Decimal, int, str, float, None]


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents using ROUND_HALF_UP."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: MoneyLike) -> Decimal:
    """
    Coerce a stored or user supplied amount to Decimal.

    None becomes zero. Floats go through `str` so 0.1 stays 0.1.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def optional_money(value: MoneyLike) -> Optional[Decimal]:
    """Like `to_money` but keeps None, for nullable configuration fields."""
    if value is None:
        return None
    return to_money(value)


def sum_money(values: Iterable[MoneyLike]) -> Decimal:
    """Exact sum of amounts; None entries count as zero."""
    total = ZERO
    for value in values:
        total += to_money(value)
    return total
