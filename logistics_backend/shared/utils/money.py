# logistics_backend/shared/utils/money.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

CENTS = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Coerce a JSON or ORM numeric value into a 2-place Decimal"""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def money_str(value: Number) -> str:
    """Decimal amounts are stored as strings inside JSON columns"""
    return str(to_decimal(value))
