from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps floats such as 0.1 from dragging binary noise along
    return Decimal(str(value))


def round2(value: Number) -> Decimal:
    """Round a money amount to cents, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def floor_cents(value: Number) -> Decimal:
    """Truncate a non-negative amount to whole cents."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_DOWN)


def money_sum(values: Iterable[Number]) -> Decimal:
    return round2(sum((to_decimal(v) for v in values), ZERO))
