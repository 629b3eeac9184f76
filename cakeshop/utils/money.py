# cakeshop/utils/money.py

from decimal import Decimal, ROUND_FLOOR

Money = Decimal


def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def floor_money(x) -> Money:
    """Round down to a whole currency unit."""
    return D(x).to_integral_value(rounding=ROUND_FLOOR)


def to_number(x):
    """JSON-friendly rendering: ints stay ints, fractional amounts become floats."""
    x = D(x)
    return int(x) if x == x.to_integral_value() else float(x)
