"""Exact decimal money helpers; amounts are persisted as strings."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

Money = Decimal

CENT = Decimal("0.01")


def D(x) -> Money:
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x if x is not None else "0").strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {x!r}")


def round_money(x) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


def to_string_money(x) -> str:
    return str(round_money(x))
