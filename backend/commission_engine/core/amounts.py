# commission_engine/core/amounts.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
PERCENT_PLACES = Decimal("0.000001")


def to_decimal(value, field: str = "value") -> Decimal:
    """
    Coerce DB/JSON numerics to Decimal. Floats go through str() so 0.1 stays 0.1.
    None -> 0.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} is not a number: {value!r}") from None


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def percent(value: Decimal) -> Decimal:
    return value.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def percent_of(base: Decimal, pct: Decimal) -> Decimal:
    """Exact base * pct / 100 (no rounding)."""
    return base * pct / HUNDRED
