# Overview: Exact decimal primitives shared by every money and quantity field.

"""
MAIDUKA Decimal Invariants (authoritative)

- No binary floating point anywhere in the ledger: values enter as str, int or Decimal.
- Comparisons use Decimal ordering, never float equality.
- Storage form is the canonical plain decimal string (no exponent), parsed back losslessly.
- Rounding only happens where a caller asks for it, always half-up:
    money -> minor currency unit (MONEY_DECIMAL_PLACES)
    percentages -> whole integer percent
- Nothing silently truncates precision except whole_units(), which exists to turn a
  fractional sale quantity into a stock unit count.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Iterable

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


MONEY_DECIMAL_PLACES = 2

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Coerce str/int/Decimal to Decimal. Floats are refused outright."""
    if isinstance(value, bool):
        raise TypeError("bool is not a decimal amount")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValueError("empty decimal string")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValueError(f"invalid decimal string: {value!r}")
    else:
        raise TypeError(f"{type(value).__name__} is not an exact decimal type")

    if not result.is_finite():
        raise ValueError(f"non-finite decimal: {value!r}")
    return result


def to_plain_string(value) -> str:
    """Canonical storage form: plain notation, scale preserved."""
    return format(to_decimal(value), "f")


def round_money(value, places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Half-up rounding to the currency minor unit."""
    quantum = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def percent_of(part, whole) -> int:
    """round_half_up(part * 100 / whole); 0 when whole is not positive. Not clamped."""
    whole = to_decimal(whole)
    if whole <= ZERO:
        return 0
    ratio = to_decimal(part) * HUNDRED / whole
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def whole_units(quantity) -> int:
    """Truncate a (possibly fractional) quantity to an integer unit count."""
    return int(to_decimal(quantity).to_integral_value(rounding=ROUND_DOWN))


def decimal_sum(values: Iterable) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def non_negative(value) -> Decimal:
    return max(ZERO, to_decimal(value))


class DecimalString(TypeDecorator):
    """
    Exact decimal stored as its canonical plain string.

    Strings keep arbitrary precision on every backend (SQLite's NUMERIC would
    go through float), so the round trip is lossless. Aggregation happens in
    Python, never in SQL.
    """

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_plain_string(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)
