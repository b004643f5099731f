from __future__ import annotations

from decimal import Decimal

from .money import ZERO, to_decimal
from .services.errors import LedgerValidationError


def coerce_amount(value, field: str, *, allow_zero: bool = False) -> Decimal:
    """
    Normalize a money/quantity input to Decimal.

    - str / int / Decimal only (floats are rejected, never rounded)
    - strictly positive unless allow_zero, then non-negative
    """
    if value is None:
        raise LedgerValidationError(f"{field} is required")
    try:
        amount = to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise LedgerValidationError(f"{field} must be an exact decimal amount", details={"reason": str(exc)})

    if allow_zero:
        if amount < ZERO:
            raise LedgerValidationError(f"{field} must be >= 0", details={field: str(value)})
    elif amount <= ZERO:
        raise LedgerValidationError(f"{field} must be > 0", details={field: str(value)})
    return amount


def coerce_count(value, field: str, *, allow_zero: bool = False) -> int:
    """Whole-unit counts (stock, purchase quantities). Booleans and floats are rejected."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise LedgerValidationError(f"{field} must be an integer")
    if value < 0 or (value == 0 and not allow_zero):
        raise LedgerValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    return value


def coerce_flag(value, field: str) -> bool:
    """On/off settings take real booleans only; "false" or 0 would silently flip them."""
    if not isinstance(value, bool):
        raise LedgerValidationError(f"{field} must be true or false", details={field: repr(value)})
    return value


def require_choice(value, choices, field: str) -> str:
    if value not in choices:
        raise LedgerValidationError(
            f"Invalid {field}: {value}. Must be one of {list(choices)}",
            details={field: value},
        )
    return value


def require_text(value, field: str) -> str:
    if value is None or not str(value).strip():
        raise LedgerValidationError(f"{field} cannot be blank")
    return str(value).strip()
