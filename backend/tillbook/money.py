# Overview: Currency helpers; all stored amounts are integer minor units (cents).

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


# Maximum amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

CENT = Decimal("0.01")


class MoneyError(ValueError):
    """Raised when an amount cannot be represented as currency."""


def to_cents(value, *, field: str = "amount") -> int:
    """
    Convert a JSON number (int, float or Decimal) to integer cents.

    Floats go through their shortest repr so 0.1 stays 10 cents.
    Rounds half-up at two decimal places. Booleans, strings, NaN and
    infinities are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise MoneyError(f"{field} must be a number")

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise MoneyError(f"{field} must be a number")

    if not amount.is_finite():
        raise MoneyError(f"{field} must be a finite number")

    cents = int((amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise MoneyError(f"{field} exceeds maximum allowed amount")
    return cents


def from_cents(cents: int | None) -> Decimal:
    """Integer cents -> Decimal with two places. None counts as zero."""
    return (Decimal(cents or 0) / 100).quantize(CENT)


def format_cents(cents: int | None) -> str:
    """Human-readable two-decimal string, e.g. 300000 -> '3000.00'."""
    return f"{from_cents(cents):.2f}"


def cents_to_number(cents: int | None) -> float | None:
    """Wire representation of an amount (JSON number)."""
    if cents is None:
        return None
    return float(from_cents(cents))
