# Overview: Conversion between API amounts (major units) and stored integer cents.

"""
Amounts are stored as integer cents so balances never drift. The JSON surface
keeps plain numbers in major units (300 or 300.0 or "300.00"), rounded half-up
to two decimals on the way in.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError

CENT = Decimal("0.01")

# 99,999,999.99 in major units; guards against overflow and typos
MAX_AMOUNT_CENTS = 9_999_999_999


def to_cents(value: Any, field: str, *, allow_negative: bool = False) -> int:
    """Parse a major-unit amount into integer cents, or raise ValidationError."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            raise ValidationError(f"{field} must be a number")
        value = text

    try:
        # str() keeps floats like 0.1 from carrying binary noise into Decimal
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    cents = int((amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())

    if cents < 0 and not allow_negative:
        raise ValidationError(f"{field} must be >= 0")
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} exceeds the maximum allowed amount")
    return cents


def from_cents(cents: int | None) -> float | None:
    """Render stored cents as a JSON number in major units."""
    if cents is None:
        return None
    return float(Decimal(cents) / 100)
