"""
Monetary Precision Module

The ledger stores amounts as DECIMAL(15, 2). Every value entering the engine
is normalized here so that what is validated is exactly what gets persisted.
NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Union

from .errors import ValidationError


PRECISION = 2
CENT = Decimal('0.1') ** PRECISION
ZERO = Decimal('0').quantize(CENT)
# Largest magnitude a DECIMAL(15, 2) column holds
MAX_AMOUNT = Decimal('9999999999999.99')

Amount = Union[Decimal, int, str, float]


def to_money(value: Any) -> Decimal:
    """
    Convert a driver or caller value to a Decimal at ledger precision.

    None normalizes to zero. Floats go through str() so that 0.1 stays 0.1.

    Raises:
        ValidationError: the value is not a finite number
    """
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"Not a valid amount: {value!r}", value=value)
    if not value.is_finite():
        raise ValidationError(f"Amount must be finite: {value}", value=value)
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Amount out of range: {value}", value=value)


def _require_in_range(amount: Decimal, field: str, value: Any) -> Decimal:
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"Amount exceeds {MAX_AMOUNT}: {value}", field=field, value=value)
    return amount


def require_positive(value: Amount, field: str = "amount", label: str = "Amount") -> Decimal:
    """Normalize an amount and reject anything that is not strictly positive"""
    amount = to_money(value)
    if amount <= ZERO:
        raise ValidationError(f"{label} must be positive", field=field, value=value)
    return _require_in_range(amount, field, value)


def require_non_negative(value: Amount, field: str = "amount", label: str = "Amount") -> Decimal:
    """Normalize an amount and reject negatives"""
    amount = to_money(value)
    if amount < ZERO:
        raise ValidationError(f"{label} cannot be negative", field=field, value=value)
    return _require_in_range(amount, field, value)


def format_amount(value: Decimal) -> str:
    """Two-decimal rendering used in history lines and reports"""
    return f"{to_money(value):.2f}"
