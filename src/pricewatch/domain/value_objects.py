# src/pricewatch/domain/value_objects.py
"""
Value objects and decimal helpers for the price domain.

All money and percentage arithmetic goes through Decimal. Percentages are
quantized with ROUND_HALF_UP so that threshold comparisons never drift.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Quantization steps
PERCENT_PLACES = Decimal("0.0001")
MONEY_PLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Converts int/str/Decimal input to a finite Decimal.

    Floats are routed through str() so that 0.1 becomes Decimal('0.1')
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError(f"Invalid decimal value: {value!r}")
    if not d.is_finite():
        raise ValueError(f"Decimal value must be finite: {value!r}")
    return d


def round_half_up(value: Decimal, places: Decimal) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


def percent_change(old_price: Decimal, new_price: Decimal) -> Decimal:
    """
    Percentage change from old_price to new_price, positive for a decrease.

    Returns 0 when old_price is 0 (nothing to divide by). Otherwise
    (old - new) / old * 100, rounded to 4 places, half-up.
    """
    old_dec = to_decimal(old_price)
    new_dec = to_decimal(new_price)
    if old_dec == ZERO:
        return ZERO
    return round_half_up((old_dec - new_dec) / old_dec * HUNDRED, PERCENT_PLACES)


@dataclass(frozen=True)
class Price:
    """Represents a price value using Decimal for financial precision. Immutable."""
    value: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            raise TypeError("Price value must be a Decimal.")
        # Zero is a valid price: it marks a listing as out of stock.
        if self.value < ZERO:
            raise ValueError("Price must be non-negative.")

    @classmethod
    def of(cls, raw: Any) -> "Price":
        return cls(to_decimal(raw))

    @property
    def is_out_of_stock(self) -> bool:
        return self.value == ZERO
