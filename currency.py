"""Money helpers.

Amounts are persisted as integer cents. Conversion to dollars only happens
when building API payloads or display strings.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def to_minor_units(amount: float | int | str | Decimal) -> int:
    """Convert a major-unit amount (19.99) to integer cents (1999)."""
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(cents: int | float) -> float:
    return round(float(cents) / 100, 2)


def format_currency(cents: int, symbol: str = "$") -> str:
    sign = "-" if cents < 0 else ""
    return f"{sign}{symbol}{abs(cents) / 100:,.2f}"
