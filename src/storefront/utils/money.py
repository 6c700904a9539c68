"""Monetary rounding.

Amounts are whole-currency floats. Every computed amount is rounded
half-up to two decimals through Decimal so that 0.125 becomes 0.13 and not
the banker's 0.12 that round() would give.
"""

from decimal import ROUND_HALF_UP, Decimal

_CENTS = Decimal("0.01")


def round_money(value: float) -> float:
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def percent_of(amount: float, percent: float) -> float:
    """Return `percent`% of `amount`, rounded half-up to cents."""
    return float((Decimal(str(amount)) * Decimal(str(percent)) / Decimal(100)).quantize(_CENTS, rounding=ROUND_HALF_UP))
