"""Utility functions shared by the calculators.

This module provides the decimal helpers used to normalise user input, the
presentation-time rounding helper and ``bounded_periods``, the single
iteration primitive every calculator uses to step through months or
compounding periods without risking an endless loop.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Iterator

from .errors import InvalidInput, NonConvergent

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12

# Balances at or below this many currency units count as fully repaid.
EPSILON = Decimal("0.000001")

CENT = Decimal("0.01")


def to_decimal(value: object, name: str = "value") -> Decimal:
    """Convert ``value`` into a ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion. Strings may contain thousands
    separators.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be a number, got {value!r}")
    try:
        if isinstance(value, str):
            value = value.replace(",", "").strip()
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must be a number, got {value!r}") from exc
    if not result.is_finite():
        raise InvalidInput(f"{name} must be a finite number, got {value!r}")
    return result


def round_money(amount: Decimal) -> Decimal:
    """Round a money amount to cents.

    Only presentation code should call this; calculators keep full
    precision until the result leaves the core.
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Return the monthly decimal rate for a nominal annual percentage."""
    return annual_rate_percent / HUNDRED / MONTHS_PER_YEAR


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal | None:
    """Return ``numerator / denominator`` or ``None`` for a zero denominator."""
    if denominator == 0:
        return None
    return numerator / denominator


def bounded_periods(limit: int, description: str = "calculation") -> Iterator[int]:
    """Yield period numbers ``1, 2, ...`` up to ``limit``.

    Callers ``break`` out of the loop once their balance is settled. Asking
    for period ``limit + 1`` raises ``NonConvergent`` instead, so a loop whose
    exit condition is never met fails loudly after ``limit`` steps.
    """
    if limit < 1:
        raise InvalidInput(f"{description} needs at least one period, got {limit}")
    period = 0
    while True:
        period += 1
        if period > limit:
            raise NonConvergent(
                f"{description} did not settle within {limit} periods", periods=limit
            )
        yield period
