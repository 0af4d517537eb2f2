"""Exceptions raised by the calculators.

Every calculator raises one of these at its boundary. ``InvalidInput`` is
also a ``ValueError`` so callers that only know about the built-in
exception still catch it. Results whose ratio has a zero denominator (ROI,
effective tax rate, total return) are reported as ``None`` rather than
raised.
"""

from __future__ import annotations

from typing import Optional, Sequence


class CalculationError(Exception):
    """Base class for all calculator errors."""


class InvalidInput(CalculationError, ValueError):
    """Raised when parameters are rejected before any computation starts."""


class NonConvergent(CalculationError):
    """Raised when a balance is not cleared within the iteration ceiling.

    Attributes
    ----------
    periods: int
        The ceiling that was reached.
    debt_ids: tuple
        Identifiers of the debts whose minimum payment does not cover their
        monthly interest, when known. Empty for single-balance loans.
    """

    def __init__(self, message: str, periods: int, debt_ids: Optional[Sequence[object]] = None) -> None:
        super().__init__(message)
        self.periods = periods
        self.debt_ids = tuple(debt_ids or ())
