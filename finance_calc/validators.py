"""Validator functions for calculator inputs.

Each ``validate_*`` helper raises ``InvalidInput`` with a message naming the
offending field. The ``normalize_*`` helpers validate a whole input
dataclass and return a copy whose numeric fields are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Sequence, Tuple

from .data_models import (
    EXTRA_PAYMENT_FREQUENCIES,
    LOAN_TYPES,
    STRATEGIES,
    Debt,
    ExtraPayment,
    LoanTerms,
    TaxBand,
)
from .errors import InvalidInput
from .utils import MONTHS_PER_YEAR, to_decimal


def validate_positive(value, name: str) -> Decimal:
    """Validate that a value is a number greater than zero."""
    result = to_decimal(value, name)
    if result <= 0:
        raise InvalidInput(f"{name} must be greater than zero, got {value}")
    return result


def validate_non_negative(value, name: str) -> Decimal:
    """Validate that a value is a non-negative number."""
    result = to_decimal(value, name)
    if result < 0:
        raise InvalidInput(f"{name} must not be negative, got {value}")
    return result


def validate_positive_integer(value, name: str) -> int:
    """Validate that a value is an integer greater or equal to 1."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise InvalidInput(f"{name} must be at least 1, got {value}")
    return value


def validate_non_negative_integer(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidInput(f"{name} must not be negative, got {value}")
    return value


def validate_choice(value, name: str, choices: Sequence[str]) -> str:
    """Validate that a value is one of the allowed strings."""
    if value not in choices:
        raise InvalidInput(f"{name} must be one of: {', '.join(choices)}; got {value!r}")
    return value


def term_in_months(term_years: Decimal) -> int:
    """Return the number of monthly payments in ``term_years``."""
    months = term_years * MONTHS_PER_YEAR
    if months != months.to_integral_value():
        raise InvalidInput(f"Term of {term_years} years is not a whole number of months")
    return int(months)


def normalize_loan_terms(terms: LoanTerms) -> LoanTerms:
    principal = validate_positive(terms.principal, "principal")
    rate = validate_non_negative(terms.annual_rate_percent, "annual_rate_percent")
    term_years = validate_positive(terms.term_years, "term_years")
    term_in_months(term_years)
    validate_choice(terms.loan_type, "loan_type", LOAN_TYPES)
    validate_non_negative_integer(terms.grace_period_months, "grace_period_months")
    return replace(terms, principal=principal, annual_rate_percent=rate, term_years=term_years)


def normalize_extra_payment(extra: ExtraPayment) -> ExtraPayment:
    amount = validate_positive(extra.amount, "extra payment amount")
    validate_choice(extra.frequency, "extra payment frequency", EXTRA_PAYMENT_FREQUENCIES)
    validate_positive_integer(extra.start_month, "extra payment start_month")
    return replace(extra, amount=amount)


def normalize_debt(debt: Debt) -> Debt:
    label = f"debt {debt.name or debt.id}"
    return replace(
        debt,
        balance=validate_positive(debt.balance, f"{label} balance"),
        annual_rate_percent=validate_non_negative(debt.annual_rate_percent, f"{label} rate"),
        min_payment=validate_positive(debt.min_payment, f"{label} minimum payment"),
    )


def normalize_debts(debts: Iterable[Debt]) -> Tuple[Debt, ...]:
    normalized = tuple(normalize_debt(d) for d in debts)
    if not normalized:
        raise InvalidInput("At least one debt is required")
    ids = [d.id for d in normalized]
    if len(set(ids)) != len(ids):
        raise InvalidInput("Debt ids must be unique")
    return normalized


def validate_strategy(strategy: str) -> str:
    return validate_choice(strategy, "strategy", STRATEGIES)


def normalize_bands(bands: Iterable[TaxBand]) -> Tuple[TaxBand, ...]:
    """Validate a band table: non-empty and strictly ascending by threshold."""
    normalized = tuple(
        TaxBand(
            threshold=validate_non_negative(b.threshold, "band threshold"),
            rate_percent=validate_non_negative(b.rate_percent, "band rate"),
        )
        for b in bands
    )
    if not normalized:
        raise InvalidInput("Tax band table must not be empty")
    for previous, current in zip(normalized, normalized[1:]):
        if current.threshold <= previous.threshold:
            raise InvalidInput(
                f"Tax bands must be ordered by ascending threshold; "
                f"{current.threshold} follows {previous.threshold}"
            )
    return normalized
