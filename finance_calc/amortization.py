"""Amortization schedules for repayment and interest-only loans.

This module implements the month-by-month schedule every other loan
calculation builds on. It supports level-payment (repayment) loans,
interest-only loans with a balloon payment and an optional grace period
before repayment starts. ``compute_loan`` wraps the schedule with the loan
summary: financed amount after down payment and trade-in, fees and totals.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .data_models import LoanSummary, LoanTerms, ScheduleEntry
from .errors import InvalidInput, NonConvergent
from .utils import EPSILON, HUNDRED, ZERO, bounded_periods, monthly_rate
from .validators import normalize_loan_terms, term_in_months, validate_non_negative

logger = logging.getLogger(__name__)


def _calculate_level_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the level (annuity) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise InvalidInput("Term must be positive")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def monthly_payment(terms: LoanTerms) -> Decimal:
    """Return the regular monthly payment for ``terms``.

    For interest-only loans this is the monthly interest on the principal;
    the balloon repayment at the end is not included.
    """
    terms = normalize_loan_terms(terms)
    rate_per_month = monthly_rate(terms.annual_rate_percent)
    if terms.loan_type == "interest-only":
        return terms.principal * rate_per_month
    return _calculate_level_payment(terms.principal, rate_per_month, term_in_months(terms.term_years))


def generate_schedule(terms: LoanTerms) -> List[ScheduleEntry]:
    """Compute the amortization schedule for a loan.

    Parameters
    ----------
    terms: LoanTerms
        The loan parameters. They are validated and never modified.

    Returns
    -------
    List[ScheduleEntry]
        One entry per month, grace months first. The last entry has a zero
        balance.

    Raises
    ------
    InvalidInput
        If the terms are rejected by validation.
    NonConvergent
        If a repayment month would not reduce the balance.
    """
    terms = normalize_loan_terms(terms)
    rate_per_month = monthly_rate(terms.annual_rate_percent)
    term = term_in_months(terms.term_years)
    grace = terms.grace_period_months
    last_month = term + grace
    interest_only = terms.loan_type == "interest-only"

    balance = terms.principal
    schedule: List[ScheduleEntry] = []
    payment = ZERO

    logger.debug(
        "Generating %s schedule: principal=%s rate=%s%% term=%d months grace=%d",
        terms.loan_type,
        terms.principal,
        terms.annual_rate_percent,
        term,
        grace,
    )

    for month in bounded_periods(last_month, "amortization schedule"):
        interest_payment = balance * rate_per_month

        if month <= grace:
            # Grace period: nothing is paid, interest accrues
            if terms.capitalize_grace_interest:
                balance += interest_payment
            schedule.append(
                ScheduleEntry(
                    month=month,
                    payment=ZERO,
                    principal_payment=ZERO,
                    interest_payment=interest_payment,
                    balance=balance,
                    is_grace_period=True,
                )
            )
            continue

        if month == grace + 1:
            # Payment is fixed on the balance at the start of repayment, which
            # includes capitalised grace interest when that policy is chosen.
            if interest_only:
                payment = interest_payment
            else:
                payment = _calculate_level_payment(balance, rate_per_month, term)

        if interest_only:
            principal_payment = ZERO
        else:
            principal_payment = payment - interest_payment
            if principal_payment <= 0:
                raise NonConvergent(
                    f"Payment {payment} does not cover interest {interest_payment} in month {month}",
                    periods=month,
                )

        # The final month repays whatever is left (balloon for interest-only
        # loans, rounding residue for repayment loans).
        if month == last_month or principal_payment > balance:
            principal_payment = balance

        balance -= principal_payment
        if balance <= EPSILON:
            balance = ZERO

        schedule.append(
            ScheduleEntry(
                month=month,
                payment=interest_payment + principal_payment,
                principal_payment=principal_payment,
                interest_payment=interest_payment,
                balance=balance,
            )
        )

        if balance == 0:
            break

    return schedule


def regular_payment(schedule: List[ScheduleEntry], loan_type: str) -> Decimal:
    """Return the installment due in the first repayment month of ``schedule``.

    For interest-only loans the balloon is excluded, so a one-month term
    still reports the interest installment.
    """
    for entry in schedule:
        if not entry.is_grace_period:
            if loan_type == "interest-only":
                return entry.interest_payment
            return entry.payment
    raise InvalidInput("Schedule has no repayment months")


def compute_loan(
    terms: LoanTerms,
    *,
    down_payment=0,
    trade_in_value=0,
    fees: Optional[Dict[str, object]] = None,
) -> Tuple[List[ScheduleEntry], LoanSummary]:
    """Compute the schedule and summary for a loan.

    Parameters
    ----------
    terms: LoanTerms
        The loan configuration. ``principal`` is the price *before* any down
        payment or trade-in; both reduce the financed amount.
    down_payment, trade_in_value:
        Amounts paid up front.
    fees: dict, optional
        Named one-off fees. They are added to the total repayment.

    Returns
    -------
    schedule: List[ScheduleEntry]
        The schedule for the financed amount.
    summary: LoanSummary
        Aggregate metrics including total interest, grace-period interest and
        the loan-to-value ratio when anything was paid up front.
    """
    terms = normalize_loan_terms(terms)
    down_payment = validate_non_negative(down_payment, "down_payment")
    trade_in_value = validate_non_negative(trade_in_value, "trade_in_value")
    fee_total = sum(
        (validate_non_negative(amount, f"fee {name}") for name, amount in (fees or {}).items()),
        ZERO,
    )

    # Financed principal after subtracting down payment and trade-in
    financed_principal = terms.principal - down_payment - trade_in_value
    if financed_principal <= 0:
        raise InvalidInput("Financed principal must be positive after down payment and trade-in")

    financed_terms = replace(terms, principal=financed_principal)
    schedule = generate_schedule(financed_terms)

    grace_interest = sum((e.interest_payment for e in schedule if e.is_grace_period), ZERO)
    total_interest = sum((e.interest_payment for e in schedule), ZERO)
    total_payments = sum((e.payment for e in schedule), ZERO)

    loan_to_value = None
    if down_payment > 0 or trade_in_value > 0:
        loan_to_value = financed_principal / terms.principal * HUNDRED

    summary = LoanSummary(
        principal=financed_principal,
        original_principal=terms.principal,
        annual_rate_percent=terms.annual_rate_percent,
        term_years=terms.term_years,
        loan_type=terms.loan_type,
        monthly_payment=regular_payment(schedule, terms.loan_type),
        months=len(schedule),
        total_payments=total_payments,
        total_interest=total_interest,
        grace_period_months=terms.grace_period_months,
        grace_period_interest=grace_interest,
        fees=fee_total,
        total_repayment=financed_principal + total_interest + fee_total,
        down_payment=down_payment,
        trade_in_value=trade_in_value,
        loan_to_value_percent=loan_to_value,
    )
    logger.debug("Loan computed: %d months, total interest %s", summary.months, total_interest)
    return schedule, summary
