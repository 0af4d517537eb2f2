"""Early repayment: apply extra payments to an existing schedule.

Extra payments reduce the balance in the months they fall on. The regular
installment stays the same afterwards, so the loan finishes early instead of
the installment shrinking. The baseline schedule passed in is left untouched;
the modified schedule shares the unaffected leading entries and rebuilds the
rest.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from .amortization import regular_payment
from .data_models import ExtraPayment, LoanTerms, RepaymentComparison, ScheduleEntry
from .errors import InvalidInput
from .utils import EPSILON, ZERO, bounded_periods, monthly_rate, safe_ratio
from .validators import normalize_extra_payment, normalize_loan_terms

logger = logging.getLogger(__name__)

FREQUENCY_STEP = {"monthly": 1, "quarterly": 3, "annually": 12}


def extra_payment_months(extra: ExtraPayment, last_month: int) -> List[int]:
    """Return the months (1-based) an extra payment falls on, up to ``last_month``."""
    if extra.start_month > last_month:
        return []
    if extra.frequency == "one-time":
        return [extra.start_month]
    return list(range(extra.start_month, last_month + 1, FREQUENCY_STEP[extra.frequency]))


def _prepare_extra_payments(extras: Iterable[ExtraPayment], last_month: int) -> Dict[int, List[Decimal]]:
    """Group extra payment amounts by month, keeping the order they were supplied in."""
    mapping: Dict[int, List[Decimal]] = {}
    for extra in extras:
        for month in extra_payment_months(extra, last_month):
            mapping.setdefault(month, []).append(extra.amount)
    return mapping


def opening_balance(baseline: Sequence[ScheduleEntry], terms: LoanTerms) -> Decimal:
    """Return the balance ``baseline`` starts from, before its first month.

    This is the financed amount the schedule was built on, which can be
    less than ``terms.principal`` when a down payment or trade-in was made.
    """
    first = baseline[0]
    if first.is_grace_period:
        if terms.capitalize_grace_interest:
            return first.balance - first.interest_payment
        return first.balance
    return first.balance + first.principal_payment


def apply_extra_payments(
    baseline: Sequence[ScheduleEntry],
    terms: LoanTerms,
    extras: Iterable[ExtraPayment],
) -> RepaymentComparison:
    """Apply extra payments to ``baseline`` and compare the outcome.

    Parameters
    ----------
    baseline: Sequence[ScheduleEntry]
        The schedule produced by :func:`generate_schedule` for ``terms``.
    terms: LoanTerms
        The loan the baseline was generated for; supplies the interest rate,
        loan type and grace-period policy.
    extras: Iterable[ExtraPayment]
        Extra payments. Several may fall on the same month; they are applied
        one after another in the order given.

    Returns
    -------
    RepaymentComparison
        The modified schedule together with months and interest saved, the
        total actually paid as extras and the return on those extras
        (``None`` when no extra payment could be applied).
    """
    terms = normalize_loan_terms(terms)
    extras = [normalize_extra_payment(e) for e in extras]
    if not baseline:
        raise InvalidInput("Baseline schedule must not be empty")

    rate_per_month = monthly_rate(terms.annual_rate_percent)
    nominal_payment = regular_payment(baseline, terms.loan_type)
    last_month = len(baseline)
    extras_by_month = _prepare_extra_payments(extras, last_month)

    modified: List[ScheduleEntry] = []
    total_extra = ZERO

    if extras_by_month:
        first_affected = min(extras_by_month)
        # Entries before the first extra payment are unchanged
        modified.extend(baseline[: first_affected - 1])
        balance = modified[-1].balance if modified else opening_balance(baseline, terms)

        for month in bounded_periods(last_month, "early repayment schedule"):
            if month < first_affected:
                continue
            base = baseline[month - 1]
            interest_payment = balance * rate_per_month

            if base.is_grace_period:
                payment = ZERO
                principal_payment = ZERO
                if terms.capitalize_grace_interest:
                    balance += interest_payment
            else:
                principal_payment = nominal_payment - interest_payment
                if month == last_month or principal_payment > balance:
                    principal_payment = balance
                principal_payment = max(principal_payment, ZERO)
                payment = interest_payment + principal_payment
                balance -= principal_payment

            extra_paid = ZERO
            for amount in extras_by_month.get(month, ()):
                applied = min(amount, balance)
                extra_paid += applied
                balance -= applied
            principal_payment += extra_paid
            total_extra += extra_paid

            if balance <= EPSILON:
                balance = ZERO

            modified.append(
                replace(
                    base,
                    payment=payment,
                    principal_payment=principal_payment,
                    interest_payment=interest_payment,
                    balance=balance,
                    extra_payment=extra_paid,
                )
            )

            if balance == 0 or month == last_month:
                break
    else:
        modified.extend(baseline)

    baseline_interest = sum((e.interest_payment for e in baseline), ZERO)
    modified_interest = sum((e.interest_payment for e in modified), ZERO)
    interest_saved = baseline_interest - modified_interest

    logger.debug(
        "Applied %s in extra payments: %d months and %s interest saved",
        total_extra,
        last_month - len(modified),
        interest_saved,
    )

    return RepaymentComparison(
        modified=modified,
        months_saved=last_month - len(modified),
        interest_saved=interest_saved,
        total_extra_paid=total_extra,
        roi=safe_ratio(interest_saved, total_extra),
        baseline_interest=baseline_interest,
        modified_interest=modified_interest,
    )
