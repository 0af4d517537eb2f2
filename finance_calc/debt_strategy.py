"""Debt payoff strategies: avalanche, snowball and consolidation.

Every month each open debt accrues interest and receives its minimum
payment. A pool made of the extra monthly budget plus the minimums of debts
already cleared is then applied to the open debts in priority order. The
priority order is fixed when the simulation starts:

* avalanche: highest interest rate first;
* snowball: lowest balance first.

Consolidation replaces all debts by one balance at the balance-weighted
average rate, repaid with the sum of the minimums plus the extra budget.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

from .data_models import Debt, PayoffResult, StrategyComparison
from .errors import NonConvergent
from .utils import EPSILON, ZERO, bounded_periods, monthly_rate
from .validators import (
    normalize_debts,
    validate_non_negative,
    validate_positive,
    validate_strategy,
)

logger = logging.getLogger(__name__)

# 100 years of monthly payments
MAX_MONTHS = 1200


def order_debts(debts: Iterable[Debt], strategy: str) -> List[Debt]:
    """Return debts in the order the extra payment pool is applied to them."""
    validate_strategy(strategy)
    if strategy == "avalanche":
        return sorted(debts, key=lambda d: d.annual_rate_percent, reverse=True)
    return sorted(debts, key=lambda d: d.balance)


def weighted_average_rate(debts: Iterable[Debt]) -> Decimal:
    """Return the balance-weighted average annual rate of ``debts``."""
    debts = normalize_debts(debts)
    total_balance = sum((d.balance for d in debts), ZERO)
    return sum((d.annual_rate_percent * d.balance for d in debts), ZERO) / total_balance


def non_amortizing_debts(debts: Iterable[Debt]) -> List[Debt]:
    """Return the debts whose minimum payment does not exceed the first month's interest.

    Such a debt is only ever cleared if extra payments reach it.
    """
    return [
        d
        for d in normalize_debts(debts)
        if d.min_payment <= d.balance * monthly_rate(d.annual_rate_percent)
    ]


def _non_convergent(description: str, debts: Sequence[Debt]) -> NonConvergent:
    stuck = non_amortizing_debts(debts)
    names = ", ".join(d.name or str(d.id) for d in stuck)
    message = f"{description} is not paid off within {MAX_MONTHS} months"
    if names:
        message += f"; increase the minimum payment on: {names}"
    return NonConvergent(message, periods=MAX_MONTHS, debt_ids=[d.id for d in stuck])


def simulate(debts: Iterable[Debt], extra_monthly, strategy: str) -> PayoffResult:
    """Simulate paying off ``debts`` with ``extra_monthly`` on top of the minimums.

    Raises
    ------
    InvalidInput
        If a debt or the extra amount is invalid, or the strategy is unknown.
    NonConvergent
        If the debts are not cleared within ``MAX_MONTHS`` months.
    """
    debts = normalize_debts(debts)
    extra_monthly = validate_non_negative(extra_monthly, "extra_monthly")
    ordered = order_debts(debts, strategy)

    for debt in non_amortizing_debts(ordered):
        logger.warning(
            "Minimum payment %s on %s does not cover its monthly interest",
            debt.min_payment,
            debt.name or debt.id,
        )

    balances: Dict[str, Decimal] = {d.id: d.balance for d in ordered}
    payoff_months: Dict[str, int] = {}
    per_month_balances: List[Decimal] = []
    monthly_payments: List[Decimal] = []
    monthly_interest: List[Decimal] = []
    total_interest = ZERO
    total_paid = ZERO

    try:
        for month in bounded_periods(MAX_MONTHS, f"{strategy} payoff"):
            # Minimums of debts cleared in earlier months join the extra pool
            pool = extra_monthly + sum((d.min_payment for d in ordered if d.id in payoff_months), ZERO)
            month_paid = ZERO
            month_interest = ZERO

            for debt in ordered:
                balance = balances[debt.id]
                if balance <= 0:
                    continue
                interest = balance * monthly_rate(debt.annual_rate_percent)
                payment = min(debt.min_payment, balance + interest)
                balances[debt.id] = max(ZERO, balance + interest - payment)
                month_interest += interest
                month_paid += payment

            for debt in ordered:
                if pool <= 0:
                    break
                balance = balances[debt.id]
                if balance <= 0:
                    continue
                applied = min(pool, balance)
                balances[debt.id] = balance - applied
                pool -= applied
                month_paid += applied

            for debt in ordered:
                if debt.id not in payoff_months and balances[debt.id] <= EPSILON:
                    balances[debt.id] = ZERO
                    payoff_months[debt.id] = month

            total_interest += month_interest
            total_paid += month_paid
            per_month_balances.append(sum(balances.values(), ZERO))
            monthly_payments.append(month_paid)
            monthly_interest.append(month_interest)

            if len(payoff_months) == len(ordered):
                break
    except NonConvergent:
        raise _non_convergent(f"{strategy.capitalize()} strategy", ordered) from None

    logger.debug(
        "%s strategy: %d months, total interest %s", strategy, len(per_month_balances), total_interest
    )
    return PayoffResult(
        strategy=strategy,
        months_to_payoff=len(per_month_balances),
        total_interest_paid=total_interest,
        total_paid=total_paid,
        per_month_balances=per_month_balances,
        monthly_payments=monthly_payments,
        monthly_interest=monthly_interest,
        payoff_months=payoff_months,
    )


def simulate_consolidation(total_debt, weighted_rate, monthly_payment) -> PayoffResult:
    """Simulate repaying one consolidated balance with a fixed monthly payment."""
    balance = validate_positive(total_debt, "total_debt")
    rate = validate_non_negative(weighted_rate, "weighted_rate")
    payment_amount = validate_positive(monthly_payment, "monthly_payment")
    rate_per_month = monthly_rate(rate)

    per_month_balances: List[Decimal] = []
    monthly_payments: List[Decimal] = []
    monthly_interest: List[Decimal] = []
    total_interest = ZERO
    total_paid = ZERO

    try:
        for _month in bounded_periods(MAX_MONTHS, "consolidation payoff"):
            interest = balance * rate_per_month
            payment = min(payment_amount, balance + interest)
            balance = max(ZERO, balance + interest - payment)
            if balance <= EPSILON:
                balance = ZERO

            total_interest += interest
            total_paid += payment
            per_month_balances.append(balance)
            monthly_payments.append(payment)
            monthly_interest.append(interest)

            if balance == 0:
                break
    except NonConvergent:
        raise NonConvergent(
            f"Consolidated loan is not paid off within {MAX_MONTHS} months; "
            f"increase the monthly payment above {payment_amount}",
            periods=MAX_MONTHS,
        ) from None

    return PayoffResult(
        strategy="consolidation",
        months_to_payoff=len(per_month_balances),
        total_interest_paid=total_interest,
        total_paid=total_paid,
        per_month_balances=per_month_balances,
        monthly_payments=monthly_payments,
        monthly_interest=monthly_interest,
        payoff_months={"consolidated": len(per_month_balances)},
    )


def _recommend(results: Sequence[Tuple[str, PayoffResult]]) -> str:
    """Pick the strategy with the lowest total interest; earlier entries win ties."""
    best_name, best = results[0]
    for name, result in results[1:]:
        if result.total_interest_paid < best.total_interest_paid:
            best_name, best = name, result
    return best_name


def compare_strategies(debts: Iterable[Debt], extra_monthly) -> StrategyComparison:
    """Run avalanche, snowball and consolidation on the same debts."""
    debts = normalize_debts(debts)
    extra_monthly = validate_non_negative(extra_monthly, "extra_monthly")

    avalanche = simulate(debts, extra_monthly, "avalanche")
    snowball = simulate(debts, extra_monthly, "snowball")
    average_rate = weighted_average_rate(debts)
    consolidation = simulate_consolidation(
        sum((d.balance for d in debts), ZERO),
        average_rate,
        sum((d.min_payment for d in debts), ZERO) + extra_monthly,
    )
    recommended = _recommend(
        [("avalanche", avalanche), ("snowball", snowball), ("consolidation", consolidation)]
    )
    return StrategyComparison(
        avalanche=avalanche,
        snowball=snowball,
        consolidation=consolidation,
        weighted_average_rate=average_rate,
        recommended=recommended,
    )
