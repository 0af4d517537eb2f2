"""Compound growth projections for savings and investments."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from .data_models import ProjectionPeriod, ProjectionResult
from .utils import HUNDRED, ZERO, bounded_periods, safe_ratio
from .validators import validate_choice, validate_non_negative, validate_positive

logger = logging.getLogger(__name__)

PERIODS_PER_YEAR = {
    "daily": 365,
    "weekly": 52,
    "monthly": 12,
    "quarterly": 4,
    "semi-annually": 2,
    "annually": 1,
}


def periods_per_year(frequency: str, name: str = "frequency") -> int:
    validate_choice(frequency, name, tuple(PERIODS_PER_YEAR))
    return PERIODS_PER_YEAR[frequency]


def contributions_due(period: int, compounding: int, contributing: int, length=1) -> int:
    """Return how many contributions fall on compounding period ``period``.

    Contributions are spread so that exactly ``contributing`` of them land in
    every ``compounding`` periods: one every ``compounding / contributing``
    periods, or several per period when contributions are more frequent than
    compounding. ``length`` is the fraction of the period that elapses, which
    is less than one only for a shortened final period.
    """
    start = period - 1
    end = start + length
    return int((end * contributing) // compounding) - int((start * contributing) // compounding)


def project(
    principal,
    annual_rate_percent,
    compounding_frequency: str = "monthly",
    contribution=0,
    contribution_frequency: str = "monthly",
    term_years=1,
) -> ProjectionResult:
    """Project the growth of ``principal`` plus regular contributions.

    Each compounding period accrues interest on the balance, then adds the
    contributions due in that period. The result samples the balance at the
    start, at every year end and at the final period. When ``term_years``
    does not cover a whole number of compounding periods, the last period is
    shortened and earns simple interest on the fraction that elapses.

    ``total_contributions`` includes the initial principal, and
    ``total_return_percent`` is ``None`` when nothing was contributed.
    """
    principal = validate_non_negative(principal, "principal")
    rate = validate_non_negative(annual_rate_percent, "annual_rate_percent")
    contribution = validate_non_negative(contribution, "contribution")
    term_years = validate_positive(term_years, "term_years")
    k = periods_per_year(compounding_frequency, "compounding_frequency")
    c = periods_per_year(contribution_frequency, "contribution_frequency")

    total_periods = term_years * k
    whole_periods = int(total_periods)
    fraction = total_periods - whole_periods
    total_periods = whole_periods + (1 if fraction else 0)
    rate_per_period = rate / HUNDRED / k

    balance = principal
    total_contributions = principal
    samples: List[ProjectionPeriod] = [
        ProjectionPeriod(period=0, year=ZERO, balance=balance, contributions=balance, interest=ZERO)
    ]

    logger.debug(
        "Projecting %s at %s%% for %d %s periods, contributing %s %s",
        principal,
        rate,
        total_periods,
        compounding_frequency,
        contribution,
        contribution_frequency,
    )

    for period in bounded_periods(total_periods, "growth projection"):
        length = fraction if period > whole_periods else 1
        # Simple interest over a shortened final period
        balance += balance * rate_per_period * length
        due = contributions_due(period, k, c, length)
        if due:
            balance += contribution * due
            total_contributions += contribution * due

        if period % k == 0 or period == total_periods:
            samples.append(
                ProjectionPeriod(
                    period=period,
                    year=(period - 1 + length) / Decimal(k),
                    balance=balance,
                    contributions=total_contributions,
                    interest=balance - total_contributions,
                )
            )
        if period == total_periods:
            break

    total_interest = balance - total_contributions
    return ProjectionResult(
        periods=tuple(samples),
        final_balance=balance,
        total_contributions=total_contributions,
        total_interest=total_interest,
        total_return_percent=safe_ratio(total_interest * HUNDRED, total_contributions),
    )
