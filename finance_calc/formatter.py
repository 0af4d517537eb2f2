"""Output helpers for the calculators.

This module renders calculator results as plain text tables and converts
them into JSON-serialisable structures. It is the only place where money is
rounded to cents; the calculators themselves keep full precision.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from .data_models import (
    AffordabilityResult,
    LoanSummary,
    PropertyTaxResult,
    ProjectionResult,
    RepaymentComparison,
    ScheduleEntry,
    StrategyComparison,
)
from .utils import round_money

RULE = "-" * 72


def money(amount: Optional[Decimal]) -> str:
    if amount is None:
        return "n/a"
    return f"{round_money(amount):,.2f}"


def percent(value: Optional[Decimal]) -> str:
    if value is None:
        return "n/a"
    return f"{value:.2f}%"


def to_jsonable(obj: Any) -> Any:
    """Convert results into structures ``json.dump`` accepts.

    Decimals become floats without rounding; dates become ISO strings.
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def print_summary(summary: LoanSummary) -> None:
    """Print a summary of loan metrics in a human‑readable format."""
    print("Summary")
    print(RULE)
    if summary.down_payment or summary.trade_in_value:
        print(f"Price              : {money(summary.original_principal)}")
        if summary.down_payment:
            print(f"Down payment       : {money(summary.down_payment)}")
        if summary.trade_in_value:
            print(f"Trade-in value     : {money(summary.trade_in_value)}")
        print(f"Loan to value      : {percent(summary.loan_to_value_percent)}")
    print(f"Principal financed : {money(summary.principal)}")
    print(f"Rate               : {summary.annual_rate_percent}% ({summary.loan_type})")
    print(f"Monthly payment    : {money(summary.monthly_payment)}")
    if summary.grace_period_months:
        print(
            f"Grace period       : {summary.grace_period_months} months, "
            f"interest {money(summary.grace_period_interest)}"
        )
    print(f"Total interest     : {money(summary.total_interest)}")
    if summary.fees:
        print(f"Fees               : {money(summary.fees)}")
    print(f"Total repayment    : {money(summary.total_repayment)}")
    print(f"Payments           : {summary.months} months")
    print(RULE)


def print_schedule(schedule: Iterable[ScheduleEntry], show_extra: bool = False) -> None:
    """Print the amortization schedule as a simple table.

    Parameters
    ----------
    schedule: Iterable[ScheduleEntry]
        The schedule entries to print.
    show_extra: bool
        Whether to include the ``Extra`` column with extra payments.
    """
    headers = ["Month", "Payment", "Principal", "Interest", "Balance"]
    if show_extra:
        headers.append("Extra")
    headers.append("Grace")
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.month),
            money(entry.payment),
            money(entry.principal_payment),
            money(entry.interest_payment),
            money(entry.balance),
        ]
        if show_extra:
            row.append(money(entry.extra_payment))
        row.append("Yes" if entry.is_grace_period else "No")
        print("\t".join(row))


def print_repayment_comparison(result: RepaymentComparison) -> None:
    print("Early repayment")
    print(RULE)
    print(f"Baseline interest  : {money(result.baseline_interest)}")
    print(f"New interest       : {money(result.modified_interest)}")
    print(f"Interest saved     : {money(result.interest_saved)}")
    print(f"Extra paid         : {money(result.total_extra_paid)}")
    roi = None if result.roi is None else result.roi * 100
    print(f"Return on extras   : {percent(roi)}")
    years, months = divmod(result.months_saved, 12)
    print(f"Term reduction     : {result.months_saved} months ({years}y {months}m)")
    print(RULE)


def print_strategies(comparison: StrategyComparison) -> None:
    """Print avalanche, snowball and consolidation side by side."""
    print("Debt payoff strategies")
    print("=" * 72)
    print(f"{'Strategy':16s} {'Months':>8s} {'Interest':>16s} {'Total paid':>16s}")
    for result in (comparison.avalanche, comparison.snowball, comparison.consolidation):
        print(
            f"{result.strategy:16s} {result.months_to_payoff:8d} "
            f"{money(result.total_interest_paid):>16s} {money(result.total_paid):>16s}"
        )
    print("=" * 72)
    print(f"Consolidated rate  : {percent(comparison.weighted_average_rate)}")
    print(f"Recommended        : {comparison.recommended}")


def print_property_tax(result: PropertyTaxResult, title: str = "Stamp duty") -> None:
    print(title)
    print(RULE)
    print(f"{'From':>14s} {'To':>14s} {'Rate':>8s} {'Taxable':>14s} {'Tax':>14s}")
    for band in result.banded.per_band:
        end = money(band.end) if band.end is not None else "and above"
        print(
            f"{money(band.start):>14s} {end:>14s} {percent(band.rate_percent):>8s} "
            f"{money(band.value_in_band):>14s} {money(band.tax_in_band):>14s}"
        )
    print(RULE)
    if result.surcharge:
        print(f"Surcharge          : {money(result.surcharge)}")
    if result.registration_fee:
        print(f"Registration fee   : {money(result.registration_fee)}")
    for name, amount in result.additional_charges:
        print(f"{name:19s}: {money(amount)}")
    print(f"Total tax          : {money(result.total_tax)}")
    print(f"Effective rate     : {percent(result.effective_rate)}")


def print_projection(result: ProjectionResult) -> None:
    print(f"{'Year':>6s} {'Balance':>16s} {'Contributions':>16s} {'Interest':>16s}")
    for sample in result.periods:
        print(
            f"{sample.year:6.2f} {money(sample.balance):>16s} "
            f"{money(sample.contributions):>16s} {money(sample.interest):>16s}"
        )
    print(RULE)
    print(f"Final balance      : {money(result.final_balance)}")
    print(f"Contributions      : {money(result.total_contributions)}")
    print(f"Interest earned    : {money(result.total_interest)}")
    print(f"Total return       : {percent(result.total_return_percent)}")


def print_affordability(result: AffordabilityResult) -> None:
    print("Affordability")
    print(RULE)
    print(f"Maximum price      : {money(result.max_price)}")
    print(f"  loan / payment   : {money(result.max_loan_amount)} / {money(result.max_payment)}")
    print(f"Conservative price : {money(result.conservative_price)}")
    print(
        f"  loan / payment   : {money(result.conservative_loan_amount)} / "
        f"{money(result.conservative_payment)}"
    )
    print(RULE)


def print_comparison(s1: LoanSummary, s2: LoanSummary) -> None:
    """Print a comparison of two loan summaries side by side.

    The difference column is scenario2 - scenario1, so a negative difference
    means the second scenario is cheaper or shorter.
    """
    print("Comparison")
    print("=" * 72)
    keys = [
        "monthly_payment",
        "total_interest",
        "total_repayment",
        "months",
    ]
    print(f"{'Metric':20s} {'Scenario1':>15s} {'Scenario2':>15s} {'Difference':>15s}")
    for key in keys:
        v1 = Decimal(getattr(s1, key))
        v2 = Decimal(getattr(s2, key))
        print(f"{key:20s} {money(v1):>15s} {money(v2):>15s} {money(v2 - v1):>15s}")
    print("=" * 72)
