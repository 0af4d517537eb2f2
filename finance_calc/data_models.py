"""Data models for the financial projection engine.

This module defines dataclasses representing the inputs the calculators
accept (loan terms, extra payments, debts, tax bands and rate tables) and
the results they return. Input dataclasses and schedule entries are frozen:
a schedule is a snapshot, and every calculator builds new entries instead
of editing the ones it was given.

Money and rate fields are ``Decimal`` once they have passed validation. The
validators in :mod:`finance_calc.validators` accept ints, floats and strings
and return normalised copies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Tuple

LOAN_TYPES = ("repayment", "interest-only")
EXTRA_PAYMENT_FREQUENCIES = ("monthly", "quarterly", "annually", "one-time")
STRATEGIES = ("avalanche", "snowball")
BUYER_STATUSES = ("standard", "firstTimeBuyer", "additionalProperty")


@dataclass(frozen=True)
class LoanTerms:
    """Parameters of a single loan.

    Attributes
    ----------
    principal: Decimal
        The amount borrowed.
    annual_rate_percent: Decimal
        Nominal annual interest rate in percent (``3.5`` means 3.5 %).
    term_years: Decimal
        Repayment term in years, excluding any grace period. ``term_years *
        12`` must be a whole number of months.
    loan_type: str
        ``"repayment"`` (level payments) or ``"interest-only"`` (balloon at
        the end).
    grace_period_months: int
        Months before repayment starts during which no payment is due.
    capitalize_grace_interest: bool
        When True, grace-period interest is added to the balance. By default
        it is tracked separately and reported in the loan summary.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    term_years: Decimal
    loan_type: str = "repayment"
    grace_period_months: int = 0
    capitalize_grace_interest: bool = False


@dataclass(frozen=True)
class ScheduleEntry:
    """One month of an amortization schedule.

    ``principal_payment`` includes any extra payment made that month; the
    extra part alone is kept in ``extra_payment`` so that
    ``balance == previous balance - principal_payment`` holds for every
    month outside the grace period.
    """

    month: int
    payment: Decimal
    principal_payment: Decimal
    interest_payment: Decimal
    balance: Decimal
    is_grace_period: bool = False
    extra_payment: Decimal = Decimal("0")


@dataclass(frozen=True)
class ExtraPayment:
    """A recurring or one-off payment made on top of the regular installment."""

    amount: Decimal
    frequency: str = "one-time"
    start_month: int = 1


@dataclass(frozen=True)
class Debt:
    """A debt taking part in a payoff strategy simulation."""

    id: str
    name: str
    balance: Decimal
    annual_rate_percent: Decimal
    min_payment: Decimal


@dataclass(frozen=True)
class TaxBand:
    """A marginal band starting at ``threshold`` and taxed at ``rate_percent``."""

    threshold: Decimal
    rate_percent: Decimal


@dataclass(frozen=True)
class RateTable:
    """Band tables keyed by buyer status or property type.

    Historical tables carry the date range they applied to; the current
    table leaves both ends open.
    """

    name: str
    bands: Dict[str, Tuple[TaxBand, ...]]
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    description: str = ""


@dataclass(frozen=True)
class RegistrationFee:
    """Registration fee charged on top of the banded tax.

    With ``cap`` set, ``amount`` is a percentage of the value and the fee is
    capped; without it, ``amount`` is a fixed fee.
    """

    amount: Decimal
    cap: Optional[Decimal] = None


@dataclass(frozen=True)
class AdditionalCharge:
    """A named flat-rate charge levied on the whole value."""

    name: str
    rate_percent: Decimal


@dataclass(frozen=True)
class LocationRates:
    """Everything needed to compute property tax for one location."""

    key: str
    name: str
    current: RateTable
    historical: Tuple[RateTable, ...] = ()
    non_resident_surcharge_percent: Decimal = Decimal("0")
    registration_fee: Optional[RegistrationFee] = None
    additional_charges: Tuple[AdditionalCharge, ...] = ()


@dataclass
class LoanSummary:
    """Aggregate figures for a loan and its schedule."""

    principal: Decimal
    original_principal: Decimal
    annual_rate_percent: Decimal
    term_years: Decimal
    loan_type: str
    monthly_payment: Decimal
    months: int
    total_payments: Decimal
    total_interest: Decimal
    grace_period_months: int
    grace_period_interest: Decimal
    fees: Decimal
    total_repayment: Decimal
    down_payment: Decimal = Decimal("0")
    trade_in_value: Decimal = Decimal("0")
    loan_to_value_percent: Optional[Decimal] = None


@dataclass
class RepaymentComparison:
    """Outcome of applying extra payments to a baseline schedule."""

    modified: list
    months_saved: int
    interest_saved: Decimal
    total_extra_paid: Decimal
    roi: Optional[Decimal]
    baseline_interest: Decimal
    modified_interest: Decimal


@dataclass
class PayoffResult:
    """Month-by-month outcome of paying off one or more debts.

    ``per_month_balances[i]`` is the total outstanding balance at the end of
    month ``i + 1``. ``payoff_months`` maps each debt id to the month it was
    cleared.
    """

    strategy: str
    months_to_payoff: int
    total_interest_paid: Decimal
    total_paid: Decimal
    per_month_balances: list = field(default_factory=list)
    monthly_payments: list = field(default_factory=list)
    monthly_interest: list = field(default_factory=list)
    payoff_months: Dict[str, int] = field(default_factory=dict)


@dataclass
class StrategyComparison:
    """Avalanche, snowball and consolidation side by side."""

    avalanche: PayoffResult
    snowball: PayoffResult
    consolidation: PayoffResult
    weighted_average_rate: Decimal
    recommended: str


@dataclass(frozen=True)
class BandSlice:
    """The part of a value falling into one tax band.

    ``end`` is None for the open-ended top band.
    """

    start: Decimal
    end: Optional[Decimal]
    rate_percent: Decimal
    value_in_band: Decimal
    tax_in_band: Decimal


@dataclass
class BandTaxResult:
    per_band: Tuple[BandSlice, ...]
    total_tax: Decimal


@dataclass
class PropertyTaxResult:
    """Banded tax plus surcharge, registration fee and additional charges."""

    value: Decimal
    banded: BandTaxResult
    surcharge: Decimal
    registration_fee: Decimal
    additional_charges: Tuple[Tuple[str, Decimal], ...]
    total_tax: Decimal
    effective_rate: Optional[Decimal]


@dataclass(frozen=True)
class ProjectionPeriod:
    """A sampled point of an investment projection."""

    period: int
    year: Decimal
    balance: Decimal
    contributions: Decimal
    interest: Decimal


@dataclass
class ProjectionResult:
    periods: Tuple[ProjectionPeriod, ...]
    final_balance: Decimal
    total_contributions: Decimal
    total_interest: Decimal
    total_return_percent: Optional[Decimal]


@dataclass
class AffordabilityResult:
    """Maximum and conservative purchase prices for a borrower."""

    max_price: Decimal
    conservative_price: Decimal
    max_loan_amount: Decimal
    conservative_loan_amount: Decimal
    max_payment: Decimal
    conservative_payment: Decimal
    down_payment: Decimal
    debt_to_income_ratio: Decimal
