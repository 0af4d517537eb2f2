"""How much property a borrower can afford.

The monthly budget for a new loan is the income allowed by the
debt-to-income ratio minus existing debt payments. The largest loan that
budget repays over the term, plus the down payment, is the maximum price,
capped at ten times annual income plus the down payment.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from .amortization import monthly_payment
from .data_models import AffordabilityResult, LoanTerms
from .errors import InvalidInput
from .utils import MONTHS_PER_YEAR, ZERO, monthly_rate, to_decimal
from .validators import term_in_months, validate_non_negative, validate_positive

logger = logging.getLogger(__name__)

DEFAULT_DEBT_TO_INCOME = Decimal("0.36")
CONSERVATIVE_FACTOR = Decimal("0.9")
MAX_INCOME_MULTIPLE = 10
# Below this monthly rate the loan is treated as interest free
NEAR_ZERO_RATE = Decimal("0.0001")


def max_affordable_price(
    monthly_income,
    monthly_debts,
    down_payment,
    annual_rate_percent,
    term_years,
    debt_to_income_ratio=DEFAULT_DEBT_TO_INCOME,
) -> Decimal:
    """Return the maximum purchase price the borrower can afford.

    When the borrower has no income, or existing debts already use up the
    allowed ratio, only the down payment is affordable.
    """
    income = validate_non_negative(monthly_income, "monthly_income")
    debts = validate_non_negative(monthly_debts, "monthly_debts")
    down_payment = validate_non_negative(down_payment, "down_payment")
    rate = validate_non_negative(annual_rate_percent, "annual_rate_percent")
    term = term_in_months(validate_positive(term_years, "term_years"))
    ratio = to_decimal(debt_to_income_ratio, "debt_to_income_ratio")
    if not 0 < ratio <= 1:
        raise InvalidInput(f"debt_to_income_ratio must be in (0, 1], got {debt_to_income_ratio}")

    if income == 0:
        logger.warning("Affordability: no income, only the down payment is affordable")
        return down_payment

    budget = income * ratio - debts
    if budget <= 0:
        logger.warning("Affordability: current debts exceed the debt-to-income limit")
        return down_payment

    rate_per_month = monthly_rate(rate)
    if rate_per_month < NEAR_ZERO_RATE:
        max_loan = budget * term
    else:
        factor = (1 + rate_per_month) ** term
        max_loan = budget * (factor - 1) / (factor * rate_per_month)

    cap = income * MONTHS_PER_YEAR * MAX_INCOME_MULTIPLE + down_payment
    return min(max_loan + down_payment, cap)


def _payment_for(loan_amount: Decimal, rate: Decimal, term_years: Decimal) -> Decimal:
    if loan_amount <= 0:
        return ZERO
    return monthly_payment(LoanTerms(principal=loan_amount, annual_rate_percent=rate, term_years=term_years))


def affordability_details(
    monthly_income,
    monthly_debts,
    down_payment,
    annual_rate_percent,
    term_years,
    debt_to_income_ratio=DEFAULT_DEBT_TO_INCOME,
) -> AffordabilityResult:
    """Maximum and conservative (90 %) prices with their loans and payments."""
    max_price = max_affordable_price(
        monthly_income, monthly_debts, down_payment, annual_rate_percent, term_years, debt_to_income_ratio
    )
    down_payment = to_decimal(down_payment, "down_payment")
    rate = to_decimal(annual_rate_percent, "annual_rate_percent")
    term_years = to_decimal(term_years, "term_years")

    conservative_price = max_price * CONSERVATIVE_FACTOR
    max_loan = max(max_price - down_payment, ZERO)
    conservative_loan = max(conservative_price - down_payment, ZERO)

    return AffordabilityResult(
        max_price=max_price,
        conservative_price=conservative_price,
        max_loan_amount=max_loan,
        conservative_loan_amount=conservative_loan,
        max_payment=_payment_for(max_loan, rate, term_years),
        conservative_payment=_payment_for(conservative_loan, rate, term_years),
        down_payment=down_payment,
        debt_to_income_ratio=to_decimal(debt_to_income_ratio, "debt_to_income_ratio"),
    )
