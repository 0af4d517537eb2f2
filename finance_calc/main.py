"""Command‑line interface for the finance calculators.

This module uses the ``click`` library to implement a multi‑command
interface over the calculators: loan schedules and summaries, early
repayment, debt payoff strategies, stamp duty, investment growth,
affordability and loan comparison. Results are printed as text tables, or
dumped as JSON with ``--json``.
"""

from __future__ import annotations

import functools
import json
import logging
import shlex
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Tuple

import click

from .affordability import affordability_details
from .amortization import compute_loan
from .data_models import (
    BUYER_STATUSES,
    EXTRA_PAYMENT_FREQUENCIES,
    LOAN_TYPES,
    Debt,
    ExtraPayment,
    LoanTerms,
)
from .debt_strategy import compare_strategies, simulate
from .early_repayment import apply_extra_payments
from .errors import CalculationError, InvalidInput
from .formatter import (
    print_affordability,
    print_comparison,
    print_projection,
    print_property_tax,
    print_repayment_comparison,
    print_schedule,
    print_strategies,
    print_summary,
    to_jsonable,
)
from .growth import PERIODS_PER_YEAR, project
from .rate_tables import calculate_stamp_duty, get_location, load_rate_tables
from .utils import to_decimal

logger = logging.getLogger(__name__)

MAX_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000", "250,000") and shorthand with ``k``/``m``
    suffixes (e.g., "500k" meaning 500_000). Returns an exact ``Decimal``.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = Decimal("1")
    if value.endswith("k"):
        factor = Decimal("1000")
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal("1000000")
        value = value[:-1]
    try:
        return to_decimal(value, "amount") * factor
    except InvalidInput:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> Decimal:
    """Parse an annual rate in percent (e.g. "18.9" or "18.9%")."""
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return to_decimal(value, "rate")
    except InvalidInput:
        raise click.BadParameter(f"Invalid percentage: {value}")


def parse_extra_payment_strings(values: Tuple[str, ...]) -> List[ExtraPayment]:
    extras: List[ExtraPayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) not in (2, 3):
            raise click.BadParameter(
                f"Extra payment must be in AMOUNT:FREQUENCY[:START_MONTH] format; got {item}"
            )
        amount = parse_amount(parts[0])
        frequency = parts[1].lower()
        if frequency not in EXTRA_PAYMENT_FREQUENCIES:
            raise click.BadParameter(
                f"Extra payment frequency must be one of {', '.join(EXTRA_PAYMENT_FREQUENCIES)}; got {frequency}"
            )
        try:
            start_month = int(parts[2]) if len(parts) == 3 else 1
        except ValueError:
            raise click.BadParameter(f"Invalid start month in {item}")
        extras.append(ExtraPayment(amount=amount, frequency=frequency, start_month=start_month))
    return extras


def parse_debt_strings(values: Tuple[str, ...]) -> List[Debt]:
    debts: List[Debt] = []
    for index, item in enumerate(values, start=1):
        parts = item.split(":")
        if len(parts) != 4:
            raise click.BadParameter(f"Debt must be in NAME:BALANCE:RATE:MIN_PAYMENT format; got {item}")
        name, balance, rate, min_payment = parts
        debts.append(
            Debt(
                id=str(index),
                name=name,
                balance=parse_amount(balance),
                annual_rate_percent=parse_percent(rate),
                min_payment=parse_amount(min_payment),
            )
        )
    return debts


def parse_fee_strings(values: Tuple[str, ...]) -> Dict[str, Decimal]:
    fees: Dict[str, Decimal] = {}
    for item in values:
        name, sep, amount = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"Fee must be in NAME=AMOUNT format; got {item}")
        fees[name] = parse_amount(amount)
    return fees


def build_terms_from_options(
    principal: str,
    rate: float,
    term: float,
    loan_type: str = "repayment",
    grace: int = 0,
    capitalize_grace: bool = False,
) -> LoanTerms:
    return LoanTerms(
        principal=parse_amount(principal),
        annual_rate_percent=to_decimal(rate, "rate"),
        term_years=to_decimal(term, "term"),
        loan_type=loan_type,
        grace_period_months=grace,
        capitalize_grace_interest=capitalize_grace,
    )


@contextmanager
def calculation_errors() -> Iterator[None]:
    """Report calculator errors as click errors instead of tracebacks."""
    try:
        yield
    except CalculationError as exc:
        logger.debug("Calculation failed", exc_info=True)
        raise click.ClickException(str(exc)) from exc


def echo_json(data: Any) -> None:
    click.echo(json.dumps(to_jsonable(data), indent=2))


def loan_options(func):
    """Options shared by every command that describes a single loan."""

    @click.option("--principal", "-p", "principal", required=True, help="Loan amount or purchase price")
    @click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
    @click.option("--term", "-t", "term", required=True, type=float, help="Loan term in years")
    @click.option("--type", "loan_type", type=click.Choice(LOAN_TYPES), default="repayment", help="Loan type")
    @click.option("--grace", "grace", type=int, default=0, help="Grace period in months")
    @click.option(
        "--capitalize-grace",
        "capitalize_grace",
        is_flag=True,
        help="Add grace-period interest to the balance instead of tracking it separately",
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Loan, debt, tax and investment calculators."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--down-payment", "-d", "down_payment", help="Down payment amount")
@click.option("--trade-in", "trade_in", help="Trade-in value")
@click.option("--fee", "fee", multiple=True, help="One-off fee in NAME=AMOUNT format")
@click.option("--max-rows", "max_rows", type=int, default=MAX_ROWS, help="Schedule rows to print (0 for all)")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def schedule(
    principal: str,
    rate: float,
    term: float,
    loan_type: str,
    grace: int,
    capitalize_grace: bool,
    down_payment: Optional[str],
    trade_in: Optional[str],
    fee: Tuple[str, ...],
    max_rows: int,
    as_json: bool,
) -> None:
    """Compute and print the full amortization schedule."""
    terms = build_terms_from_options(principal, rate, term, loan_type, grace, capitalize_grace)
    with calculation_errors():
        schedule_entries, summary_data = compute_loan(
            terms,
            down_payment=parse_amount(down_payment) if down_payment else 0,
            trade_in_value=parse_amount(trade_in) if trade_in else 0,
            fees=parse_fee_strings(fee),
        )
    if as_json:
        echo_json({"summary": summary_data, "schedule": schedule_entries})
        return
    print_summary(summary_data)
    # Limit schedule length printed to avoid flooding the terminal
    if max_rows and len(schedule_entries) > max_rows:
        click.echo(f"Schedule has {len(schedule_entries)} rows; showing first {max_rows} rows.")
        print_schedule(schedule_entries[:max_rows])
    else:
        print_schedule(schedule_entries)


@cli.command()
@loan_options
@click.option("--down-payment", "-d", "down_payment", help="Down payment amount")
@click.option("--trade-in", "trade_in", help="Trade-in value")
@click.option("--fee", "fee", multiple=True, help="One-off fee in NAME=AMOUNT format")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def summary(
    principal: str,
    rate: float,
    term: float,
    loan_type: str,
    grace: int,
    capitalize_grace: bool,
    down_payment: Optional[str],
    trade_in: Optional[str],
    fee: Tuple[str, ...],
    as_json: bool,
) -> None:
    """Compute and print only the summary metrics for a loan."""
    terms = build_terms_from_options(principal, rate, term, loan_type, grace, capitalize_grace)
    with calculation_errors():
        _, summary_data = compute_loan(
            terms,
            down_payment=parse_amount(down_payment) if down_payment else 0,
            trade_in_value=parse_amount(trade_in) if trade_in else 0,
            fees=parse_fee_strings(fee),
        )
    if as_json:
        echo_json({"summary": summary_data})
    else:
        print_summary(summary_data)


@cli.command()
@loan_options
@click.option(
    "--extra",
    "extra",
    multiple=True,
    required=True,
    help="Extra payment in AMOUNT:FREQUENCY[:START_MONTH] format, e.g. 200:monthly:13",
)
@click.option("--down-payment", "-d", "down_payment", help="Down payment amount")
@click.option("--show-schedule", "show_schedule", is_flag=True, help="Print the modified schedule")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def overpay(
    principal: str,
    rate: float,
    term: float,
    loan_type: str,
    grace: int,
    capitalize_grace: bool,
    extra: Tuple[str, ...],
    down_payment: Optional[str],
    show_schedule: bool,
    as_json: bool,
) -> None:
    """Show the effect of extra payments on a loan."""
    terms = build_terms_from_options(principal, rate, term, loan_type, grace, capitalize_grace)
    extras = parse_extra_payment_strings(extra)
    with calculation_errors():
        baseline, _ = compute_loan(
            terms, down_payment=parse_amount(down_payment) if down_payment else 0
        )
        result = apply_extra_payments(baseline, terms, extras)
    if as_json:
        echo_json(result)
        return
    print_repayment_comparison(result)
    if show_schedule:
        print_schedule(result.modified, show_extra=True)


@cli.command()
@click.option("--debt", "debt", multiple=True, required=True, help="Debt in NAME:BALANCE:RATE:MIN_PAYMENT format")
@click.option("--extra", "extra", default="0", help="Extra amount paid each month on top of the minimums")
@click.option(
    "--strategy",
    "strategy",
    type=click.Choice(["all", "avalanche", "snowball"]),
    default="all",
    help="Strategy to simulate; 'all' also compares against consolidation",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def debts(debt: Tuple[str, ...], extra: str, strategy: str, as_json: bool) -> None:
    """Compare debt payoff strategies."""
    debt_list = parse_debt_strings(debt)
    extra_amount = parse_amount(extra)
    with calculation_errors():
        if strategy == "all":
            result = compare_strategies(debt_list, extra_amount)
        else:
            result = simulate(debt_list, extra_amount, strategy)
    if as_json:
        echo_json(result)
    elif strategy == "all":
        print_strategies(result)
    else:
        names = {d.id: d.name for d in debt_list}
        click.echo(f"{strategy}: paid off in {result.months_to_payoff} months")
        for debt_id, month in sorted(result.payoff_months.items(), key=lambda item: item[1]):
            click.echo(f"  {names[debt_id]:20s} cleared in month {month}")


@cli.command("stamp-duty")
@click.option("--value", "value", required=True, help="Property value")
@click.option("--region", "region", default="en-GB", show_default=True, help="Region (locale) of the rate tables")
@click.option("--location", "location", default="england", show_default=True, help="Location within the region")
@click.option("--buyer", "buyer", type=click.Choice(BUYER_STATUSES), default="standard", help="Buyer status")
@click.option("--property-type", "property_type", help="Property type with its own rates, e.g. nonResidential")
@click.option("--non-resident", "non_resident", is_flag=True, help="Apply the non-resident surcharge")
@click.option("--date", "on_date", help="Use the rates in force on this date (YYYY-MM-DD)")
@click.option("--rates", "rates", type=click.Path(exists=True, dir_okay=False), help="Rate table JSON file")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def stamp_duty(
    value: str,
    region: str,
    location: str,
    buyer: str,
    property_type: Optional[str],
    non_resident: bool,
    on_date: Optional[str],
    rates: Optional[str],
    as_json: bool,
) -> None:
    """Compute stamp duty on a property purchase."""
    try:
        purchase_date = date.fromisoformat(on_date) if on_date else None
    except ValueError:
        raise click.BadParameter(f"Invalid date: {on_date}")
    with calculation_errors():
        location_rates = get_location(load_rate_tables(rates), region, location)
        result = calculate_stamp_duty(
            parse_amount(value),
            location_rates,
            buyer_status=buyer,
            property_type=property_type,
            non_resident=non_resident,
            on_date=purchase_date,
        )
    if as_json:
        echo_json(result)
    else:
        print_property_tax(result, location_rates.name)


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Initial investment")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual return (percent)")
@click.option("--years", "-y", "years", required=True, type=float, help="Investment term in years")
@click.option("--contribution", "contribution", default="0", help="Regular contribution amount")
@click.option(
    "--contribution-frequency",
    "contribution_frequency",
    type=click.Choice(list(PERIODS_PER_YEAR)),
    default="monthly",
)
@click.option("--compounding", "compounding", type=click.Choice(list(PERIODS_PER_YEAR)), default="monthly")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def invest(
    principal: str,
    rate: float,
    years: float,
    contribution: str,
    contribution_frequency: str,
    compounding: str,
    as_json: bool,
) -> None:
    """Project the growth of an investment."""
    with calculation_errors():
        result = project(
            parse_amount(principal),
            rate,
            compounding,
            parse_amount(contribution),
            contribution_frequency,
            years,
        )
    if as_json:
        echo_json(result)
    else:
        print_projection(result)


@cli.command()
@click.option("--income", "income", required=True, help="Gross monthly income")
@click.option("--debts", "monthly_debts", default="0", help="Existing monthly debt payments")
@click.option("--down-payment", "-d", "down_payment", default="0", help="Down payment available")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=float, help="Loan term in years")
@click.option("--dti", "dti", type=float, default=0.36, show_default=True, help="Maximum debt-to-income ratio")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def afford(
    income: str,
    monthly_debts: str,
    down_payment: str,
    rate: float,
    term: float,
    dti: float,
    as_json: bool,
) -> None:
    """Estimate the maximum affordable property price."""
    with calculation_errors():
        result = affordability_details(
            parse_amount(income),
            parse_amount(monthly_debts),
            parse_amount(down_payment),
            rate,
            term,
            dti,
        )
    if as_json:
        echo_json(result)
    else:
        print_affordability(result)


def parse_scenario_opts(opts: str) -> Dict[str, Any]:
    """Convert a quoted scenario option string into loan parameters."""
    tokens = shlex.split(opts)
    params: Dict[str, Any] = {
        "principal": None,
        "rate": None,
        "term": None,
        "loan_type": "repayment",
        "grace": 0,
        "capitalize_grace": False,
    }
    converters = {
        "-p": ("principal", str),
        "--principal": ("principal", str),
        "-r": ("rate", float),
        "--rate": ("rate", float),
        "-t": ("term", float),
        "--term": ("term", float),
        "--type": ("loan_type", str),
        "--grace": ("grace", int),
    }
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token == "--capitalize-grace":
            params["capitalize_grace"] = True
        elif token in converters and i + 1 < len(tokens):
            i += 1
            key, convert = converters[token]
            try:
                params[key] = convert(tokens[i])
            except ValueError:
                raise click.BadParameter(f"Invalid value for {token}: {tokens[i]}")
        else:
            raise click.BadParameter(f"Unknown option in scenario: {token}")
        i += 1
    for required in ("principal", "rate", "term"):
        if params[required] is None:
            raise click.BadParameter(f"Scenario missing required option {required}")
    return params


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First scenario options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second scenario options quoted string")
def compare(scenario1: str, scenario2: str) -> None:
    """Compare two loan scenarios.

    Scenarios are provided as quoted option strings, for example:

        finance-calc compare --scenario1 "-p 500k -r 3.5 -t 30" --scenario2 "-p 500k -r 3.2 -t 25"
    """
    terms1 = build_terms_from_options(**parse_scenario_opts(scenario1))
    terms2 = build_terms_from_options(**parse_scenario_opts(scenario2))
    with calculation_errors():
        _, summary1 = compute_loan(terms1)
        _, summary2 = compute_loan(terms2)
    print_comparison(summary1, summary2)


if __name__ == "__main__":
    cli()
