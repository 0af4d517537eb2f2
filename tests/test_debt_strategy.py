import logging
from decimal import Decimal

import pytest

from finance_calc.data_models import Debt
from finance_calc.debt_strategy import (
    MAX_MONTHS,
    compare_strategies,
    non_amortizing_debts,
    order_debts,
    simulate,
    simulate_consolidation,
    weighted_average_rate,
)
from finance_calc.errors import InvalidInput, NonConvergent

TOLERANCE = Decimal("0.001")


@pytest.fixture
def household_debts():
    return [
        Debt(id="card", name="Credit card", balance=5000, annual_rate_percent=Decimal("18.9"), min_payment=150),
        Debt(id="car", name="Car loan", balance=10000, annual_rate_percent=Decimal("9.5"), min_payment=250),
        Debt(id="store", name="Store card", balance=2000, annual_rate_percent=Decimal("22.5"), min_payment=60),
    ]


@pytest.fixture
def diverging_debts():
    # Avalanche and snowball pick different targets for these
    return [
        Debt(id="a", name="Small", balance=1000, annual_rate_percent=5, min_payment=50),
        Debt(id="b", name="Expensive", balance=5000, annual_rate_percent=20, min_payment=100),
    ]


class TestOrderDebts:
    def test_avalanche_highest_rate_first(self, household_debts):
        assert [d.id for d in order_debts(household_debts, "avalanche")] == ["store", "card", "car"]

    def test_snowball_lowest_balance_first(self, diverging_debts):
        assert [d.id for d in order_debts(diverging_debts, "snowball")] == ["a", "b"]
        assert [d.id for d in order_debts(diverging_debts, "avalanche")] == ["b", "a"]

    def test_ties_keep_input_order(self):
        debts = [
            Debt(id="x", name="X", balance=100, annual_rate_percent=10, min_payment=10),
            Debt(id="y", name="Y", balance=100, annual_rate_percent=10, min_payment=10),
        ]
        assert [d.id for d in order_debts(debts, "avalanche")] == ["x", "y"]
        assert [d.id for d in order_debts(debts, "snowball")] == ["x", "y"]

    def test_unknown_strategy(self, household_debts):
        with pytest.raises(InvalidInput):
            order_debts(household_debts, "tsunami")


class TestSimulate:
    def test_household_debts_are_cleared(self, household_debts):
        result = simulate(household_debts, 100, "avalanche")
        assert 0 < result.months_to_payoff < MAX_MONTHS
        assert set(result.payoff_months) == {"card", "car", "store"}
        assert result.months_to_payoff == max(result.payoff_months.values())
        assert result.per_month_balances[-1] == 0

    def test_avalanche_targets_highest_rate_first(self, household_debts):
        result = simulate(household_debts, 100, "avalanche")
        assert result.payoff_months["store"] == min(result.payoff_months.values())

    def test_avalanche_never_costs_more_than_snowball(self, household_debts, diverging_debts):
        for debts in (household_debts, diverging_debts):
            avalanche = simulate(debts, 200, "avalanche")
            snowball = simulate(debts, 200, "snowball")
            assert avalanche.total_interest_paid <= snowball.total_interest_paid

    def test_avalanche_cheaper_when_targets_differ(self, diverging_debts):
        avalanche = simulate(diverging_debts, 200, "avalanche")
        snowball = simulate(diverging_debts, 200, "snowball")
        assert avalanche.total_interest_paid < snowball.total_interest_paid
        assert snowball.payoff_months["a"] < avalanche.payoff_months["a"]

    def test_total_paid_is_balance_plus_interest(self, diverging_debts):
        result = simulate(diverging_debts, 200, "snowball")
        assert abs(result.total_paid - (Decimal("6000") + result.total_interest_paid)) < TOLERANCE
        assert abs(sum(result.monthly_payments) - result.total_paid) < TOLERANCE
        assert sum(result.monthly_interest) == result.total_interest_paid

    def test_monthly_series_have_one_entry_per_month(self, household_debts):
        result = simulate(household_debts, 100, "snowball")
        assert len(result.per_month_balances) == result.months_to_payoff
        assert len(result.monthly_payments) == result.months_to_payoff
        assert len(result.monthly_interest) == result.months_to_payoff

    def test_zero_interest_single_debt(self):
        debt = Debt(id="1", name="Loan", balance=1000, annual_rate_percent=0, min_payment=100)
        result = simulate([debt], 0, "avalanche")
        assert result.months_to_payoff == 10
        assert result.total_interest_paid == 0
        assert result.total_paid == Decimal("1000")

    def test_extra_payment_speeds_up_payoff(self):
        debt = Debt(id="1", name="Loan", balance=1000, annual_rate_percent=0, min_payment=100)
        assert simulate([debt], 100, "avalanche").months_to_payoff == 5

    def test_freed_minimum_joins_pool_next_month(self):
        debts = [
            Debt(id="a", name="Tiny", balance=100, annual_rate_percent=0, min_payment=100),
            Debt(id="b", name="Big", balance=1000, annual_rate_percent=0, min_payment=100),
        ]
        result = simulate(debts, 0, "snowball")
        assert result.payoff_months == {"a": 1, "b": 6}
        assert result.per_month_balances[:2] == [Decimal("900"), Decimal("700")]

    def test_min_payment_larger_than_balance(self):
        debt = Debt(id="1", name="Loan", balance=50, annual_rate_percent=12, min_payment=100)
        result = simulate([debt], 0, "snowball")
        assert result.months_to_payoff == 1
        assert result.total_paid == Decimal("50.5")

    def test_non_convergent_names_the_debt(self, caplog):
        debts = [
            Debt(id="ok", name="Fine", balance=1000, annual_rate_percent=10, min_payment=100),
            Debt(id="stuck", name="Payday", balance=10000, annual_rate_percent=24, min_payment=100),
        ]
        with caplog.at_level(logging.WARNING, logger="finance_calc.debt_strategy"):
            with pytest.raises(NonConvergent) as excinfo:
                simulate(debts, 0, "avalanche")
        assert excinfo.value.debt_ids == ("stuck",)
        assert excinfo.value.periods == MAX_MONTHS
        assert "Payday" in str(excinfo.value)
        assert "does not cover its monthly interest" in caplog.text

    def test_extra_rescues_non_amortizing_debt(self):
        debt = Debt(id="stuck", name="Payday", balance=10000, annual_rate_percent=24, min_payment=100)
        result = simulate([debt], 500, "avalanche")
        assert result.per_month_balances[-1] == 0

    @pytest.mark.parametrize(
        "debts",
        [
            [],
            [Debt(id="1", name="A", balance=0, annual_rate_percent=5, min_payment=10)],
            [Debt(id="1", name="A", balance=100, annual_rate_percent=-5, min_payment=10)],
            [Debt(id="1", name="A", balance=100, annual_rate_percent=5, min_payment=0)],
            [
                Debt(id="1", name="A", balance=100, annual_rate_percent=5, min_payment=10),
                Debt(id="1", name="B", balance=200, annual_rate_percent=5, min_payment=10),
            ],
        ],
    )
    def test_invalid_debts(self, debts):
        with pytest.raises(InvalidInput):
            simulate(debts, 0, "avalanche")

    def test_negative_extra(self, household_debts):
        with pytest.raises(InvalidInput):
            simulate(household_debts, -1, "avalanche")

    def test_inputs_are_not_modified(self, household_debts):
        simulate(household_debts, 100, "avalanche")
        assert household_debts[0].balance == 5000


class TestHelpers:
    def test_weighted_average_rate(self, diverging_debts):
        assert weighted_average_rate(diverging_debts) == Decimal("17.5")

    def test_non_amortizing_debts(self):
        debts = [
            Debt(id="ok", name="Fine", balance=1000, annual_rate_percent=12, min_payment=11),
            Debt(id="edge", name="Edge", balance=1000, annual_rate_percent=12, min_payment=10),
        ]
        assert [d.id for d in non_amortizing_debts(debts)] == ["edge"]


class TestConsolidation:
    def test_zero_rate(self):
        result = simulate_consolidation(1200, 0, 100)
        assert result.strategy == "consolidation"
        assert result.months_to_payoff == 12
        assert result.total_interest_paid == 0
        assert result.total_paid == Decimal("1200")

    def test_with_interest(self):
        result = simulate_consolidation(10000, 12, 1000)
        assert result.months_to_payoff == 11
        assert result.total_interest_paid > 0
        assert result.per_month_balances[-1] == 0

    def test_payment_below_interest(self):
        with pytest.raises(NonConvergent):
            simulate_consolidation(100000, 24, 100)


class TestCompareStrategies:
    def test_runs_all_three(self, household_debts):
        comparison = compare_strategies(household_debts, 100)
        assert comparison.avalanche.strategy == "avalanche"
        assert comparison.snowball.strategy == "snowball"
        assert comparison.consolidation.strategy == "consolidation"
        assert comparison.consolidation.monthly_payments[0] == Decimal("560")

    def test_recommends_lowest_interest(self, diverging_debts):
        comparison = compare_strategies(diverging_debts, 200)
        results = {
            "avalanche": comparison.avalanche,
            "snowball": comparison.snowball,
            "consolidation": comparison.consolidation,
        }
        lowest = min(r.total_interest_paid for r in results.values())
        assert results[comparison.recommended].total_interest_paid == lowest

    def test_ties_prefer_avalanche(self):
        debts = [
            Debt(id="a", name="A", balance=500, annual_rate_percent=0, min_payment=50),
            Debt(id="b", name="B", balance=800, annual_rate_percent=0, min_payment=50),
        ]
        assert compare_strategies(debts, 0).recommended == "avalanche"
