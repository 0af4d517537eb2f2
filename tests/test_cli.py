import json
from decimal import Decimal

import click
import pytest
from click.testing import CliRunner

from finance_calc.main import cli, parse_amount, parse_percent, parse_scenario_opts


@pytest.fixture
def runner():
    return CliRunner()


def run_json(runner, args):
    result = runner.invoke(cli, args + ["--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestParseAmount:
    def test_suffixes(self):
        assert parse_amount("500k") == 500000
        assert parse_amount("2.5m") == 2500000
        assert parse_amount("250,000") == 250000

    def test_invalid(self):
        with pytest.raises(click.BadParameter):
            parse_amount("lots")

    def test_suffix_amounts_are_exact(self):
        assert parse_amount("1.1k") == Decimal("1100")
        assert parse_amount("0.3m") == Decimal("300000")
        assert isinstance(parse_amount("1,000"), Decimal)

    def test_percent(self):
        assert parse_percent("18.9%") == Decimal("18.9")
        with pytest.raises(click.BadParameter):
            parse_percent("high")

    def test_scenario_options(self):
        params = parse_scenario_opts("-p 500k -r 3.5 -t 30 --grace 6")
        assert params["principal"] == "500k"
        assert params["rate"] == 3.5
        assert params["term"] == 30
        assert params["grace"] == 6


class TestLoanCommands:
    def test_schedule_json(self, runner):
        data = run_json(runner, ["schedule", "-p", "100000", "-r", "6", "-t", "1"])
        assert len(data["schedule"]) == 12
        assert data["schedule"][-1]["balance"] == 0
        assert data["summary"]["months"] == 12

    def test_schedule_text(self, runner):
        result = runner.invoke(cli, ["schedule", "-p", "100k", "-r", "6", "-t", "1"])
        assert result.exit_code == 0
        assert "Monthly payment" in result.output
        assert "Month\tPayment" in result.output

    def test_schedule_rows_limited(self, runner):
        result = runner.invoke(cli, ["schedule", "-p", "100k", "-r", "6", "-t", "30", "--max-rows", "24"])
        assert result.exit_code == 0
        assert "showing first 24 rows" in result.output

    def test_summary_with_down_payment(self, runner):
        data = run_json(runner, ["summary", "-p", "300k", "-r", "4", "-t", "25", "-d", "60k", "--fee", "arrangement=999"])
        assert data["summary"]["principal"] == 240000
        assert data["summary"]["loan_to_value_percent"] == 80
        assert data["summary"]["fees"] == 999

    def test_grace_period(self, runner):
        data = run_json(runner, ["summary", "-p", "100000", "-r", "6", "-t", "10", "--grace", "6"])
        assert data["summary"]["months"] == 126
        assert data["summary"]["grace_period_interest"] == 3000

    def test_overpay(self, runner):
        data = run_json(runner, ["overpay", "-p", "200000", "-r", "3.5", "-t", "25", "--extra", "10000:one-time:12"])
        assert data["months_saved"] > 0
        assert data["total_extra_paid"] == 10000

    def test_overpay_after_down_payment(self, runner):
        data = run_json(
            runner, ["overpay", "-p", "300k", "-r", "5", "-t", "25", "-d", "100k", "--extra", "1000:one-time:1"]
        )
        assert data["interest_saved"] > 0
        assert data["months_saved"] > 0

    def test_overpay_bad_extra(self, runner):
        result = runner.invoke(cli, ["overpay", "-p", "200000", "-r", "3.5", "-t", "25", "--extra", "10000"])
        assert result.exit_code == 2

    def test_invalid_loan_reports_error(self, runner):
        result = runner.invoke(cli, ["summary", "-p", "0", "-r", "5", "-t", "25"])
        assert result.exit_code == 1
        assert "principal" in result.output

    def test_compare(self, runner):
        result = runner.invoke(
            cli,
            ["compare", "--scenario1", "-p 500k -r 3.5 -t 30", "--scenario2", "-p 500k -r 3.2 -t 25"],
        )
        assert result.exit_code == 0
        assert "total_interest" in result.output


class TestOtherCommands:
    def test_debts_single_strategy(self, runner):
        data = run_json(runner, ["debts", "--debt", "Card:1000:0:100", "--strategy", "avalanche"])
        assert data["months_to_payoff"] == 10

    def test_debts_comparison(self, runner):
        data = run_json(
            runner,
            ["debts", "--debt", "Card:5000:18.9:150", "--debt", "Car:10000:9.5:250", "--debt", "Store:2000:22.5:60", "--extra", "100"],
        )
        assert data["recommended"] in ("avalanche", "snowball", "consolidation")
        assert data["avalanche"]["total_interest_paid"] <= data["snowball"]["total_interest_paid"]

    def test_debts_text(self, runner):
        result = runner.invoke(cli, ["debts", "--debt", "Card:1000:0:100", "--debt", "Loan:2000:5:100"])
        assert result.exit_code == 0
        assert "Recommended" in result.output

    def test_non_convergent_debts(self, runner):
        result = runner.invoke(cli, ["debts", "--debt", "Payday:10000:24:100", "--strategy", "snowball"])
        assert result.exit_code == 1
        assert "Payday" in result.output

    def test_stamp_duty(self, runner):
        data = run_json(runner, ["stamp-duty", "--value", "200000"])
        assert data["total_tax"] == 1500

    def test_stamp_duty_text(self, runner):
        result = runner.invoke(cli, ["stamp-duty", "--value", "300k", "--buyer", "firstTimeBuyer"])
        assert result.exit_code == 0
        assert "Stamp Duty Land Tax" in result.output

    def test_stamp_duty_on_date(self, runner):
        data = run_json(runner, ["stamp-duty", "--value", "200000", "--date", "2023-06-01"])
        assert data["total_tax"] == 0

    def test_stamp_duty_unknown_location(self, runner):
        result = runner.invoke(cli, ["stamp-duty", "--value", "200000", "--location", "atlantis"])
        assert result.exit_code == 1
        assert "No rate table" in result.output

    def test_stamp_duty_custom_rates(self, runner, tmp_path):
        path = tmp_path / "rates.json"
        path.write_text(json.dumps({"en-GB": {"england": {"tables": {"standard": [{"threshold": 0, "rate": 10}]}}}}))
        data = run_json(runner, ["stamp-duty", "--value", "1000", "--rates", str(path)])
        assert data["total_tax"] == 100

    def test_invest(self, runner):
        data = run_json(runner, ["invest", "-p", "1000", "-r", "12", "-y", "2", "--compounding", "annually"])
        assert data["final_balance"] == pytest.approx(1254.4)

    def test_invest_text(self, runner):
        result = runner.invoke(cli, ["invest", "-p", "1000", "-r", "5", "-y", "3", "--contribution", "100"])
        assert result.exit_code == 0
        assert "Final balance" in result.output

    def test_afford(self, runner):
        data = run_json(runner, ["afford", "--income", "5000", "--debts", "500", "-d", "20k", "-r", "0", "-t", "10"])
        assert data["max_price"] == 176000

    def test_verbose_flag(self, runner):
        result = runner.invoke(cli, ["--verbose", "stamp-duty", "--value", "200000"])
        assert result.exit_code == 0
