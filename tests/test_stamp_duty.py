from decimal import Decimal

import pytest

from finance_calc.data_models import AdditionalCharge, RegistrationFee, TaxBand
from finance_calc.errors import InvalidInput
from finance_calc.stamp_duty import calculate_property_tax, evaluate, registration_fee_amount

ENGLAND_STANDARD = [
    TaxBand(threshold=0, rate_percent=0),
    TaxBand(threshold=125000, rate_percent=2),
    TaxBand(threshold=250000, rate_percent=5),
    TaxBand(threshold=925000, rate_percent=10),
    TaxBand(threshold=1500000, rate_percent=12),
]


class TestEvaluate:
    def test_three_band_example(self):
        bands = [
            TaxBand(threshold=0, rate_percent=0),
            TaxBand(threshold=125000, rate_percent=2),
            TaxBand(threshold=250000, rate_percent=5),
        ]
        assert evaluate(200000, bands).total_tax == Decimal("1500")

    def test_spans_three_bands(self):
        result = evaluate(300000, ENGLAND_STANDARD)
        assert result.total_tax == Decimal("5000")
        assert [s.tax_in_band for s in result.per_band] == [Decimal("0"), Decimal("2500"), Decimal("2500")]

    def test_top_band_is_open_ended(self):
        result = evaluate(2000000, ENGLAND_STANDARD)
        assert result.total_tax == Decimal("153750")
        assert result.per_band[-1].end is None
        assert result.per_band[-1].value_in_band == Decimal("500000")

    def test_band_boundaries(self):
        result = evaluate(300000, ENGLAND_STANDARD)
        assert (result.per_band[1].start, result.per_band[1].end) == (Decimal("125000"), Decimal("249999"))

    def test_slices_add_up_to_value(self):
        for value in (1, 125000, 250001, 999999, 1500000, 3000000):
            result = evaluate(value, ENGLAND_STANDARD)
            assert sum(s.value_in_band for s in result.per_band) == value

    def test_value_on_threshold(self):
        result = evaluate(125000, ENGLAND_STANDARD)
        assert result.total_tax == 0
        assert len(result.per_band) == 1

    def test_zero_value(self):
        result = evaluate(0, ENGLAND_STANDARD)
        assert result.total_tax == 0
        assert result.per_band == ()

    def test_first_band_above_zero(self):
        result = evaluate(1000, [TaxBand(threshold=500, rate_percent=10)])
        assert result.total_tax == Decimal("50")

    def test_unordered_bands(self):
        with pytest.raises(InvalidInput):
            evaluate(1000, [TaxBand(threshold=100, rate_percent=1), TaxBand(threshold=50, rate_percent=2)])

    def test_duplicate_thresholds(self):
        with pytest.raises(InvalidInput):
            evaluate(1000, [TaxBand(threshold=0, rate_percent=1), TaxBand(threshold=0, rate_percent=2)])

    def test_empty_bands(self):
        with pytest.raises(InvalidInput):
            evaluate(1000, [])

    def test_negative_value(self):
        with pytest.raises(InvalidInput):
            evaluate(-1, ENGLAND_STANDARD)


class TestRegistrationFee:
    def test_capped_percentage(self):
        fee = RegistrationFee(amount=1, cap=30000)
        assert registration_fee_amount(Decimal("1000000"), fee) == Decimal("10000")
        assert registration_fee_amount(Decimal("5000000"), fee) == Decimal("30000")

    def test_fixed_amount(self):
        assert registration_fee_amount(Decimal("1000000"), RegistrationFee(amount=100)) == Decimal("100")

    def test_no_fee(self):
        assert registration_fee_amount(Decimal("1000000"), None) == 0


class TestCalculatePropertyTax:
    def test_surcharge_on_whole_value(self):
        result = calculate_property_tax(200000, ENGLAND_STANDARD, surcharge_percent=2)
        assert result.surcharge == Decimal("4000")
        assert result.total_tax == Decimal("5500")
        assert result.effective_rate == Decimal("2.75")

    def test_additional_charges(self):
        result = calculate_property_tax(
            1000000,
            [TaxBand(threshold=0, rate_percent=6)],
            registration_fee=RegistrationFee(amount=100),
            additional_charges=[AdditionalCharge(name="Registration charge", rate_percent=1)],
        )
        assert result.additional_charges == (("Registration charge", Decimal("10000")),)
        assert result.total_tax == Decimal("70100")

    def test_zero_value_has_no_effective_rate(self):
        result = calculate_property_tax(0, ENGLAND_STANDARD)
        assert result.total_tax == 0
        assert result.effective_rate is None

    def test_negative_surcharge(self):
        with pytest.raises(InvalidInput):
            calculate_property_tax(100000, ENGLAND_STANDARD, surcharge_percent=-1)
