"""Marginal band taxes such as stamp duty.

``evaluate`` splits a value across a band table and taxes each slice at its
band's rate. ``calculate_property_tax`` adds the charges levied on the whole
value: a flat surcharge (e.g. for non-resident buyers), a registration fee
and any named additional charges. Choosing the band table is the caller's
business; see :mod:`finance_calc.rate_tables`.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from .data_models import (
    AdditionalCharge,
    BandSlice,
    BandTaxResult,
    PropertyTaxResult,
    RegistrationFee,
    TaxBand,
)
from .utils import HUNDRED, ZERO, safe_ratio
from .validators import normalize_bands, validate_non_negative

logger = logging.getLogger(__name__)


def evaluate(value, bands: Iterable[TaxBand]) -> BandTaxResult:
    """Compute the banded tax on ``value``.

    Band ``i`` covers ``threshold[i]`` up to ``threshold[i + 1] - 1``; the
    last band is open-ended. Only bands that receive part of the value are
    listed in ``per_band``.
    """
    value = validate_non_negative(value, "value")
    bands = normalize_bands(bands)

    slices: List[BandSlice] = []
    total_tax = ZERO
    remaining = value

    for index, band in enumerate(bands):
        if remaining <= 0:
            break
        start = band.threshold
        if index + 1 < len(bands):
            end: Optional[Decimal] = bands[index + 1].threshold - 1
            width = end - start + 1
            value_in_band = min(max(ZERO, value - start), width)
        else:
            end = None
            value_in_band = max(ZERO, value - start)
        if value_in_band <= 0:
            continue

        tax_in_band = value_in_band * band.rate_percent / HUNDRED
        slices.append(
            BandSlice(
                start=start,
                end=end,
                rate_percent=band.rate_percent,
                value_in_band=value_in_band,
                tax_in_band=tax_in_band,
            )
        )
        total_tax += tax_in_band
        remaining -= value_in_band

    return BandTaxResult(per_band=tuple(slices), total_tax=total_tax)


def registration_fee_amount(value: Decimal, fee: Optional[RegistrationFee]) -> Decimal:
    """Return the registration fee due on ``value``.

    A capped fee is a percentage of the value limited to the cap; an uncapped
    fee is a fixed amount.
    """
    if fee is None:
        return ZERO
    amount = validate_non_negative(fee.amount, "registration fee")
    if fee.cap is not None:
        cap = validate_non_negative(fee.cap, "registration fee cap")
        return min(value * amount / HUNDRED, cap)
    return amount


def calculate_property_tax(
    value,
    bands: Iterable[TaxBand],
    *,
    surcharge_percent=0,
    registration_fee: Optional[RegistrationFee] = None,
    additional_charges: Iterable[AdditionalCharge] = (),
) -> PropertyTaxResult:
    """Compute banded tax plus the charges levied on the whole value.

    ``effective_rate`` is the total as a percentage of ``value``, or ``None``
    for a zero value.
    """
    value = validate_non_negative(value, "value")
    surcharge_percent = validate_non_negative(surcharge_percent, "surcharge_percent")

    banded = evaluate(value, bands)
    surcharge = value * surcharge_percent / HUNDRED
    fee = registration_fee_amount(value, registration_fee)
    charges: Tuple[Tuple[str, Decimal], ...] = tuple(
        (charge.name, value * validate_non_negative(charge.rate_percent, charge.name) / HUNDRED)
        for charge in additional_charges
    )

    total_tax = banded.total_tax + surcharge + fee + sum((amount for _, amount in charges), ZERO)
    effective_rate = safe_ratio(total_tax * HUNDRED, value)

    logger.debug("Property tax on %s: %s (effective rate %s%%)", value, total_tax, effective_rate)
    return PropertyTaxResult(
        value=value,
        banded=banded,
        surcharge=surcharge,
        registration_fee=fee,
        additional_charges=charges,
        total_tax=total_tax,
        effective_rate=effective_rate,
    )
