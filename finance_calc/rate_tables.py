"""Loading and selecting stamp duty rate tables.

Rate tables are configuration, not code: they live in a JSON file keyed by
region (locale) and then by location. The bundled file covers the UK nations
and a few Indian states; set ``FINANCE_CALC_RATE_TABLES`` or pass a path to
use another one.

File layout::

    {
      "en-GB": {
        "england": {
          "name": "Stamp Duty Land Tax",
          "nonResidentSurcharge": 2,
          "registrationFee": 1, "registrationFeeCap": 30000,
          "additionalCharges": [{"name": "Metro cess", "rate": 1}],
          "validFrom": "2025-04-01",
          "tables": {"standard": [{"threshold": 0, "rate": 0}, ...], ...},
          "historicalRates": [
            {"description": "...", "validFrom": "...", "validTo": "...", "tables": {...}}
          ]
        }
      }
    }
"""

from __future__ import annotations

import json
import logging
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .data_models import (
    BUYER_STATUSES,
    AdditionalCharge,
    LocationRates,
    PropertyTaxResult,
    RateTable,
    RegistrationFee,
    TaxBand,
)
from .errors import InvalidInput
from .stamp_duty import calculate_property_tax
from .utils import to_decimal
from .validators import normalize_bands, validate_choice

logger = logging.getLogger(__name__)

RATE_TABLES_ENV = "FINANCE_CALC_RATE_TABLES"
DEFAULT_RATE_TABLES = Path(__file__).resolve().parent / "data" / "rate_tables.json"

RateTables = Dict[str, Dict[str, LocationRates]]


def _parse_date(value: Optional[str], name: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must be a YYYY-MM-DD date, got {value!r}") from exc


def _parse_table(name: str, data: Dict[str, Any]) -> RateTable:
    tables = data.get("tables")
    if not isinstance(tables, dict) or not tables:
        raise InvalidInput(f"Rate table {name!r} has no band tables")
    bands = {}
    for key, rows in tables.items():
        try:
            bands[key] = normalize_bands(
                TaxBand(threshold=row["threshold"], rate_percent=row["rate"]) for row in rows
            )
        except (KeyError, TypeError) as exc:
            raise InvalidInput(f"Malformed band in {name!r} table {key!r}") from exc
    valid_from = _parse_date(data.get("validFrom"), f"{name} validFrom")
    valid_to = _parse_date(data.get("validTo"), f"{name} validTo")
    if valid_from and valid_to and valid_to < valid_from:
        raise InvalidInput(f"Rate table {name!r} ends before it starts")
    return RateTable(
        name=name,
        bands=bands,
        valid_from=valid_from,
        valid_to=valid_to,
        description=data.get("description", ""),
    )


def parse_location(key: str, data: Dict[str, Any]) -> LocationRates:
    """Build ``LocationRates`` from one location entry of the JSON file."""
    name = data.get("name", key)
    registration_fee = None
    if data.get("registrationFee") is not None:
        cap = data.get("registrationFeeCap")
        registration_fee = RegistrationFee(
            amount=to_decimal(data["registrationFee"], f"{key} registrationFee"),
            cap=to_decimal(cap, f"{key} registrationFeeCap") if cap is not None else None,
        )
    charges = tuple(
        AdditionalCharge(name=c["name"], rate_percent=to_decimal(c["rate"], c["name"]))
        for c in data.get("additionalCharges", ())
    )
    historical = tuple(
        _parse_table(period.get("description") or f"{name} (historical)", period)
        for period in data.get("historicalRates", ())
    )
    return LocationRates(
        key=key,
        name=name,
        current=_parse_table(name, data),
        historical=historical,
        non_resident_surcharge_percent=to_decimal(
            data.get("nonResidentSurcharge", 0), f"{key} nonResidentSurcharge"
        ),
        registration_fee=registration_fee,
        additional_charges=charges,
    )


def parse_rate_tables(data: Dict[str, Any]) -> RateTables:
    if not isinstance(data, dict):
        raise InvalidInput("Rate table configuration must be a JSON object")
    return {
        region: {key: parse_location(key, location) for key, location in locations.items()}
        for region, locations in data.items()
        if isinstance(locations, dict)
    }


def load_rate_tables(path: Optional[os.PathLike] = None) -> RateTables:
    """Load rate tables from ``path``, ``$FINANCE_CALC_RATE_TABLES`` or the bundled file."""
    source = Path(path or os.environ.get(RATE_TABLES_ENV) or DEFAULT_RATE_TABLES)
    logger.debug("Loading rate tables from %s", source)
    with source.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise InvalidInput(f"Rate table file {source} is not valid JSON: {exc}") from exc
    return parse_rate_tables(data)


def get_location(tables: RateTables, region: str, location: str) -> LocationRates:
    try:
        return tables[region][location]
    except KeyError:
        available = ", ".join(f"{r}/{l}" for r, locs in tables.items() for l in locs)
        raise InvalidInput(f"No rate table for {region}/{location}; available: {available}") from None


def _covers(table: RateTable, on_date: date) -> bool:
    if table.valid_from and on_date < table.valid_from:
        return False
    if table.valid_to and on_date > table.valid_to:
        return False
    return True


def table_for_date(location: LocationRates, on_date: Optional[date] = None) -> RateTable:
    """Return the table in force on ``on_date`` (the current table when omitted)."""
    if on_date is None:
        return location.current
    for table in (location.current,) + location.historical:
        if _covers(table, on_date):
            return table
    raise InvalidInput(f"No {location.name} rates on record for {on_date.isoformat()}")


def resolve_bands(
    location: LocationRates,
    buyer_status: str = "standard",
    property_type: Optional[str] = None,
    on_date: Optional[date] = None,
) -> Tuple[TaxBand, ...]:
    """Pick the band table for a purchase.

    A table for the property type wins when the location has one; otherwise
    the buyer status decides, falling back to the standard table when the
    location makes no distinction for that status.
    """
    validate_choice(buyer_status, "buyer_status", BUYER_STATUSES)
    table = table_for_date(location, on_date)
    if property_type and property_type != "residential":
        if property_type in table.bands:
            return table.bands[property_type]
        raise InvalidInput(f"{location.name} has no rates for property type {property_type!r}")
    if buyer_status in table.bands:
        return table.bands[buyer_status]
    if "standard" in table.bands:
        return table.bands["standard"]
    raise InvalidInput(f"{table.name} has no standard rate table")


def calculate_stamp_duty(
    value,
    location: LocationRates,
    *,
    buyer_status: str = "standard",
    property_type: Optional[str] = None,
    non_resident: bool = False,
    on_date: Optional[date] = None,
) -> PropertyTaxResult:
    """Compute the tax due on a purchase in ``location``."""
    bands = resolve_bands(location, buyer_status, property_type, on_date)
    return calculate_property_tax(
        value,
        bands,
        surcharge_percent=location.non_resident_surcharge_percent if non_resident else 0,
        registration_fee=location.registration_fee,
        additional_charges=location.additional_charges,
    )
