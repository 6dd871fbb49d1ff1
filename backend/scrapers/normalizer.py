"""
Record Normalizer

Converts heterogeneous raw records (table rows, API JSON, CSV uploads,
synthetic dicts) into ProjectRecord.

Rules:
- Each canonical field has an ordered alias list; the first alias present
  with a non-empty value wins. Keys are compared case- and
  separator-insensitively, so reraId, rera_id and "RERA ID" are the same key.
- Numeric coercion never raises; unparsable values become 0.
- projectType/status free text is classified by keyword tables.
- Booking percentage is derived only from total/available units.
- A record must end up with a district (explicit or from its registration
  id) and must have a name or a registration id, else ValidationError.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from constants import canonical_city
from .exceptions import ValidationError
from .field_extractors import (
    classify_project_type,
    classify_status,
    clean_text,
    extract_date,
    extract_district_from_id,
    extract_float,
    extract_integer,
    extract_money,
    extract_pincode,
    extract_price_range,
    placeholder_name,
)
from .records import LOW_CONFIDENCE_KEY, ProjectRecord, Provenance, RawRecord

logger = logging.getLogger(__name__)

# canonical field -> ordered aliases (compared after _key() folding)
FIELD_ALIASES: Dict[str, List[str]] = {
    "registration_id": [
        "registration_id", "registrationId", "rera_id", "reraId", "rera_project_id",
        "rera_number", "rera_no", "registration_no", "RegistrationNo", "projectRegNo",
        "reg_no", "rera_registration_no", "certificate_no",
    ],
    "name": ["name", "project_name", "projectName", "title", "project"],
    "promoter_name": [
        "promoter_name", "promoterName", "promoter", "developer_name", "developerName",
        "developer", "builder_name", "builder",
    ],
    "project_type": ["project_type", "projectType", "type", "category", "project_category"],
    "status": ["status", "project_status", "projectStatus", "registration_status"],
    "district": ["district", "city", "district_name", "city_name"],
    "locality": ["locality", "locality_name", "taluka", "village"],
    "pincode": ["pincode", "pin_code", "pin", "postal_code", "zipcode"],
    "address": ["address", "project_address", "site_address", "location"],
    "approved_on": [
        "approved_on", "approvedOn", "approved_date", "approval_date", "rera_approval_date",
        "registration_date", "date_of_registration",
    ],
    "completion_date": [
        "completion_date", "completionDate", "proposed_completion_date", "project_end_date",
        "end_date", "valid_upto", "possession_date",
    ],
    "total_units": ["total_units", "totalUnits", "units", "no_of_units", "number_of_units", "total_flats"],
    "available_units": ["available_units", "availableUnits", "units_available", "unsold_units", "available"],
    "booking_percentage": ["booking_percentage", "bookingPercentage", "booking_percent", "booked_percentage"],
    "project_area": [
        "project_area", "projectArea", "total_area_sqmt", "total_area", "area_sqmt", "land_area", "area",
    ],
    "total_buildings": ["total_buildings", "totalBuildings", "buildings", "no_of_buildings", "towers", "no_of_towers"],
    "min_price": ["min_price", "minPrice", "price_min", "starting_price", "price_from"],
    "max_price": ["max_price", "maxPrice", "price_max", "price_to"],
    "price": ["price", "price_range", "price_band"],
    "provenance": ["provenance"],
}


def _key(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(name).lower())


_FOLDED_ALIASES = {
    field_name: [_key(a) for a in aliases] for field_name, aliases in FIELD_ALIASES.items()
}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    # pandas NaN
    return isinstance(value, float) and value != value


def lookup(raw: RawRecord, field_name: str) -> Any:
    """First non-empty value among a canonical field's aliases, else None."""
    folded = {}
    for k, v in raw.items():
        folded.setdefault(_key(k), v)
    for alias in _FOLDED_ALIASES[field_name]:
        value = folded.get(alias)
        if not _is_empty(value):
            return value
    return None


def to_count(value: Any) -> int:
    """Non-negative int; 0 on anything unparsable."""
    parsed = extract_integer(value)
    if parsed is None or parsed < 0:
        return 0
    return parsed


def to_amount(value: Any) -> float:
    """Non-negative float; money strings (Lakh/Cr/₹) understood; 0.0 otherwise."""
    if isinstance(value, str):
        parsed = extract_money(value)
    else:
        parsed = extract_float(value)
    if parsed is None or parsed < 0:
        return 0.0
    return float(parsed)


def _date_field(value: Any) -> str:
    if _is_empty(value):
        return ""
    if hasattr(value, "strftime"):
        return value.strftime("%d-%m-%Y")
    return extract_date(value) or clean_text(value)


def resolve_district(raw: RawRecord, registration_id: str) -> str:
    """Explicit district/city, else the id's third segment, else ''."""
    district = canonical_city(clean_text(lookup(raw, "district")))
    if district:
        return district
    return extract_district_from_id(registration_id) or ""


def normalize(raw: RawRecord, provenance: Optional[str] = None) -> ProjectRecord:
    """
    Normalize one raw record.

    Args:
        raw: Raw dict from any source
        provenance: Overrides the record's own provenance tag

    Returns:
        ProjectRecord

    Raises:
        ValidationError: no name and no registration id, or no derivable district
    """
    registration_id = clean_text(lookup(raw, "registration_id"))
    name = clean_text(lookup(raw, "name"))

    if not registration_id and not name:
        raise ValidationError("Record has neither registration id nor name", field="registrationId")
    if not registration_id:
        raise ValidationError("Record has no registration id", field="registrationId")

    district = resolve_district(raw, registration_id)
    if not district:
        raise ValidationError(
            "District missing and not derivable from registration id",
            field="district",
            registration_id=registration_id,
        )

    total_units = to_count(lookup(raw, "total_units"))
    available_raw = lookup(raw, "available_units")
    if available_raw is None and total_units > 0:
        booked = lookup(raw, "booking_percentage")
        if booked is not None:
            pct = min(max(extract_float(booked) or 0.0, 0.0), 100.0)
            available_units = int(total_units * (100 - pct) / 100 + 0.5)
        else:
            available_units = 0
    else:
        available_units = to_count(available_raw)
    if total_units > 0:
        available_units = min(available_units, total_units)

    min_price = to_amount(lookup(raw, "min_price"))
    max_price = to_amount(lookup(raw, "max_price"))
    price_text = lookup(raw, "price")
    if price_text is not None and not (min_price or max_price):
        low, high = extract_price_range(str(price_text))
        min_price, max_price = low or 0.0, high or 0.0
    if max_price and min_price > max_price:
        min_price, max_price = max_price, min_price

    pincode_raw = lookup(raw, "pincode")
    pincode = extract_pincode(str(pincode_raw)) if pincode_raw is not None else None
    if not pincode:
        pincode = clean_text(pincode_raw)[:10] if pincode_raw is not None else ""

    source_provenance = clean_text(lookup(raw, "provenance"))
    valid_provenance = {p.value for p in Provenance}
    if provenance is None:
        provenance = source_provenance if source_provenance in valid_provenance else Provenance.LIVE_EXTRACTION.value

    return ProjectRecord(
        registration_id=registration_id,
        name=name or placeholder_name(registration_id),
        promoter_name=clean_text(lookup(raw, "promoter_name")),
        project_type=classify_project_type(lookup(raw, "project_type")),
        status=classify_status(lookup(raw, "status")),
        district=district,
        locality=clean_text(lookup(raw, "locality")),
        pincode=pincode,
        address=clean_text(lookup(raw, "address")),
        approved_on=_date_field(lookup(raw, "approved_on")),
        completion_date=_date_field(lookup(raw, "completion_date")),
        total_units=total_units,
        available_units=available_units,
        project_area=to_amount(lookup(raw, "project_area")),
        total_buildings=to_count(lookup(raw, "total_buildings")),
        min_price=min_price,
        max_price=max_price,
        provenance=provenance,
        is_low_confidence=bool(raw.get(LOW_CONFIDENCE_KEY, False)),
    )


def normalize_batch(
    raws: Iterable[RawRecord], provenance: Optional[str] = None
) -> Tuple[List[ProjectRecord], List[ValidationError]]:
    """
    Normalize many records; rejected ones are collected, not raised.

    Returns:
        (records, rejections)
    """
    records = []
    rejections = []
    for raw in raws:
        try:
            records.append(normalize(raw, provenance))
        except ValidationError as e:
            rejections.append(e)
    if rejections:
        logger.info(f"Normalizer rejected {len(rejections)} record(s)")
    return records, rejections
