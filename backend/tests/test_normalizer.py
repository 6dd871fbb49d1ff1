"""
Tests for the record normalizer and the booking percentage derivation.
"""

import pytest

from scrapers.exceptions import ValidationError
from scrapers.normalizer import lookup, normalize, normalize_batch, to_amount, to_count
from scrapers.records import LOW_CONFIDENCE_KEY, ProjectRecord, compute_booking_percentage

REG_ID = "PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA07123/070920"


# =============================================================================
# Booking percentage
# =============================================================================

class TestBookingPercentage:

    @pytest.mark.parametrize("total,available,expected", [
        (100, 25, 75),
        (200, 200, 0),
        (200, 0, 100),
        (3, 1, 67),
        (8, 1, 88),     # 87.5 rounds half up
        (0, 0, 0),
        (0, 10, 0),
        (50, 80, 0),    # available above total counts as unsold
    ])
    def test_derivation(self, total, available, expected):
        assert compute_booking_percentage(total, available) == expected

    def test_record_derives_on_construction(self):
        record = ProjectRecord(registration_id=REG_ID, total_units=400, available_units=100,
                               booking_percentage=5)
        assert record.booking_percentage == 75


# =============================================================================
# Field aliases
# =============================================================================

class TestLookup:

    def test_first_alias_wins(self):
        raw = {"rera_id": "A", "registration_id": "B"}
        assert lookup(raw, "registration_id") == "B"

    def test_case_and_separator_insensitive(self):
        assert lookup({"RERA ID": REG_ID}, "registration_id") == REG_ID
        assert lookup({"reraId": REG_ID}, "registration_id") == REG_ID

    def test_empty_values_skipped(self):
        raw = {"name": "  ", "project_name": "Skyline"}
        assert lookup(raw, "name") == "Skyline"

    def test_coercion_never_raises(self):
        assert to_count("n/a") == 0
        assert to_count(-5) == 0
        assert to_amount("₹ 45 Lakh") == 4500000.0
        assert to_amount(None) == 0.0


# =============================================================================
# normalize()
# =============================================================================

class TestNormalize:

    def test_portal_row(self):
        raw = {
            "RERA Registration No": REG_ID,
            "Project Name": "  Skyline   Residency ",
            "Promoter": "Shivalik Group",
            "Project Type": "Residential/Group Housing",
            "Project Status": "Under Construction",
            "Total Units": "1,200",
            "Available Units": "300",
            "Registration Date": "2020-09-07",
        }
        record = normalize(raw)
        assert record.registration_id == REG_ID
        assert record.name == "Skyline Residency"
        assert record.project_type == "Residential"
        assert record.status == "Ongoing"
        assert record.district == "Ahmedabad"
        assert record.total_units == 1200
        assert record.available_units == 300
        assert record.booking_percentage == 75
        assert record.approved_on == "07-09-2020"
        assert record.provenance == "LiveExtraction"

    def test_unknown_type_is_other(self):
        record = normalize({"rera_id": REG_ID, "name": "X", "type": "Warehouse"})
        assert record.project_type == "Other"

    def test_explicit_district_wins(self):
        record = normalize({"rera_id": REG_ID, "name": "X", "city": "GANDHINAGAR"})
        assert record.district == "Gandhinagar"

    def test_booking_from_percentage_when_available_missing(self):
        record = normalize({"rera_id": REG_ID, "name": "X", "total_units": 200, "booking_percentage": "60%"})
        assert record.available_units == 80
        assert record.booking_percentage == 60

    def test_available_clamped_to_total(self):
        record = normalize({"rera_id": REG_ID, "name": "X", "total_units": 10, "available_units": 25})
        assert record.available_units == 10
        assert record.booking_percentage == 0

    def test_price_text_split(self):
        record = normalize({"rera_id": REG_ID, "name": "X", "price": "45 - 60 Lakh"})
        assert (record.min_price, record.max_price) == (4500000.0, 6000000.0)

    def test_swapped_prices_reordered(self):
        record = normalize({"rera_id": REG_ID, "name": "X", "min_price": 9000000, "max_price": 4500000})
        assert (record.min_price, record.max_price) == (4500000.0, 9000000.0)

    def test_missing_name_gets_placeholder(self):
        record = normalize({"rera_id": REG_ID})
        assert record.name == "Project 070920"

    def test_provenance_argument_overrides(self):
        record = normalize({"rera_id": REG_ID, "name": "X", "provenance": "Synthetic"}, "ManualUpload")
        assert record.provenance == "ManualUpload"

    def test_source_provenance_kept_when_valid(self):
        record = normalize({"rera_id": REG_ID, "name": "X", "provenance": "Synthetic"})
        assert record.provenance == "Synthetic"

    def test_low_confidence_marker(self):
        record = normalize({"rera_id": REG_ID, "name": "X", LOW_CONFIDENCE_KEY: True})
        assert record.is_low_confidence is True

    def test_no_id_no_name_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize({"city": "Surat"})
        assert exc.value.field == "registrationId"

    def test_no_district_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize({"rera_id": "PR/GJ", "name": "Orphan"})
        assert exc.value.field == "district"

    def test_batch_collects_rejections(self):
        records, rejections = normalize_batch([
            {"rera_id": REG_ID, "name": "Good"},
            {"name": "No id"},
            {},
        ])
        assert [r.name for r in records] == ["Good"]
        assert len(rejections) == 2
