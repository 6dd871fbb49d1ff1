"""
Unit tests for scrapers/field_extractors.py

Each extractor is pure: free text in, parsed value or None out.
"""

from datetime import date

import pytest

from scrapers.field_extractors import (
    classify_project_type,
    classify_status,
    extract_date,
    extract_district_from_id,
    extract_integer,
    extract_money,
    extract_pincode,
    extract_price_range,
    extract_registration_id,
    is_integer_cell,
    is_money,
    looks_like_name,
    parse_date,
    placeholder_name,
)


# =============================================================================
# Registration ids
# =============================================================================

class TestRegistrationId:

    def test_finds_id_in_cell(self):
        text = "Reg No: PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA07123/070920"
        assert extract_registration_id(text) == "PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA07123/070920"

    def test_multi_word_segment_followed_by_slash(self):
        text = "PR/GJ/AHMEDABAD/AHMEDABAD CITY/AUDA/RAA07123/070920 valid till 2026"
        assert extract_registration_id(text) == "PR/GJ/AHMEDABAD/AHMEDABAD CITY/AUDA/RAA07123/070920"

    def test_no_id(self):
        assert extract_registration_id("Skyline Residency") is None
        assert extract_registration_id(None) is None

    def test_district_from_id(self):
        assert extract_district_from_id("PR/GJ/SURAT/CHORASI/SUDA/RSU00012/010120") == "Surat"

    def test_district_from_short_id(self):
        assert extract_district_from_id("PR/GJ") is None
        assert extract_district_from_id("") is None

    def test_placeholder_name_uses_last_segment(self):
        assert placeholder_name("PR/GJ/SURAT/CHORASI/SUDA/RSU00012/010120") == "Project 010120"


# =============================================================================
# Dates
# =============================================================================

class TestDates:

    @pytest.mark.parametrize("text,expected", [
        ("07-09-2020", "07-09-2020"),
        ("7/9/2020", "07-09-2020"),
        ("07.09.2020", "07-09-2020"),
        ("2020-09-07", "07-09-2020"),
        ("Approved on 07/09/2020", "07-09-2020"),
    ])
    def test_extract_date_formats(self, text, expected):
        assert extract_date(text) == expected

    def test_invalid_month_rejected(self):
        assert extract_date("07-13-2020") is None

    def test_parse_date_is_day_first(self):
        assert parse_date("07-09-2020") == date(2020, 9, 7)

    def test_parse_date_garbage(self):
        assert parse_date("soon") is None
        assert parse_date("") is None


# =============================================================================
# Money
# =============================================================================

class TestMoney:

    def test_lakh(self):
        assert extract_money("₹ 45 Lakh") == 4500000.0

    def test_crore(self):
        assert extract_money("Rs. 1.2 Cr") == 12000000.0

    def test_plain_indian_grouping(self):
        assert extract_money("45,00,000") == 4500000.0

    def test_is_money(self):
        assert is_money("₹ 45 Lakh")
        assert is_money("60 lakhs")
        assert not is_money("240")
        assert not is_money("Vesu")

    def test_price_range_with_units_each_side(self):
        assert extract_price_range("₹45 L - ₹1.2 Cr") == (4500000.0, 12000000.0)

    def test_price_range_shared_unit(self):
        assert extract_price_range("45 - 60 Lakh") == (4500000.0, 6000000.0)

    def test_single_amount_fills_both(self):
        assert extract_price_range("₹ 55 Lakh") == (5500000.0, 5500000.0)

    def test_empty_range(self):
        assert extract_price_range("") == (None, None)


# =============================================================================
# Numbers and pincodes
# =============================================================================

class TestNumbers:

    def test_integer_with_separator(self):
        assert extract_integer("1,200 units") == 1200

    def test_integer_passthrough(self):
        assert extract_integer(42) == 42
        assert extract_integer(True) is None

    def test_integer_cell(self):
        assert is_integer_cell("240")
        assert is_integer_cell("1,200 units")
        assert not is_integer_cell("Block 4")

    def test_gujarat_pincode(self):
        assert extract_pincode("Vesu, Surat 395007") == "395007"
        assert extract_pincode("Mumbai 400001") is None


# =============================================================================
# Classification
# =============================================================================

class TestClassification:

    @pytest.mark.parametrize("text,expected", [
        ("Residential/Group Housing", "Residential"),
        ("Commercial Office", "Commercial"),
        ("Residential + Commercial", "Mixed"),
        ("Plotted Development", "Plotted"),
        ("Township", "Township"),
        ("Warehouse", "Other"),
        ("", "Residential"),
    ])
    def test_project_type(self, text, expected):
        assert classify_project_type(text) == expected

    @pytest.mark.parametrize("text,expected", [
        ("Under Construction", "Ongoing"),
        ("Completed", "Completed"),
        ("New Launch", "New"),
        ("Delayed - extension granted", "Delayed"),
        ("Stalled", "Stalled"),
        ("Unknown state", "Other"),
        (None, "Ongoing"),
    ])
    def test_status(self, text, expected):
        assert classify_status(text) == expected

    def test_looks_like_name(self):
        assert looks_like_name("Skyline Residency")
        assert not looks_like_name("07-09-2020")
        assert not looks_like_name("₹ 45 Lakh")
        assert not looks_like_name("240")
