"""
Tests for the synthetic data generator.
"""

import random
from datetime import date

from constants import CURATED_PROJECTS, DEFAULT_CITY_WEIGHT, DEFAULT_CITY_WEIGHTS, DEFAULT_SYNTHETIC_SEED
from scrapers.field_extractors import extract_district_from_id, parse_date
from scrapers.records import compute_booking_percentage
from scrapers.synthetic import SyntheticDataGenerator, weights_for_scope

REFERENCE_DATE = date(2024, 6, 30)


def _generate(seed, weights):
    return SyntheticDataGenerator(seed=seed, reference_date=REFERENCE_DATE).generate(weights)


class TestWeights:

    def test_default_scope(self):
        assert weights_for_scope() == DEFAULT_CITY_WEIGHTS

    def test_single_known_city(self):
        assert weights_for_scope("surat") == {"Surat": DEFAULT_CITY_WEIGHTS["Surat"]}

    def test_single_unknown_city(self):
        assert weights_for_scope("Kutch") == {"Kutch": DEFAULT_CITY_WEIGHT}


class TestGenerator:

    def test_same_seed_same_output(self):
        weights = {"Ahmedabad": 15, "Surat": 10}
        first = [r.content() for r in _generate(42, weights)]
        second = [r.content() for r in _generate(42, weights)]
        assert first == second

    def test_different_seed_differs(self):
        weights = {"Ahmedabad": 15}
        assert [r.content() for r in _generate(1, weights)] != [r.content() for r in _generate(2, weights)]

    def test_counts_follow_weights(self):
        records = _generate(3, {"Vadodara": 12, "Rajkot": 5})
        assert sum(1 for r in records if r.district == "Vadodara") == 12
        assert sum(1 for r in records if r.district == "Rajkot") == 5

    def test_every_record_is_synthetic_and_consistent(self):
        records = _generate(7, {"Gandhinagar": 30, "Ahmedabad": 30})
        ids = [r.registration_id for r in records]
        assert len(ids) == len(set(ids))
        for record in records:
            assert record.provenance == "Synthetic"
            assert 150 <= record.total_units <= 750
            assert 0 <= record.available_units <= record.total_units
            assert record.booking_percentage == compute_booking_percentage(
                record.total_units, record.available_units
            )
            assert record.min_price <= record.max_price
            assert extract_district_from_id(record.registration_id) == record.district
            assert record.status in ("Ongoing", "Completed", "New")
            assert record.project_type in ("Residential", "Commercial", "Mixed", "Plotted")

    def test_approval_dates_before_reference(self):
        for record in _generate(11, {"Surat": 20}):
            approved = parse_date(record.approved_on)
            assert approved is not None
            assert approved < REFERENCE_DATE

    def test_curated_projects_come_first(self):
        curated = CURATED_PROJECTS["Gandhinagar"]
        records = _generate(5, {"Gandhinagar": len(curated) + 2})
        assert [(r.name, r.promoter_name) for r in records[:len(curated)]] == curated

    def test_unknown_city_uses_city_as_locality(self):
        records = _generate(5, {"Kutch": 3})
        assert len(records) == 3
        assert all(r.district == "Kutch" for r in records)


class TestStableIds:

    def test_ids_do_not_depend_on_today(self):
        weights = {"Surat": 25}
        first = SyntheticDataGenerator(reference_date=date(2024, 6, 30)).generate(weights)
        second = SyntheticDataGenerator(reference_date=date(2025, 1, 15)).generate(weights)
        assert [r.registration_id for r in first] == [r.registration_id for r in second]
        assert [r.locality for r in first] == [r.locality for r in second]
        assert first[0].approved_on != second[0].approved_on

    def test_default_seed_is_fixed(self):
        weights = {"Rajkot": 10}
        unseeded = SyntheticDataGenerator(reference_date=REFERENCE_DATE).generate(weights)
        explicit = _generate(DEFAULT_SYNTHETIC_SEED, weights)
        assert [r.content() for r in unseeded] == [r.content() for r in explicit]

    def test_city_output_does_not_depend_on_scope(self):
        alone = _generate(9, {"Surat": 8})
        together = _generate(9, {"Ahmedabad": 12, "Surat": 8})
        assert [r.content() for r in alone] == [r.content() for r in together if r.district == "Surat"]

    def test_injected_rng_is_shared(self):
        rng = random.Random(4)
        generator = SyntheticDataGenerator(rng=rng, reference_date=REFERENCE_DATE)
        assert generator.rng_for("Surat") is rng
        assert generator.rng_for("Rajkot") is rng
