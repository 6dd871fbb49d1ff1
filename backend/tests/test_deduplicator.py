"""
Tests for the deduplicator.
"""

from scrapers.deduplicator import (
    SYNTHESIZED_KEY_PREFIX,
    completeness,
    dedupe,
    dedupe_with_stats,
    synthesize_key,
)
from scrapers.records import LOW_CONFIDENCE_KEY

ID_A = "PR/GJ/SURAT/CHORASI/SUDA/RSU00001/010120"
ID_B = "PR/GJ/SURAT/CHORASI/SUDA/RSU00002/010120"


class TestDedupe:

    def test_most_complete_record_wins(self):
        sparse = {"registration_id": ID_A, "name": "Green Valley"}
        rich = {"registration_id": ID_A, "name": "Green Valley", "promoter_name": "Sangini", "total_units": 300}
        result = dedupe_with_stats([sparse, rich])
        assert result.records == [rich]
        assert result.duplicates_removed == 1

    def test_tie_keeps_first_seen(self):
        first = {"registration_id": ID_A, "name": "First"}
        second = {"registration_id": ID_A, "name": "Second"}
        assert dedupe([first, second]) == [first]

    def test_order_follows_first_appearance(self):
        records = [
            {"registration_id": ID_B, "name": "B"},
            {"registration_id": ID_A, "name": "A"},
            {"registration_id": ID_B, "name": "B", "total_units": 10},
        ]
        assert [r["name"] for r in dedupe(records)] == ["B", "A"]

    def test_aliases_share_a_key(self):
        records = [{"rera_id": ID_A, "name": "A"}, {"RegistrationNo": ID_A, "name": "A", "status": "New"}]
        assert len(dedupe(records)) == 1

    def test_name_only_records_get_stable_key(self):
        records = [
            {"name": "Green Valley", "district": "Surat"},
            {"name": "green  valley", "district": "SURAT", "total_units": 120},
        ]
        result = dedupe_with_stats(records)
        assert len(result.records) == 1
        kept = result.records[0]
        assert kept["registration_id"].startswith(SYNTHESIZED_KEY_PREFIX)
        assert kept[LOW_CONFIDENCE_KEY] is True
        assert kept["total_units"] == 120
        assert result.synthesized_keys == 2

    def test_synthesized_key_does_not_mutate_input(self):
        raw = {"name": "Green Valley", "district": "Surat"}
        dedupe([raw])
        assert "registration_id" not in raw

    def test_records_without_id_or_name_dropped(self):
        result = dedupe_with_stats([{"city": "Surat"}, {"registration_id": ID_A}])
        assert result.dropped == 1
        assert len(result.records) == 1

    def test_synthesize_key_is_stable(self):
        assert synthesize_key("Green Valley", "surat") == synthesize_key(" Green  Valley ", "Surat")
        assert synthesize_key("Green Valley", "Surat") != synthesize_key("Green Valley", "Rajkot")


class TestCompleteness:

    def test_ignores_blanks_and_markers(self):
        raw = {"name": "A", "promoter_name": " ", "extra": [], LOW_CONFIDENCE_KEY: True, "total_units": 0}
        assert completeness(raw) == 2
