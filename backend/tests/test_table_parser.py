"""
Tests for the listing page parser (scrapers/table_parser.py).
"""

from scrapers.table_parser import (
    extract_records,
    find_next_link,
    has_listing_structure,
    map_table_columns,
    parse_row,
)

from http_fakes import listing_page, make_rows


TABLE_WITHOUT_USEFUL_HEADERS = """
<table>
  <tr><th>Project</th><th>Details</th><th>Col3</th><th>Col4</th><th>Col5</th></tr>
  <tr>
    <td>PR/GJ/SURAT/CHORASI/SUDA/RSU00012/010120</td>
    <td>Green Valley Heights</td>
    <td>15/01/2020</td>
    <td>₹ 45 Lakh - ₹ 80 Lakh</td>
    <td>320</td>
  </tr>
</table>
"""

CARD_PAGE = """
<div class="project-list">
  <div class="project-card">
    <h4>Shaligram Pride</h4>
    <p>PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA01111/020221</p>
    <p>Promoter: Shaligram Infra</p>
    <p>Status: Under Construction</p>
  </div>
  <div class="project-card">
    <h4>Shaligram Signature</h4>
    <p>PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA01112/020221</p>
  </div>
</div>
"""


class TestColumnMapping:

    def test_keyword_headers(self):
        col_map = map_table_columns([
            "Sr. No", "RERA Registration No", "Project Name", "Promoter Name",
            "District", "Total Units", "Available Units", "Registration Date",
        ])
        assert col_map == {
            "serial": 0,
            "registration_id": 1,
            "name": 2,
            "promoter_name": 3,
            "district": 4,
            "total_units": 5,
            "available_units": 6,
            "approved_on": 7,
        }

    def test_completion_date_header(self):
        assert map_table_columns(["Proposed Completion Date"]) == {"completion_date": 0}

    def test_row_without_id_is_skipped(self):
        assert parse_row(["1", "Skyline", "Shivalik"], {}) is None


class TestTableExtraction:

    def test_rows_from_header_table(self):
        records = extract_records(listing_page(make_rows(3)), "https://portal.test/list")
        assert len(records) == 3
        first = records[0]
        assert first["registration_id"] == "PR/GJ/AHMEDABAD/CITY/RAA00001/010123"
        assert first["name"] == "Skyline Residency 1"
        assert first["promoter_name"] == "Shivalik Group"
        assert first["district"] == "Ahmedabad"
        assert first["total_units"] == "100"
        assert first["available_units"] == "25"
        assert first["source_url"] == "https://portal.test/list"

    def test_columns_assigned_by_content(self):
        records = extract_records(TABLE_WITHOUT_USEFUL_HEADERS)
        assert len(records) == 1
        record = records[0]
        assert record["name"] == "Green Valley Heights"
        assert record["approved_on"] == "15-01-2020"
        assert record["min_price"] == 4500000.0
        assert record["max_price"] == 8000000.0
        assert record["total_units"] == 320

    def test_cards_when_no_table(self):
        records = extract_records(CARD_PAGE)
        assert [r["registration_id"] for r in records] == [
            "PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA01111/020221",
            "PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA01112/020221",
        ]
        assert records[0]["name"] == "Shaligram Pride"
        assert records[0]["promoter_name"] == "Shaligram Infra"
        assert records[0]["status"] == "Under Construction"

    def test_empty_listing_still_has_structure(self):
        html = listing_page([])
        assert extract_records(html) == []
        assert has_listing_structure(html)

    def test_plain_page_has_no_structure(self):
        assert not has_listing_structure("<html><body><p>Maintenance</p></body></html>")


class TestNextLink:

    def test_relative_next_link(self):
        html = listing_page(make_rows(1), next_href="/PublicDashboard?page=2")
        assert find_next_link(html, "https://portal.test/PublicDashboard?page=1") == \
            "https://portal.test/PublicDashboard?page=2"

    def test_disabled_next_ignored(self):
        html = '<a class="page-link disabled" href="/p?page=9">Next</a>'
        assert find_next_link(html, "https://portal.test/p") is None

    def test_no_pager(self):
        assert find_next_link(listing_page(make_rows(1)), "https://portal.test/p") is None
