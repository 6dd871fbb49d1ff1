"""
Tests for CSV/JSON bulk upload (services/project_upload.py).
"""

import json

import pytest

from models.project import Project
from scrapers.exceptions import ValidationError
from services.project_upload import parse_upload, upload_projects

CSV_CONTENT = (
    "RERA ID,Project Name,Promoter,City,Total Units,Available Units,Project Type,Status\n"
    "PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA07123/070920,Shaligram Pride,Shaligram Infra,Ahmedabad,200,50,Residential/Group Housing,Under Construction\n"
    "PR/GJ/SURAT/CHORASI/SUDA/RSU00012/010120,Green Valley,Sangini Group,Surat,120,120,Commercial,New Launch\n"
    "PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA07123/070920,Shaligram Pride,,Ahmedabad,,,,\n"
    "    ,Unnamed Tower,Someone,,,,,\n"
    ",,,,,,,\n"
).encode("utf-8")


class TestParseUpload:

    def test_csv_rows_are_stripped_strings(self):
        rows = parse_upload(CSV_CONTENT, "export.csv")
        assert len(rows) == 5
        assert rows[0]["Project Name"] == "Shaligram Pride"
        assert rows[3]["RERA ID"] == ""

    def test_csv_with_bom(self):
        rows = parse_upload(b"\xef\xbb\xbf" + CSV_CONTENT, "export.csv")
        assert "RERA ID" in rows[0]

    def test_json_list_under_projects_key(self):
        content = json.dumps({"projects": [{"rera_id": "X"}, "junk"]}).encode()
        assert parse_upload(content, "export.json") == [{"rera_id": "X"}]

    def test_json_sniffed_without_extension(self):
        assert parse_upload(b'[{"rera_id": "X"}]', "upload") == [{"rera_id": "X"}]

    def test_json_scalar_rejected(self):
        with pytest.raises(ValidationError):
            parse_upload(b'{"count": 3}', "export.json")

    def test_unsupported_type(self):
        with pytest.raises(ValidationError) as exc:
            parse_upload(b"PK\x03\x04binary", "export.xlsx")
        assert exc.value.field == "reraFile"

    def test_empty_file(self):
        with pytest.raises(ValidationError):
            parse_upload(b"   ", "export.csv")

    def test_broken_json(self):
        with pytest.raises(ValidationError):
            parse_upload(b"[{", "export.json")


class TestUploadProjects:

    def test_csv_upload_stats(self, app_context):
        stats = upload_projects(CSV_CONTENT, "export.csv")
        assert stats["rows_read"] == 5
        assert stats["accepted"] == 2
        assert stats["duplicates_removed"] == 1
        # Unnamed Tower has no district; the blank row has nothing at all
        assert stats["rejected"] == 2
        assert stats["inserted"] == 2
        assert stats["by_city"] == {"Ahmedabad": 1, "Surat": 1}
        assert len(stats["errors"]) == 2

    def test_rows_are_manual_upload(self, app_context):
        upload_projects(CSV_CONTENT, "export.csv")
        row = Project.query.filter_by(registration_id="PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA07123/070920").one()
        assert row.provenance == "ManualUpload"
        assert row.project_type == "Residential"
        assert row.status == "Ongoing"
        assert row.booking_percentage == 75
        assert row.promoter_name == "Shaligram Infra"

    def test_reupload_is_unchanged(self, app_context):
        upload_projects(CSV_CONTENT, "export.csv")
        stats = upload_projects(CSV_CONTENT, "export.csv")
        assert (stats["inserted"], stats["updated"], stats["unchanged"]) == (0, 0, 2)

    def test_json_name_only_row_is_low_confidence(self, app_context):
        content = json.dumps([{"name": "Sunrise Greens", "city": "Rajkot", "units": 90}]).encode()
        stats = upload_projects(content, "projects.json")
        assert stats["accepted"] == 1
        assert stats["low_confidence"] == 1
        row = Project.query.one()
        assert row.registration_id.startswith("LC-")
        assert row.is_low_confidence is True

    def test_nothing_accepted_skips_repository(self):
        class ExplodingRepository:
            def upsert_batch(self, records, run_id=None):
                raise AssertionError("should not be called")

        stats = upload_projects(b'[{"city": "Surat"}]', "x.json", repository=ExplodingRepository())
        assert stats["accepted"] == 0
        assert stats["inserted"] == 0
