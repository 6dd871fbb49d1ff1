"""
API tests through the Flask test client.

Ingestion runs execute inline (INGESTION_RUN_INLINE) with the orchestrator
factory replaced, so no test touches the network.
"""

import io
import json
from datetime import date

import pytest

from scrapers.base import BaseStrategy, StrategyResult
from scrapers.exceptions import StrategyFailure
from scrapers.orchestrator import StrategyOrchestrator
from scrapers.records import ProjectRecord
from scrapers.synthetic import SyntheticDataGenerator
from services import ingestion_runner
from services.project_repository import ProjectRepository

REG_ID = "PR/GJ/AHMEDABAD/DASKROI/AUDA/RAA07123/070920"


def _seed(app, ahmedabad=40, surat=10):
    records = [
        ProjectRecord(
            registration_id=f"PR/GJ/{city.upper()}/CITY/RAA{n:05d}/010123",
            name=f"{city} Heights {n:02d}",
            promoter_name="Shivalik Group",
            district=city,
            total_units=100,
            available_units=20,
        )
        for city, count in (("Ahmedabad", ahmedabad), ("Surat", surat))
        for n in range(1, count + 1)
    ]
    with app.app_context():
        ProjectRepository().upsert_batch(records)


class ListingStrategy(BaseStrategy):
    NAME = "paginated-table"

    def attempt(self, target, context):
        rows = [
            {"registration_id": f"PR/GJ/SURAT/CITY/RSU{n:05d}/010123", "name": f"Live {n}", "total_units": 10}
            for n in range(1, 4)
        ]
        return StrategyResult(strategy=self.NAME, target=target, records=rows)


class DeadStrategy(BaseStrategy):
    NAME = "api-probe"

    def attempt(self, target, context):
        raise StrategyFailure(self.NAME, target, message="portal down")


@pytest.fixture
def fake_orchestrator(monkeypatch):
    """Swap the runner's orchestrator factory for one with stub strategies."""
    def install(*strategies):
        def build(context=None):
            return StrategyOrchestrator(
                strategies=list(strategies),
                repository=ProjectRepository(),
                context=context,
                synthetic_generator=SyntheticDataGenerator(seed=1, reference_date=date(2024, 6, 30)),
                retry_rounds=1,
                cooldown_seconds=0,
            )
        monkeypatch.setattr(ingestion_runner, "build_orchestrator", build)
    return install


# =============================================================================
# Read API
# =============================================================================

class TestReadApi:

    def test_health(self, client):
        assert client.get("/health").get_json() == {"status": "ok"}

    def test_city_listing_envelope(self, app, client):
        _seed(app)
        body = client.get("/api/cities/ahmedabad/projects?page=1&limit=20").get_json()
        assert body["success"] is True
        assert body["data"]["pagination"] == {"page": 1, "limit": 20, "total": 40, "totalPages": 2}
        assert len(body["data"]["projects"]) == 20
        assert body["data"]["city"] == "Ahmedabad"
        assert body["data"]["stats"]["by_status"] == {"Ongoing": 40}
        project = body["data"]["projects"][0]
        assert project["rera_id"].startswith("PR/GJ/AHMEDABAD/")
        assert project["booking_percentage"] == 80

    def test_city_listing_bad_page(self, client):
        response = client.get("/api/cities/Surat/projects?page=0")
        assert response.status_code == 400
        assert response.get_json()["field"] == "page"

    def test_project_list_filters(self, app, client):
        _seed(app)
        body = client.get("/api/projects?city=Surat&sort=name&order=desc&limit=5").get_json()
        assert body["data"]["pagination"]["total"] == 10
        assert body["data"]["projects"][0]["project_name"] == "Surat Heights 10"

    def test_project_list_rejects_bad_sort(self, client):
        response = client.get("/api/projects?sort=price")
        assert response.status_code == 400
        assert response.get_json()["field"] == "sort"

    def test_project_detail(self, app, client):
        _seed(app, ahmedabad=1, surat=0)
        rid = "PR/GJ/AHMEDABAD/CITY/RAA00001/010123"
        body = client.get(f"/api/project/{rid}").get_json()
        assert body["data"]["project"]["rera_id"] == rid

    def test_project_detail_missing(self, client):
        response = client.get("/api/project/PR/GJ/NOWHERE/1")
        assert response.status_code == 404
        assert response.get_json()["error"]["code"] == "NOT_FOUND"

    def test_cities_and_filters(self, app, client):
        _seed(app)
        cities = client.get("/api/cities").get_json()["data"]["cities"]
        assert cities[0] == {"city": "Ahmedabad", "count": 40}
        filters = client.get("/api/filters").get_json()["data"]
        assert filters["cities"] == ["Ahmedabad", "Surat"]

    def test_localities(self, client):
        body = client.get("/api/localities/surat").get_json()
        assert body["data"]["city"] == "Surat"
        assert {"name": "Vesu", "pincode": "395007"} in body["data"]["localities"]

    def test_analytics(self, app, client):
        _seed(app)
        body = client.get("/api/analytics?city=Surat").get_json()
        assert body["data"]["total_projects"] == 10

    def test_analytics_months_out_of_range(self, client):
        assert client.get("/api/analytics?months=500").status_code == 400


# =============================================================================
# Ingestion API
# =============================================================================

class TestIngestionApi:

    def test_trigger_returns_202_and_status_is_queryable(self, client, fake_orchestrator):
        fake_orchestrator(DeadStrategy(), ListingStrategy())
        response = client.post("/api/ingestion/trigger", json={"city": "Surat"})
        assert response.status_code == 202
        run_id = response.get_json()["runId"]

        status = client.get(f"/api/ingestion/status/{run_id}").get_json()
        assert status["success"] is True
        assert status["state"] == "Completed"
        assert status["strategyUsed"] == "paginated-table"
        assert status["recordCount"] == 3
        assert status["provenanceBreakdown"] == {"LiveExtraction": 3}
        assert status["city"] == "Surat"

        listing = client.get("/api/cities/surat/projects").get_json()
        assert listing["data"]["pagination"]["total"] == 3

    def test_synthetic_fallback_run(self, client, fake_orchestrator):
        fake_orchestrator(DeadStrategy())
        run_id = client.post("/api/ingestion/trigger", json={"city": "Rajkot"}).get_json()["runId"]
        status = client.get(f"/api/ingestion/status/{run_id}").get_json()
        assert status["state"] == "Partial"
        assert status["strategyUsed"] == "synthetic"
        assert status["provenanceBreakdown"] == {"Synthetic": 150}

    def test_trigger_without_body(self, client, fake_orchestrator):
        fake_orchestrator(ListingStrategy())
        assert client.post("/api/ingestion/trigger").status_code == 202

    def test_trigger_disabled(self, client, monkeypatch):
        monkeypatch.setenv("INGESTION_ENABLED", "false")
        response = client.post("/api/ingestion/trigger", json={})
        assert response.status_code == 503
        assert response.get_json()["error"]["code"] == "INGESTION_DISABLED"

    def test_trigger_while_running(self, client, monkeypatch):
        monkeypatch.setattr(ingestion_runner, "_run_in_progress", True)
        monkeypatch.setattr(ingestion_runner, "_current_run_id", "abc")
        response = client.post("/api/ingestion/trigger", json={})
        assert response.status_code == 409
        assert response.get_json()["error"]["details"] == {"runId": "abc"}

    def test_unknown_run(self, client):
        assert client.get("/api/ingestion/status/does-not-exist").status_code == 404

    def test_runs_listing(self, client, fake_orchestrator):
        fake_orchestrator(ListingStrategy())
        client.post("/api/ingestion/trigger", json={})
        body = client.get("/api/ingestion/runs?limit=5").get_json()
        assert len(body["data"]["runs"]) == 1
        assert body["data"]["runner"]["in_progress"] is False

    def test_cancel_without_active_run(self, client, admin_headers):
        assert client.post("/api/ingestion/cancel", headers=admin_headers).status_code == 404


# =============================================================================
# Admin API
# =============================================================================

class TestAdminApi:

    def test_requires_token(self, client):
        response = client.delete("/api/admin/clear-all")
        assert response.status_code == 401
        assert response.get_json()["error"]["code"] == "UNAUTHORIZED"

    def test_wrong_token(self, client):
        assert client.delete("/api/admin/clear-all", headers={"X-Admin-Token": "nope"}).status_code == 401

    def test_closed_without_configured_token(self, app, client):
        app.config["ADMIN_TOKEN"] = ""
        assert client.delete("/api/admin/clear-all", headers={"X-Admin-Token": "x"}).status_code == 503

    def test_add_project(self, client, admin_headers):
        payload = {"rera_id": REG_ID, "project_name": "Shaligram Pride", "total_units": 200, "available_units": 50}
        response = client.post("/api/admin/projects", json=payload, headers=admin_headers)
        assert response.status_code == 201
        project = response.get_json()["data"]["project"]
        assert project["provenance"] == "ManualUpload"
        assert project["city"] == "Ahmedabad"
        assert project["booking_percentage"] == 75

    def test_add_duplicate_is_400(self, client, admin_headers):
        payload = {"rera_id": REG_ID, "project_name": "Shaligram Pride"}
        client.post("/api/admin/projects", json=payload, headers=admin_headers)
        response = client.post("/api/admin/projects", json=payload, headers=admin_headers)
        assert response.status_code == 400
        error = response.get_json()["error"]
        assert error["code"] == "DUPLICATE_REGISTRATION_ID"
        assert error["details"] == {"registrationId": REG_ID}

    def test_add_invalid_record(self, client, admin_headers):
        response = client.post("/api/admin/projects", json={"project_name": "No id"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()["error"]["code"] == "VALIDATION_ERROR"

    def test_add_requires_object(self, client, admin_headers):
        response = client.post("/api/admin/projects", json=[1, 2], headers=admin_headers)
        assert response.status_code == 400

    def test_upload_csv(self, client, admin_headers):
        csv_bytes = (
            "rera_id,project_name,city,total_units,available_units\n"
            f"{REG_ID},Shaligram Pride,Ahmedabad,200,50\n"
        ).encode()
        response = client.post(
            "/api/admin/upload",
            data={"reraFile": (io.BytesIO(csv_bytes), "projects.csv")},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["inserted"] == 1
        assert data["by_city"] == {"Ahmedabad": 1}

    def test_upload_missing_file(self, client, admin_headers):
        response = client.post("/api/admin/upload", data={}, headers=admin_headers,
                               content_type="multipart/form-data")
        assert response.status_code == 400
        assert response.get_json()["error"]["code"] == "INVALID_UPLOAD"

    def test_upload_unparsable(self, client, admin_headers):
        response = client.post(
            "/api/admin/upload",
            data={"reraFile": (io.BytesIO(b"\x00\x01"), "projects.xlsx")},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert response.get_json()["error"]["field"] == "reraFile"

    def test_upload_too_large(self, app, client, admin_headers):
        app.config["UPLOAD_MAX_BYTES"] = 10
        response = client.post(
            "/api/admin/upload",
            data={"reraFile": (io.BytesIO(b"[" + b" " * 50 + b"]"), "p.json")},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert response.status_code == 413

    def test_clear_all(self, app, client, admin_headers):
        _seed(app, ahmedabad=3, surat=2)
        response = client.delete("/api/admin/clear-all", headers=admin_headers)
        assert response.get_json()["data"] == {"deleted": 5}
        assert client.get("/api/cities").get_json()["data"]["cities"] == []

    def test_source_info(self, app, client, admin_headers):
        _seed(app, ahmedabad=2, surat=0)
        data = client.get("/api/admin/source-info", headers=admin_headers).get_json()["data"]
        assert data["store"]["total_projects"] == 2
        assert data["source"]["domain"] == "gujrera.gujarat.gov.in"
        assert data["last_run"] is None
        assert json.dumps(data)
