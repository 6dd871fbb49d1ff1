"""
Admin API Routes - Manual data management

All endpoints require the X-Admin-Token header.

Endpoints:
- POST /api/admin/upload - Bulk upload (multipart field "reraFile", CSV or JSON)
- POST /api/admin/projects - Add one project; duplicate registration id -> 400
- DELETE /api/admin/clear-all - Delete every project
- GET /api/admin/source-info - Source configuration, rate-limit and data status
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from api.middleware.error_envelope import make_error_response
from constants import RERA_SOURCE_DOMAIN
from models.project import Project
from scrapers.normalizer import normalize
from scrapers.rate_limiter import get_scraper_rate_limiter
from scrapers.records import Provenance
from services import ingestion_config, ingestion_runner
from services.project_repository import ProjectRepository
from services.project_upload import upload_projects
from utils.admin_auth import require_admin

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)

UPLOAD_FIELD = 'reraFile'


@admin_bp.route("/admin/upload", methods=["POST"])
@require_admin
def upload_file():
    """
    Bulk upload.

    Returns:
        {"success": true, "data": {"rows_read", "accepted", "rejected",
         "inserted", "updated", "unchanged", "by_city", "errors"}}
    """
    upload = request.files.get(UPLOAD_FIELD)
    if upload is None or not upload.filename:
        return make_error_response(
            "INVALID_UPLOAD", f"No file uploaded in field '{UPLOAD_FIELD}'", field=UPLOAD_FIELD
        )

    content = upload.read()
    max_bytes = current_app.config.get('UPLOAD_MAX_BYTES')
    if max_bytes and len(content) > max_bytes:
        return make_error_response(
            "REQUEST_ENTITY_TOO_LARGE", f"Upload exceeds {max_bytes} bytes", field=UPLOAD_FIELD
        )

    stats = upload_projects(content, upload.filename)
    logger.info(f"Admin upload '{upload.filename}': {stats['accepted']} accepted, {stats['rejected']} rejected")
    return jsonify({"success": True, "data": stats})


@admin_bp.route("/admin/projects", methods=["POST"])
@require_admin
def add_project():
    """
    Add one project. Never overwrites: an existing registration id is
    rejected with 400 DUPLICATE_REGISTRATION_ID.

    Body: JSON object using any of the known field aliases
        (rera_id / registrationId, project_name, developer_name, ...)
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return make_error_response("BAD_REQUEST", "Expected a JSON object body")

    record = normalize(body, provenance=Provenance.MANUAL_UPLOAD.value)
    project = ProjectRepository().add_project(record)
    return jsonify({"success": True, "data": {"project": project.to_dict()}}), 201


@admin_bp.route("/admin/clear-all", methods=["DELETE"])
@require_admin
def clear_all():
    """Delete every project. Ingestion run history is kept."""
    deleted = ProjectRepository().clear_all()
    return jsonify({"success": True, "data": {"deleted": deleted}})


@admin_bp.route("/admin/source-info", methods=["GET"])
@require_admin
def source_info():
    """Where data comes from and what is currently stored."""
    repo = ProjectRepository()
    latest = ingestion_runner.list_runs(1)
    return jsonify({
        "success": True,
        "data": {
            "source": {
                "domain": RERA_SOURCE_DOMAIN,
                "config": ingestion_config.get_config_summary(),
                "rate_limit": get_scraper_rate_limiter().get_status(RERA_SOURCE_DOMAIN),
            },
            "store": {
                "total_projects": Project.query.count(),
                "by_provenance": repo.provenance_counts(),
            },
            "runner": ingestion_runner.get_runner_status(),
            "last_run": latest[0].to_dict() if latest else None,
        },
    })
