"""
Projects API Routes - RERA project listings

Endpoints:
- GET /api/projects - Filtered, sorted, paginated project listing
- GET /api/project/<registration_id> - Single project by RERA registration id
- GET /api/cities/<city>/projects - One city's projects with status/type stats
- GET /api/cities - Project counts per city
- GET /api/filters - Distinct values for the listing filters
- GET /api/localities/<city> - Known localities (with pincodes) for a city

Listing responses use the envelope:
    {"success": true, "data": {"projects": [...], "pagination": {...}}}
"""

import logging
import time

from flask import Blueprint, jsonify, request

from api.middleware.error_envelope import make_error_response
from api.params import PageParams, ProjectListParams, parse_params
from constants import canonical_city, get_localities_for_city
from services.analytics_service import get_city_stats
from services.project_repository import ProjectRepository

logger = logging.getLogger(__name__)

projects_bp = Blueprint('projects', __name__)


@projects_bp.route("/projects", methods=["GET"])
def list_projects():
    """
    Project listing.

    Query params:
        city, status, type, search, locality, developer, provenance,
        min_price, max_price, sort (name|booking|units|approved),
        order (asc|desc), page, limit (max 100)
    """
    start = time.time()
    params = parse_params(ProjectListParams, request.args)

    result = ProjectRepository().query(**params.filters(), page=params.page, limit=params.limit)

    elapsed = time.time() - start
    logger.info(f"GET /api/projects took: {elapsed:.4f} seconds ({result.total} matches)")
    return jsonify({"success": True, "data": result.to_dict()})


@projects_bp.route("/project/<path:registration_id>", methods=["GET"])
def get_project(registration_id: str):
    """
    Single project. Registration ids contain slashes, hence the path converter.

    Returns:
        {"success": true, "data": {"project": {...}}}
    """
    project = ProjectRepository().get_model(registration_id)
    if project is None:
        return make_error_response("NOT_FOUND", f"Project {registration_id} not found")
    return jsonify({"success": True, "data": {"project": project.to_dict()}})


@projects_bp.route("/cities/<city>/projects", methods=["GET"])
def get_city_projects(city: str):
    """
    Projects in one city, case-insensitive on the city name.

    Query params:
        page, limit (max 100)
    """
    start = time.time()
    paging = parse_params(PageParams, request.args)

    result = ProjectRepository().query_by_city(city, page=paging.page, limit=paging.limit)
    data = result.to_dict()
    data["city"] = canonical_city(city)
    data["stats"] = get_city_stats(city)

    elapsed = time.time() - start
    logger.info(f"GET /api/cities/{city}/projects took: {elapsed:.4f} seconds")
    return jsonify({"success": True, "data": data})


@projects_bp.route("/cities", methods=["GET"])
def list_cities():
    """Project counts per city, largest first."""
    return jsonify({"success": True, "data": {"cities": ProjectRepository().count_by_city()}})


@projects_bp.route("/filters", methods=["GET"])
def get_filter_options():
    """Distinct cities, developers, project types and statuses."""
    return jsonify({"success": True, "data": ProjectRepository().filter_options()})


@projects_bp.route("/localities/<city>", methods=["GET"])
def get_localities(city: str):
    """
    Known localities for a city.

    Returns:
        {"success": true, "data": {"city": "Ahmedabad",
         "localities": [{"name": "Bopal", "pincode": "380058"}, ...]}}
    """
    localities = [
        {"name": name, "pincode": pincode}
        for name, pincode in get_localities_for_city(city)
    ]
    return jsonify({"success": True, "data": {"city": canonical_city(city), "localities": localities}})
