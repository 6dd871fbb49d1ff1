"""
Ingestion API Routes - Trigger and monitor ingestion runs

Endpoints:
- POST /api/ingestion/trigger - Start a run, returns 202 with the run id
- GET /api/ingestion/status/<run_id> - Run state, counts, provenance breakdown
- GET /api/ingestion/runs - Recent runs, newest first
- POST /api/ingestion/cancel - Cancel the current run (admin)
"""

import logging

from flask import Blueprint, jsonify, request

from api.middleware.error_envelope import make_error_response
from api.params import IngestionTriggerParams, RunListParams, parse_params
from services import ingestion_runner
from utils.admin_auth import require_admin

logger = logging.getLogger(__name__)

ingestion_bp = Blueprint('ingestion', __name__)

@ingestion_bp.route("/ingestion/trigger", methods=["POST"])
def trigger_ingestion():
    """
    Start an ingestion run.

    Body (optional JSON):
        {"city": "Ahmedabad", "all_districts": false}

    Returns:
        202 {"success": true, "runId": "...", "state": "Running"}
        409 if a run is already in progress
        503 if ingestion is disabled
    """
    params = parse_params(IngestionTriggerParams, request.get_json(silent=True))

    try:
        run_id = ingestion_runner.start_ingestion_run(
            city=params.city,
            all_districts=params.all_districts,
            triggered_by='api',
        )
    except ingestion_runner.IngestionDisabledError as e:
        return make_error_response("INGESTION_DISABLED", str(e))
    except ingestion_runner.IngestionInProgressError as e:
        return make_error_response(
            "INGESTION_IN_PROGRESS", str(e), details={"runId": e.run_id}
        )

    run = ingestion_runner.get_run(run_id)
    return jsonify({
        "success": True,
        "runId": run_id,
        "state": run.state if run else "Running",
    }), 202


@ingestion_bp.route("/ingestion/status/<run_id>", methods=["GET"])
def get_ingestion_status(run_id: str):
    """
    Run status.

    Returns:
        {"success": true, "runId", "state", "recordCount",
         "provenanceBreakdown", "strategyUsed", ...}
    """
    run = ingestion_runner.get_run(run_id)
    if run is None:
        return make_error_response("NOT_FOUND", f"Ingestion run {run_id} not found")
    return jsonify({"success": True, **run.to_dict()})


@ingestion_bp.route("/ingestion/runs", methods=["GET"])
def list_ingestion_runs():
    """
    Recent runs.

    Query params:
        limit: max runs, 1..100 (default 20)
    """
    params = parse_params(RunListParams, request.args)
    runs = ingestion_runner.list_runs(params.limit)
    return jsonify({
        "success": True,
        "data": {
            "runs": [run.to_dict() for run in runs],
            "runner": ingestion_runner.get_runner_status(),
        },
    })


@ingestion_bp.route("/ingestion/cancel", methods=["POST"])
@require_admin
def cancel_ingestion():
    """Trip the current run's cancellation token. Records fetched so far are kept."""
    run_id = ingestion_runner.cancel_current_run()
    if run_id is None:
        return make_error_response("NOT_FOUND", "No ingestion run in progress")
    return jsonify({"success": True, "runId": run_id, "message": "Cancellation requested"}), 202
