"""
Analytics API Routes - Market summary over stored projects

Endpoints:
- GET /api/analytics - Totals, status/type/provenance breakdowns,
  average booking percentage, recent approvals, top developers
"""

import logging
import time

from flask import Blueprint, jsonify, request

from api.params import AnalyticsParams, parse_params
from services.analytics_service import get_market_summary

logger = logging.getLogger(__name__)

analytics_bp = Blueprint('analytics', __name__)


@analytics_bp.route("/analytics", methods=["GET"])
def market_analytics():
    """
    Market summary.

    Query params:
        city: optional, case-insensitive
        months: window for recent approvals, 0..120 (default 6)
    """
    start = time.time()
    params = parse_params(AnalyticsParams, request.args)
    summary = get_market_summary(city=params.city, months=params.months)

    elapsed = time.time() - start
    logger.info(f"GET /api/analytics took: {elapsed:.4f} seconds")
    return jsonify({"success": True, "data": summary})
