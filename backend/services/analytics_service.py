"""
Market Analytics Service

Summary statistics over the projects table, optionally scoped to one city.
Approval-window counts use the parsed approved_on_date column; rows whose
approval date could not be parsed are left out of the window, never
treated as errors.
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func

from models.database import db
from models.project import Project

logger = logging.getLogger(__name__)

TOP_DEVELOPERS_LIMIT = 10


def _scoped(query, city: Optional[str]):
    if city:
        query = query.filter(func.lower(Project.district) == city.strip().lower())
    return query


def _breakdown(column, city: Optional[str]) -> Dict[str, int]:
    rows = _scoped(db.session.query(column, func.count(Project.id)), city).group_by(column).all()
    return {value or 'Unknown': count for value, count in rows}


def top_developers(city: Optional[str] = None, limit: int = TOP_DEVELOPERS_LIMIT) -> List[dict]:
    rows = _scoped(
        db.session.query(
            Project.promoter_name,
            func.count(Project.id),
            func.sum(Project.total_units),
        ),
        city,
    ).filter(
        Project.promoter_name.isnot(None), Project.promoter_name != ''
    ).group_by(Project.promoter_name).order_by(
        func.count(Project.id).desc(), Project.promoter_name.asc()
    ).limit(limit).all()

    return [
        {'developer': name, 'projects': count, 'total_units': int(units or 0)}
        for name, count, units in rows
    ]


def approvals_since(months: int, city: Optional[str] = None, today: Optional[date] = None) -> int:
    """Projects approved within the last `months` months."""
    today = today or date.today()
    cutoff = today - relativedelta(months=max(months, 0))
    return _scoped(db.session.query(func.count(Project.id)), city).filter(
        Project.approved_on_date.isnot(None),
        Project.approved_on_date >= cutoff,
        Project.approved_on_date <= today,
    ).scalar() or 0


def get_market_summary(city: Optional[str] = None, months: int = 6,
                       today: Optional[date] = None) -> dict:
    """
    Market summary for the dashboard.

    Args:
        city: Restrict to one city (case-insensitive)
        months: Window for the recent-approvals count
        today: Reference date (defaults to today)

    Returns:
        Dict with totals, breakdowns and top developers
    """
    totals = _scoped(
        db.session.query(
            func.count(Project.id),
            func.sum(Project.total_units),
            func.sum(Project.available_units),
            func.avg(Project.booking_percentage),
        ),
        city,
    ).one()
    count, total_units, available_units, avg_booking = totals

    summary = {
        'city': city,
        'total_projects': count or 0,
        'total_units': int(total_units or 0),
        'units_available': int(available_units or 0),
        'average_booking_percentage': round(float(avg_booking), 1) if avg_booking is not None else 0.0,
        'by_status': _breakdown(Project.status, city),
        'by_type': _breakdown(Project.project_type, city),
        'by_provenance': _breakdown(Project.provenance, city),
        'recent_approvals': {
            'months': months,
            'count': approvals_since(months, city, today),
        },
        'top_developers': top_developers(city),
    }
    logger.debug(f"Market summary for {city or 'all cities'}: {summary['total_projects']} projects")
    return summary


def get_city_stats(city: str) -> dict:
    """Per-status and per-type counts for one city listing."""
    return {
        'by_status': _breakdown(Project.status, city),
        'by_type': _breakdown(Project.project_type, city),
    }
