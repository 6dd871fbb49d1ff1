"""
Project Repository - Persistence for canonical ProjectRecords.

All writes to the projects table go through here:
- upsert_batch: one transaction per batch, keyed by registration id
- add_project: single insert that rejects existing registration ids
- clear_all: destructive admin reset

Re-running ingestion over unchanged source data is a no-op: each row
stores a hash of its content and identical content is not rewritten.

Usage:
    from services.project_repository import ProjectRepository

    repo = ProjectRepository()
    counts = repo.upsert_batch(records, run_id=run_id)
    page = repo.query_by_city("ahmedabad", page=1, limit=20)
"""
import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from models.database import db
from models.project import Project
from scrapers.exceptions import DuplicateRegistrationError, RepositoryError
from scrapers.field_extractors import parse_date
from scrapers.records import ProjectRecord
from scrapers.fingerprint import content_hash

logger = logging.getLogger(__name__)

# Serializes writers within this process; atomicity is the transaction's job
_write_lock = threading.Lock()

# Bound on IN (...) lists when loading existing rows
LOOKUP_CHUNK_SIZE = 500

MAX_PAGE_SIZE = 100

SORT_COLUMNS = {
    'name': Project.name,
    'booking': Project.booking_percentage,
    'units': Project.total_units,
    'approved': Project.approved_on_date,
}

# Columns copied from ProjectRecord onto the row
_RECORD_COLUMNS = (
    'name', 'promoter_name', 'project_type', 'status', 'district', 'locality',
    'pincode', 'address', 'approved_on', 'completion_date', 'total_units',
    'available_units', 'booking_percentage', 'project_area', 'total_buildings',
    'min_price', 'max_price', 'provenance', 'is_low_confidence',
)


@dataclass
class PagedResult:
    """One page of projects plus paging metadata."""
    items: List[Project] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0

    @property
    def total_pages(self) -> int:
        if self.total <= 0 or self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)

    @property
    def records(self) -> List[ProjectRecord]:
        return [ProjectRecord.from_model(row) for row in self.items]

    def pagination(self) -> Dict[str, int]:
        return {
            'page': self.page,
            'limit': self.limit,
            'total': self.total,
            'totalPages': self.total_pages,
        }

    def to_dict(self) -> dict:
        return {
            'projects': [row.to_dict() for row in self.items],
            'pagination': self.pagination(),
        }


def record_hash(record: ProjectRecord) -> str:
    return content_hash(record.content())


def _apply_record(row: Project, record: ProjectRecord, digest: str, run_id: Optional[str]):
    for column in _RECORD_COLUMNS:
        setattr(row, column, getattr(record, column))
    row.approved_on_date = parse_date(record.approved_on)
    row.completion_on_date = parse_date(record.completion_date)
    row.record_hash = digest
    row.last_run_id = run_id


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class ProjectRepository:
    """Read/write access to the projects table."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # =========================================================================
    # Writes
    # =========================================================================

    def _existing_rows(self, registration_ids: List[str]) -> Dict[str, Project]:
        existing = {}
        for chunk in _chunks(registration_ids, LOOKUP_CHUNK_SIZE):
            rows = self.session.query(Project).filter(Project.registration_id.in_(chunk)).all()
            existing.update({row.registration_id: row for row in rows})
        return existing

    def upsert_batch(self, records: List[ProjectRecord], run_id: Optional[str] = None) -> Dict[str, int]:
        """
        Insert or update a batch keyed by registration id, atomically.

        Args:
            records: Normalized records (later duplicates of an id win)
            run_id: Ingestion run stamped on written rows

        Returns:
            {"inserted": n, "updated": n, "unchanged": n}

        Raises:
            RepositoryError: the transaction failed and was rolled back
        """
        counts = {'inserted': 0, 'updated': 0, 'unchanged': 0}
        if not records:
            return counts

        with _write_lock:
            try:
                ids = list(dict.fromkeys(r.registration_id for r in records))
                existing = self._existing_rows(ids)
                outcome: Dict[str, str] = {}

                for record in records:
                    key = record.registration_id
                    digest = record_hash(record)
                    row = existing.get(key)

                    if row is None:
                        row = Project(registration_id=key)
                        _apply_record(row, record, digest, run_id)
                        self.session.add(row)
                        existing[key] = row
                        outcome[key] = 'inserted'
                    elif row.record_hash == digest:
                        outcome.setdefault(key, 'unchanged')
                    else:
                        _apply_record(row, record, digest, run_id)
                        row.updated_at = datetime.utcnow()
                        if outcome.get(key) != 'inserted':
                            outcome[key] = 'updated'

                self.session.commit()
                for status in outcome.values():
                    counts[status] += 1
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(f"upsert_batch rolled back ({len(records)} records): {e}")
                raise RepositoryError(f"Batch upsert failed: {e}") from e

        logger.info(
            f"upsert_batch: {counts['inserted']} inserted, {counts['updated']} updated, "
            f"{counts['unchanged']} unchanged"
        )
        return counts

    def add_project(self, record: ProjectRecord, run_id: Optional[str] = None) -> Project:
        """
        Insert one record; never overwrites.

        Raises:
            DuplicateRegistrationError: registration id already stored
            RepositoryError: insert failed
        """
        with _write_lock:
            if self.get_model(record.registration_id) is not None:
                raise DuplicateRegistrationError(record.registration_id)
            row = Project(registration_id=record.registration_id)
            _apply_record(row, record, record_hash(record), run_id)
            try:
                self.session.add(row)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                raise RepositoryError(f"Insert failed for {record.registration_id}: {e}") from e
        logger.info(f"Added project {record.registration_id} ({record.provenance})")
        return row

    def clear_all(self) -> int:
        """Delete every project. Returns the number of rows removed."""
        with _write_lock:
            try:
                deleted = self.session.query(Project).delete(synchronize_session=False)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                raise RepositoryError(f"Clear failed: {e}") from e
        logger.warning(f"Cleared {deleted} projects")
        return deleted

    # =========================================================================
    # Reads
    # =========================================================================

    def get_model(self, registration_id: str) -> Optional[Project]:
        if not registration_id:
            return None
        return self.session.query(Project).filter(
            Project.registration_id == registration_id.strip()
        ).first()

    def find_by_registration_id(self, registration_id: str) -> Optional[ProjectRecord]:
        return ProjectRecord.from_model(self.get_model(registration_id))

    def _paginate(self, query, page: int, limit: int) -> PagedResult:
        page = max(int(page or 1), 1)
        limit = min(max(int(limit or 20), 1), MAX_PAGE_SIZE)
        total = query.order_by(None).count()
        items = query.offset((page - 1) * limit).limit(limit).all()
        return PagedResult(items=items, page=page, limit=limit, total=total)

    def query_by_city(self, city: str, page: int = 1, limit: int = 20) -> PagedResult:
        """Projects in one city (case-insensitive), ordered by name."""
        query = self.session.query(Project).filter(
            func.lower(Project.district) == (city or '').strip().lower()
        ).order_by(Project.name.asc(), Project.id.asc())
        return self._paginate(query, page, limit)

    def query(
        self,
        city: Optional[str] = None,
        status: Optional[str] = None,
        project_type: Optional[str] = None,
        search: Optional[str] = None,
        locality: Optional[str] = None,
        developer: Optional[str] = None,
        provenance: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: str = 'name',
        order: str = 'asc',
        page: int = 1,
        limit: int = 20,
    ) -> PagedResult:
        """
        Filtered, sorted, paged project listing.

        Price filters compare against the project's price band: a project
        matches min_price if its max_price reaches it, and max_price if its
        min_price is within it.
        """
        query = self.session.query(Project)

        if city:
            query = query.filter(func.lower(Project.district) == city.strip().lower())
        if status:
            query = query.filter(func.lower(Project.status) == status.strip().lower())
        if project_type:
            query = query.filter(func.lower(Project.project_type) == project_type.strip().lower())
        if locality:
            query = query.filter(func.lower(Project.locality) == locality.strip().lower())
        if developer:
            query = query.filter(Project.promoter_name.ilike(f"%{developer.strip()}%"))
        if provenance:
            query = query.filter(Project.provenance == provenance)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Project.name.ilike(pattern),
                Project.promoter_name.ilike(pattern),
                Project.registration_id.ilike(pattern),
                Project.locality.ilike(pattern),
            ))
        if min_price is not None:
            query = query.filter(Project.max_price >= min_price)
        if max_price is not None:
            query = query.filter(Project.min_price <= max_price)

        column = SORT_COLUMNS.get(sort, Project.name)
        direction = column.desc() if order == 'desc' else column.asc()
        if sort == 'approved':
            # Unparsable approval dates sort last in either direction
            query = query.order_by(Project.approved_on_date.is_(None), direction, Project.id.asc())
        else:
            query = query.order_by(direction, Project.id.asc())

        return self._paginate(query, page, limit)

    def count_by_city(self) -> List[dict]:
        rows = self.session.query(
            Project.district, func.count(Project.id)
        ).group_by(Project.district).order_by(func.count(Project.id).desc()).all()
        return [{'city': district, 'count': count} for district, count in rows]

    def provenance_counts(self) -> Dict[str, int]:
        rows = self.session.query(
            Project.provenance, func.count(Project.id)
        ).group_by(Project.provenance).all()
        return {provenance: count for provenance, count in rows}

    def filter_options(self) -> dict:
        """Distinct values for the listing filters."""
        def distinct(column):
            rows = self.session.query(column).filter(column.isnot(None), column != '').distinct().all()
            return sorted(value for (value,) in rows)

        return {
            'cities': distinct(Project.district),
            'developers': distinct(Project.promoter_name),
            'project_types': distinct(Project.project_type),
            'statuses': distinct(Project.status),
        }
