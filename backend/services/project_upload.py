"""
Project Upload Service

Bulk-loads RERA projects from an operator-supplied CSV or JSON file.
Every accepted row is tagged provenance=ManualUpload and written through
the same dedupe -> normalize -> upsert_batch path as live ingestion.

Accepted shapes:
- CSV with a header row (any column aliases the normalizer knows)
- JSON list of objects
- JSON object with the list under "projects" (or "data")

Usage:
    from services.project_upload import upload_projects

    with open('rera_export.csv', 'rb') as f:
        stats = upload_projects(f.read(), 'rera_export.csv')
"""
import io
import json
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import pandas as pd

from scrapers.deduplicator import dedupe_with_stats
from scrapers.exceptions import ValidationError
from scrapers.normalizer import normalize_batch
from scrapers.records import Provenance

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.csv', '.json')
JSON_LIST_KEYS = ('projects', 'data')
MAX_REPORTED_ERRORS = 20


def _file_kind(filename: str, content: bytes) -> str:
    name = (filename or '').lower()
    if name.endswith('.csv'):
        return 'csv'
    if name.endswith('.json'):
        return 'json'
    head = content.lstrip()[:1]
    if head in (b'[', b'{'):
        return 'json'
    raise ValidationError(
        f"Unsupported file type '{filename}'. Expected one of {', '.join(SUPPORTED_EXTENSIONS)}",
        field='reraFile',
    )


def read_csv_rows(content: bytes) -> List[Dict[str, Any]]:
    """CSV bytes -> list of row dicts (all values as stripped strings)."""
    try:
        df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, encoding='utf-8-sig')
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValidationError(f"Could not parse CSV: {e}", field='reraFile') from e
    df.columns = [str(c).strip() for c in df.columns]
    df = df.apply(lambda col: col.str.strip())
    return df.to_dict(orient='records')


def read_json_rows(content: bytes) -> List[Dict[str, Any]]:
    """JSON bytes -> list of row dicts."""
    try:
        payload = json.loads(content.decode('utf-8-sig'))
    except (ValueError, UnicodeDecodeError) as e:
        raise ValidationError(f"Could not parse JSON: {e}", field='reraFile') from e

    if isinstance(payload, dict):
        for key in JSON_LIST_KEYS:
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break

    if not isinstance(payload, list):
        raise ValidationError(
            "JSON upload must be a list of projects or an object with a 'projects' list",
            field='reraFile',
        )
    return [row for row in payload if isinstance(row, dict)]


def parse_upload(content: bytes, filename: str) -> List[Dict[str, Any]]:
    """
    Parse an uploaded file into raw records.

    Raises:
        ValidationError: unsupported type, unparsable content, or empty file
    """
    if not content or not content.strip():
        raise ValidationError("Uploaded file is empty", field='reraFile')
    kind = _file_kind(filename, content)
    rows = read_csv_rows(content) if kind == 'csv' else read_json_rows(content)
    logger.info(f"Parsed {len(rows)} rows from {kind.upper()} upload '{filename}'")
    return rows


def upload_projects(content: bytes, filename: str, repository=None,
                    run_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Parse, normalize and upsert an uploaded file.

    Args:
        content: Raw file bytes
        filename: Original filename (used to detect CSV vs JSON)
        repository: ProjectRepository (default: a new one on db.session)
        run_id: Optional tag for written rows

    Returns:
        Upload statistics, including per-city counts of accepted rows

    Raises:
        ValidationError: the file itself could not be read
        RepositoryError: the batch could not be persisted
    """
    if repository is None:
        from services.project_repository import ProjectRepository
        repository = ProjectRepository()

    rows = parse_upload(content, filename)
    deduped = dedupe_with_stats(rows)
    records, rejections = normalize_batch(deduped.records, provenance=Provenance.MANUAL_UPLOAD.value)

    stats = {
        'file': filename,
        'rows_read': len(rows),
        'accepted': len(records),
        'rejected': len(rejections) + deduped.dropped,
        'duplicates_removed': deduped.duplicates_removed,
        'low_confidence': sum(1 for r in records if r.is_low_confidence),
        'inserted': 0,
        'updated': 0,
        'unchanged': 0,
        'by_city': dict(Counter(r.district for r in records)),
        'errors': [str(e) for e in rejections[:MAX_REPORTED_ERRORS]],
    }
    if deduped.dropped:
        stats['errors'].append(f"{deduped.dropped} row(s) had neither a registration id nor a name")

    if records:
        counts = repository.upsert_batch(records, run_id=run_id)
        stats.update(counts)

    logger.info(
        f"Upload '{filename}': {stats['accepted']}/{stats['rows_read']} accepted, "
        f"{stats['inserted']} inserted, {stats['updated']} updated, {stats['rejected']} rejected"
    )
    return stats
