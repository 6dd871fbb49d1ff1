"""
Deduplicator

Collapses raw extractions of the same project into one record.

- Records sharing a registration id: keep the one with the most non-empty
  fields; ties go to the first seen.
- Records with no registration id but a name get a stable synthesized key
  from (name, district) and are flagged low-confidence.
- Records with neither are dropped.

Output order follows first appearance of each key.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from constants import canonical_city
from .field_extractors import clean_text
from .normalizer import lookup
from .records import LOW_CONFIDENCE_KEY, RawRecord
from .fingerprint import content_hash

logger = logging.getLogger(__name__)

SYNTHESIZED_KEY_PREFIX = "LC-"


@dataclass
class DedupeResult:
    records: List[RawRecord] = field(default_factory=list)
    duplicates_removed: int = 0
    dropped: int = 0
    synthesized_keys: int = 0


def completeness(raw: RawRecord) -> int:
    """Number of populated fields (internal markers excluded)."""
    count = 0
    for key, value in raw.items():
        if key.startswith("_") or value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        if isinstance(value, (list, dict)) and not value:
            continue
        count += 1
    return count


def synthesize_key(name: str, district: str) -> str:
    """Stable key for a record without a registration id."""
    digest = content_hash({"name": clean_text(name).lower(), "district": canonical_city(district)})
    return f"{SYNTHESIZED_KEY_PREFIX}{digest[:16].upper()}"


def dedupe_with_stats(records: List[RawRecord]) -> DedupeResult:
    result = DedupeResult()
    best: Dict[str, RawRecord] = {}
    order: List[str] = []

    for raw in records:
        registration_id = clean_text(lookup(raw, "registration_id"))
        if not registration_id:
            name = clean_text(lookup(raw, "name"))
            if not name:
                result.dropped += 1
                continue
            registration_id = synthesize_key(name, clean_text(lookup(raw, "district")))
            raw = dict(raw)
            raw["registration_id"] = registration_id
            raw[LOW_CONFIDENCE_KEY] = True
            result.synthesized_keys += 1

        current = best.get(registration_id)
        if current is None:
            best[registration_id] = raw
            order.append(registration_id)
            continue

        result.duplicates_removed += 1
        if completeness(raw) > completeness(current):
            best[registration_id] = raw

    result.records = [best[key] for key in order]
    if result.duplicates_removed or result.dropped:
        logger.info(
            f"Dedupe: {len(records)} in, {len(result.records)} out, "
            f"{result.duplicates_removed} duplicates, {result.dropped} dropped"
        )
    return result


def dedupe(records: List[RawRecord]) -> List[RawRecord]:
    """Deduplicate raw records by registration id."""
    return dedupe_with_stats(records).records
