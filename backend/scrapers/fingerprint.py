"""
Record fingerprints.

content_hash() drives change detection on upsert (rows whose content hash
is unchanged are not rewritten). The same digest, truncated, forms the
LC- keys synthesized for records without a registration id.
"""
import hashlib
import json
from typing import Any


def canonical_value(value: Any) -> Any:
    """
    Strings are whitespace-collapsed, floats rounded to 2 places and
    None-valued keys dropped, so two extractions of the same page that
    differ only cosmetically fingerprint the same.
    """
    if isinstance(value, dict):
        return {k: canonical_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [canonical_value(v) for v in value]
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return round(value, 2)
    if isinstance(value, str):
        return " ".join(value.split())
    return value


def content_hash(data: Any) -> str:
    """64-char SHA256 hex digest of the canonical JSON form of `data`."""
    payload = json.dumps(canonical_value(data), sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
