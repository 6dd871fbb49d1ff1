"""
API-probe strategy.

Tries well-known REST-like endpoints on the portal host. The first
endpoint returning a JSON list of projects wins. A JSON body without a
project list counts as reachable-but-empty; non-JSON bodies on every
endpoint mean the portal exposes no API, which is a StrategyFailure.
"""
import logging
from typing import Any, List, Optional
from urllib.parse import urlencode

from constants import API_LIST_CONTAINER_KEYS, API_PROBE_ENDPOINTS
from ..base import BaseStrategy, SessionContext, StrategyResult, matches_target
from ..exceptions import StrategyFailure, StructuralMismatch, TransientNetworkError

logger = logging.getLogger(__name__)


def extract_items(payload: Any, depth: int = 0) -> Optional[List[dict]]:
    """
    Find the project list inside a JSON payload.

    Accepts a bare list or a dict wrapping it under projects/data/result
    (one level of nesting allowed, e.g. {"data": {"projects": [...]}}).
    """
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict) and depth < 2:
        for key in API_LIST_CONTAINER_KEYS:
            if key in payload:
                items = extract_items(payload[key], depth + 1)
                if items is not None:
                    return items
    return None


class ApiProbeStrategy(BaseStrategy):
    """Probe JSON endpoints in order."""

    NAME = "api-probe"

    def __init__(self, endpoints: Optional[List[str]] = None):
        self.endpoints = endpoints or list(API_PROBE_ENDPOINTS)

    def endpoint_url(self, endpoint: str, target: Optional[str], context: SessionContext) -> str:
        url = context.url(endpoint)
        if target:
            url = f"{url}?{urlencode({'district': target})}"
        return url

    def attempt(self, target: Optional[str], context: SessionContext) -> StrategyResult:
        result = StrategyResult(strategy=self.NAME, target=target)
        session = context.new_session()
        json_seen = False
        transient_only = True

        for endpoint in self.endpoints:
            if context.cancelled:
                result.cancelled = True
                break
            url = self.endpoint_url(endpoint, target, context)
            try:
                response = self.fetch(session, url, context, target=target)
            except TransientNetworkError as e:
                result.failures.append(f"{url}: {e}")
                continue
            except StructuralMismatch as e:
                transient_only = False
                result.failures.append(f"{url}: {e}")
                continue
            result.pages_fetched += 1

            try:
                payload = response.json()
            except ValueError:
                transient_only = False
                result.failures.append(f"{url}: non-JSON response")
                logger.info(f"[{self.NAME}] {url} returned non-JSON body")
                continue

            json_seen = True
            items = extract_items(payload)
            if not items:
                continue

            for item in items:
                record = dict(item)
                record.setdefault("source_url", url)
                if matches_target(record, target):
                    result.records.append(record)
            result.source_url = url
            logger.info(f"[{self.NAME}] {url} returned {len(items)} items ({result.count} in scope)")
            return result

        if json_seen or result.cancelled:
            return result

        cause = TransientNetworkError("all endpoints unreachable") if transient_only else \
            StructuralMismatch("no endpoint returned JSON")
        raise StrategyFailure(self.NAME, target, cause=cause)
