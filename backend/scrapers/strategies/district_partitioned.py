"""
District-partitioned strategy.

Iterates a fixed district list, building per-district listing URLs and
extracting the same way as the paginated-table strategy, scoped to one
district at a time. Used when global pagination is unavailable.

Districts run on a small worker pool. Each worker owns its HTTP session
and accumulates records locally; results are merged after join. One
district failing does not abort the others.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional
from urllib.parse import quote

from constants import DISTRICT_URL_PATTERNS, canonical_city
from ..base import SessionContext, StrategyResult
from ..exceptions import IngestionError, StrategyFailure, StructuralMismatch
from .paginated_table import CrawlState, PaginatedTableStrategy

logger = logging.getLogger(__name__)

MAX_WORKERS = 5


class DistrictPartitionedStrategy(PaginatedTableStrategy):
    """One listing crawl per district."""

    NAME = "district-partitioned"

    def __init__(self, url_patterns: Optional[List[str]] = None, districts: Optional[List[str]] = None):
        super().__init__()
        self.district_patterns = url_patterns or list(DISTRICT_URL_PATTERNS)
        self.districts = districts

    def district_templates(self, district: str) -> List[str]:
        # Pages of a district listing are reached through "next" links only
        return [pattern.format(district=quote(district)) for pattern in self.district_patterns]

    def scrape_district(self, district: str, context: SessionContext) -> StrategyResult:
        """Crawl one district with a private session. Raises StrategyFailure."""
        result = StrategyResult(strategy=self.NAME, target=district)
        if context.cancelled:
            result.cancelled = True
            return result

        session = context.new_session()
        referer = self.before_crawl(session, context, district)
        template, url, html = self.open_first_page(
            session, context, district, self.district_templates(district),
            referer=referer, failures=result.failures,
        )
        if template is None:
            if context.cancelled:
                result.cancelled = True
                return result
            raise StrategyFailure(self.NAME, district, cause=StructuralMismatch("no district listing"))

        result.source_url = url
        self.crawl(session, context, district, None, url, html, result, CrawlState())
        for record in result.records:
            record.setdefault("district", district)
        return result

    def _worker(self, district: str, context: SessionContext, index: int):
        """Returns (result, error); exactly one is None."""
        if index and context.district_delay:
            context.sleep(context.district_delay)
        try:
            return self.scrape_district(district, context), None
        except IngestionError as e:
            logger.warning(f"[{self.NAME}] district={district} failed: {e}")
            return None, e

    def attempt(self, target: Optional[str], context: SessionContext) -> StrategyResult:
        if target:
            districts = [canonical_city(target)]
        else:
            districts = list(self.districts or context.districts)

        workers = max(1, min(context.max_workers, MAX_WORKERS, len(districts)))
        logger.info(f"[{self.NAME}] crawling {len(districts)} districts with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="district") as pool:
            futures = [
                pool.submit(self._worker, district, context, index)
                for index, district in enumerate(districts)
            ]
            partials = [future.result() for future in futures]

        merged = StrategyResult(strategy=self.NAME, target=target)
        failed_districts = []
        for district, (partial, error) in zip(districts, partials):
            if error is not None:
                failed_districts.append(district)
                merged.failed_targets.append(district)
                merged.failures.append(f"{district}: {error}")
                continue
            merged.failures.extend(f"{district}: {f}" for f in partial.failures)
            merged.records.extend(partial.records)
            merged.pages_fetched += partial.pages_fetched
            merged.cancelled = merged.cancelled or partial.cancelled

        if districts and len(failed_districts) == len(districts):
            raise StrategyFailure(self.NAME, target, message=f"all {len(districts)} districts failed")

        if failed_districts:
            logger.warning(f"[{self.NAME}] {len(failed_districts)} district(s) failed: {failed_districts}")
        logger.info(f"[{self.NAME}] {merged.count} rows from {len(districts) - len(failed_districts)} districts")
        return merged
