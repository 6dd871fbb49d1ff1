"""
Paginated-table strategy.

Walks sequential listing pages (up to context.max_pages), extracting rows
from project tables. The first URL pattern whose page 1 shows a listing is
reused for every later page; a "next" link on the page takes precedence
when present. Stops at the first page yielding zero new registration ids,
when no next page can be located, on max_pages, or on cancellation.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from constants import PAGINATED_URL_PATTERNS
from ..base import BaseStrategy, SessionContext, StrategyResult, matches_target
from ..exceptions import IngestionError, StrategyFailure, StructuralMismatch, TransientNetworkError
from ..normalizer import lookup
from ..table_parser import extract_records, find_next_link, has_listing_structure

logger = logging.getLogger(__name__)


@dataclass
class CrawlState:
    """Per-target pagination state (owned by one worker)."""
    seen: Set[str] = field(default_factory=set)
    pages: int = 0


class PaginatedTableStrategy(BaseStrategy):
    """Sequential listing pages."""

    NAME = "paginated-table"

    def __init__(self, url_patterns: Optional[List[str]] = None):
        self.url_patterns = url_patterns or list(PAGINATED_URL_PATTERNS)

    # ------------------------------------------------------------------
    # Pacing hooks (overridden by the human-paced variant)
    # ------------------------------------------------------------------

    def before_crawl(self, session, context: SessionContext, target: Optional[str]) -> Optional[str]:
        """Runs once per attempt before page 1. Returns a referer, if any."""
        return None

    def pause_between_pages(self, context: SessionContext):
        if context.page_delay:
            context.sleep(context.page_delay)

    # ------------------------------------------------------------------

    def open_first_page(self, session, context: SessionContext, target: Optional[str],
                        templates: List[str], referer: Optional[str] = None,
                        failures: Optional[List[str]] = None) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """
        Try each URL template for page 1.

        Returns:
            (template, url, html) for the first template showing a listing,
            or (None, None, None)

        Raises:
            StrategyFailure: every template failed with a network error
        """
        failures = failures if failures is not None else []
        transient_only = True
        for template in templates:
            if context.cancelled:
                return None, None, None
            url = context.url(template.format(page=1))
            try:
                html = self.fetch_text(session, url, context, target=target, referer=referer)
            except TransientNetworkError as e:
                failures.append(f"{url}: {e}")
                continue
            except StructuralMismatch as e:
                transient_only = False
                failures.append(f"{url}: {e}")
                continue
            if has_listing_structure(html):
                return template, url, html
            transient_only = False
            failures.append(f"{url}: no listing table")
        if templates and transient_only:
            raise StrategyFailure(self.NAME, target, cause=TransientNetworkError("listing unreachable"))
        return None, None, None

    def crawl(self, session, context: SessionContext, target: Optional[str], template: Optional[str],
              first_url: str, first_html: str, result: StrategyResult, state: CrawlState):
        """
        Extract page 1 (already fetched) and follow pagination.

        Rows are appended to result.records in page order.
        """
        url, html, page = first_url, first_html, 1
        while True:
            rows = extract_records(html, url)
            new_rows = []
            for row in rows:
                key = str(lookup(row, "registration_id"))
                if key in state.seen:
                    continue
                state.seen.add(key)
                new_rows.append(row)
            state.pages += 1
            result.pages_fetched += 1

            if not new_rows:
                logger.info(f"[{self.NAME}] {target or 'all'}: page {page} has no new rows, stopping")
                break
            result.records.extend(r for r in new_rows if matches_target(r, target))

            if page >= context.max_pages:
                logger.info(f"[{self.NAME}] {target or 'all'}: reached max pages ({context.max_pages})")
                break
            if context.cancelled:
                result.cancelled = True
                break

            next_url = find_next_link(html, url)
            if next_url is None and template is not None:
                next_url = context.url(template.format(page=page + 1))
            if next_url is None or next_url == url:
                logger.info(f"[{self.NAME}] {target or 'all'}: no next page after page {page}")
                break

            self.pause_between_pages(context)
            try:
                html = self.fetch_text(session, next_url, context, target=target, referer=url)
            except IngestionError as e:
                # Rows already collected are kept
                result.failures.append(f"{next_url}: {e}")
                logger.warning(f"[{self.NAME}] {target or 'all'}: stopped at page {page + 1}: {e}")
                break
            url, page = next_url, page + 1

    def attempt(self, target: Optional[str], context: SessionContext) -> StrategyResult:
        result = StrategyResult(strategy=self.NAME, target=target)
        session = context.new_session()
        referer = self.before_crawl(session, context, target)

        template, url, html = self.open_first_page(
            session, context, target, self.url_patterns, referer=referer, failures=result.failures
        )
        if template is None:
            if context.cancelled:
                result.cancelled = True
                return result
            raise StrategyFailure(self.NAME, target, cause=StructuralMismatch("no listing table on any pattern"))

        result.source_url = url
        self.crawl(session, context, target, template, url, html, result, CrawlState())
        logger.info(
            f"[{self.NAME}] {target or 'all'}: {result.count} rows from {result.pages_fetched} pages"
        )
        return result
