"""
Interactive / human-paced strategy.

Same extraction as the paginated-table strategy; differs only in pacing
and request fingerprint:
- visits the landing page first and carries a Referer chain
- browser-like headers
- randomized delays between actions, incremental "scroll" pauses while
  reading a page, and per-keystroke pauses when a district is searched

Delays come from context.rng / context.sleep, so tests stay instant.
"""
import logging
from typing import Dict, Optional

from constants import LANDING_PATH
from ..base import SessionContext
from ..exceptions import IngestionError
from .paginated_table import PaginatedTableStrategy

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-IN,en-GB;q=0.9,en;q=0.8,gu;q=0.6",
    "Upgrade-Insecure-Requests": "1",
}

SCROLL_STEPS = (2, 5)
SCROLL_PAUSE = (0.3, 0.8)
KEYSTROKE_PAUSE = (0.05, 0.2)
LANDING_PAUSE = (2.0, 4.0)


class HumanPacedStrategy(PaginatedTableStrategy):
    """Paginated crawl with human-like pacing."""

    NAME = "human-paced"

    def request_headers(self, context: SessionContext, referer: Optional[str] = None) -> Dict[str, str]:
        headers = dict(BROWSER_HEADERS)
        if referer:
            headers["Referer"] = referer
            headers["Sec-Fetch-Site"] = "same-origin"
        return headers

    def _pause(self, context: SessionContext, low: float, high: float):
        context.sleep(context.rng.uniform(low, high))

    def _scroll(self, context: SessionContext):
        for _ in range(context.rng.randint(*SCROLL_STEPS)):
            self._pause(context, *SCROLL_PAUSE)

    def _type(self, context: SessionContext, text: str):
        for _ in text:
            self._pause(context, *KEYSTROKE_PAUSE)

    def before_crawl(self, session, context: SessionContext, target: Optional[str]) -> Optional[str]:
        landing = context.url(LANDING_PATH)
        try:
            self.fetch(session, landing, context, target=target)
        except IngestionError as e:
            # Landing page is pacing only; the listing may still load
            logger.info(f"[{self.NAME}] landing page unavailable: {e}")
            return None
        self._pause(context, *LANDING_PAUSE)
        self._scroll(context)
        if target:
            self._type(context, target)
        return landing

    def pause_between_pages(self, context: SessionContext):
        self._scroll(context)
        low, high = context.human_delay_range
        self._pause(context, low, high)
