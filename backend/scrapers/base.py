"""
Base Strategy - Abstract template for all extraction strategies.

Provides common functionality:
- SessionContext: per-run configuration, rate limiter, cancellation token,
  injected sleep/rng, and a factory for per-worker HTTP sessions
- Bounded-retry fetch with backoff (TransientNetworkError)
- Error classification (StructuralMismatch for 4xx / wrong shape)

A strategy returns an empty StrategyResult when it finds nothing and
raises StrategyFailure only for unrecoverable conditions.
"""
import logging
import random
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests

from constants import GUJARAT_DISTRICTS, RERA_BASE_URL, RERA_SOURCE_DOMAIN, canonical_city
from .exceptions import StructuralMismatch, TransientNetworkError
from .normalizer import lookup, resolve_district
from .records import RawRecord

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "GujaratRERAAnalytics/1.0 (research purposes)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.8",
    "Accept-Language": "en-IN,en;q=0.9",
}

# Request errors that retrying the same URL cannot fix
NON_RETRYABLE_REQUEST_ERRORS = (
    requests.TooManyRedirects,
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
)


class CancellationToken:
    """
    Cooperative cancellation with an optional wall-clock deadline.

    Checked between page fetches, never mid-fetch.
    """

    def __init__(self, deadline: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._event = threading.Event()
        self._deadline = deadline
        self._clock = clock
        self.reason: Optional[str] = None

    @classmethod
    def with_budget(cls, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        """Token that trips `seconds` from now (no deadline if None)."""
        if seconds is None:
            return cls(clock=clock)
        return cls(deadline=clock() + seconds, clock=clock)

    def cancel(self, reason: str = "cancelled"):
        self.reason = self.reason or reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self.cancel("wall-clock budget exceeded")
            return True
        return False


@dataclass
class SessionContext:
    """Everything a strategy attempt needs besides its target."""
    base_url: str = RERA_BASE_URL
    source_domain: str = RERA_SOURCE_DOMAIN
    timeout: float = 30
    max_retries: int = 3
    backoff_seconds: float = 1.0
    max_pages: int = 100
    page_delay: float = 1.0
    district_delay: float = 2.0
    max_workers: int = 3
    districts: List[str] = field(default_factory=lambda: list(GUJARAT_DISTRICTS))
    human_delay_range: tuple = (1.0, 3.0)
    headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    rate_limiter: Any = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    sleep: Callable[[float], None] = time.sleep
    rng: random.Random = field(default_factory=random.Random)
    session_factory: Callable[[], Any] = requests.Session

    def new_session(self):
        """A fresh HTTP session. Sessions are never shared across workers."""
        session = self.session_factory()
        if hasattr(session, "headers"):
            session.headers.update(self.headers)
        return session

    def url(self, path: str) -> str:
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.is_cancelled


@dataclass
class StrategyResult:
    """Raw records from one strategy attempt against one target."""
    strategy: str
    target: Optional[str] = None
    records: List[RawRecord] = field(default_factory=list)
    pages_fetched: int = 0
    failures: List[str] = field(default_factory=list)
    failed_targets: List[str] = field(default_factory=list)
    source_url: Optional[str] = None
    cancelled: bool = False

    @property
    def count(self) -> int:
        return len(self.records)


class BaseStrategy(ABC):
    """
    Abstract base class for all extraction strategies.

    Subclasses must implement:
    - attempt(): extract raw records for a target

    Subclasses should set class attributes:
    - NAME: Unique strategy identifier (used in config and run records)
    """

    NAME: str = "base"

    def __repr__(self):
        return f"<{type(self).__name__} {self.NAME}>"

    @abstractmethod
    def attempt(self, target: Optional[str], context: SessionContext) -> StrategyResult:
        """
        Extract raw records.

        Args:
            target: District/city name, or None for the whole state
            context: SessionContext for this run

        Returns:
            StrategyResult (possibly empty)

        Raises:
            StrategyFailure: network unreachable or structure absent after retries
        """
        pass

    def request_headers(self, context: SessionContext, referer: Optional[str] = None) -> Dict[str, str]:
        """Per-request headers on top of the session's."""
        return {"Referer": referer} if referer else {}

    def fetch(self, session, url: str, context: SessionContext, target: Optional[str] = None,
              referer: Optional[str] = None):
        """
        GET a URL with rate limiting and bounded retries.

        Args:
            session: requests.Session (or compatible) owned by the caller
            url: Absolute URL
            context: SessionContext
            target: For log context only
            referer: Optional Referer header

        Returns:
            requests.Response with a 2xx status

        Raises:
            TransientNetworkError: still failing after context.max_retries
            StructuralMismatch: 4xx other than 429, bad URL or redirect loop
        """
        attempts = max(context.max_retries, 1)
        for attempt in range(1, attempts + 1):
            if context.rate_limiter:
                context.rate_limiter.wait(context.source_domain)
            try:
                response = session.get(
                    url,
                    timeout=context.timeout,
                    headers=self.request_headers(context, referer),
                )
                status = response.status_code
                if status == 429:
                    self._honour_retry_after(response, context)
                if status == 429 or status >= 500:
                    raise TransientNetworkError(f"HTTP {status}", url=url, status_code=status)
                if status >= 400:
                    raise StructuralMismatch(f"HTTP {status}", url=url)
                return response
            except NON_RETRYABLE_REQUEST_ERRORS as e:
                raise StructuralMismatch(f"{type(e).__name__}: {e}", url=url) from e
            except requests.RequestException as e:
                # Anything else from the transport is retried
                error = TransientNetworkError(f"{type(e).__name__}: {e}", url=url)
            except TransientNetworkError as e:
                error = e

            logger.warning(
                f"[{self.NAME}] target={target or 'all'} attempt {attempt}/{attempts} "
                f"failed for {url}: {error}"
            )
            if attempt < attempts:
                context.sleep(context.backoff_seconds * (2 ** (attempt - 1)))
        raise error

    def _honour_retry_after(self, response, context: SessionContext):
        """Pass a 429's Retry-After (seconds form) on to the shared rate limiter."""
        raw = (getattr(response, "headers", None) or {}).get("Retry-After")
        if not raw or not context.rate_limiter:
            return
        try:
            seconds = float(raw)
        except ValueError:
            logger.debug(f"[{self.NAME}] ignoring non-numeric Retry-After {raw!r}")
            return
        context.rate_limiter.penalize(context.source_domain, seconds)

    def fetch_text(self, session, url: str, context: SessionContext, target: Optional[str] = None,
                   referer: Optional[str] = None) -> str:
        return self.fetch(session, url, context, target=target, referer=referer).text


def matches_target(raw: RawRecord, target: Optional[str]) -> bool:
    """Record belongs to the target district (by district field or id segment)."""
    if not target:
        return True
    registration_id = str(lookup(raw, "registration_id") or "")
    district = resolve_district(raw, registration_id)
    return not district or district == canonical_city(target)
