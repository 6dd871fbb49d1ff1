"""
Scraper Rate Limiter - Outbound request pacing for the RERA portal.

Separate from Flask-Limiter (which limits callers of our own API).
District workers share one limiter, so the portal sees the combined rate.

Limits come from config/scraper_rate_limits.yaml:
    defaults -> domains.<domain> -> domains.<domain>.routes.<route_group>
(later levels override earlier ones). Each key enforces a sliding window
per minute and per hour plus a minimum gap between consecutive requests.

A 429 with Retry-After blocks the key until the server's deadline
(see penalize()).

Storage: Redis sorted sets when REDIS_URL is set (shared across
processes), an in-process window otherwise.
"""
import os
import time
import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

REDIS_URL = os.environ.get("REDIS_URL")

DEFAULT_LIMITS = {
    "requests_per_minute": 20,
    "requests_per_hour": 600,
    "min_interval_seconds": 1.0,
}

# Upper bound on a server-requested pause
MAX_PENALTY_SECONDS = 600
REDIS_MAX_POLLS = 60


def _gap_needed(now: float, history: List[float], limits: Dict[str, float]) -> float:
    """Seconds until one more request fits. `history` is sorted, oldest first."""
    gap = 0.0
    if history:
        gap = limits["min_interval_seconds"] - (now - history[-1])
    minute = [t for t in history if now - t < 60]
    if len(minute) >= limits["requests_per_minute"]:
        gap = max(gap, 60 - (now - minute[0]))
    if len(history) >= limits["requests_per_hour"]:
        gap = max(gap, 3600 - (now - history[0]))
    return max(gap, 0.0)


class ScraperRateLimiter:
    """Rate limiter keyed by domain and route group."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        redis_url: Optional[str] = REDIS_URL,
    ):
        """
        Args:
            config_path: YAML limits file (default: backend/config/scraper_rate_limits.yaml)
            sleep: Sleep function (injected in tests)
            clock: Time source (injected in tests)
            redis_url: Redis connection URL; in-memory when empty
        """
        self.config_path = config_path or str(
            Path(__file__).parent.parent / "config" / "scraper_rate_limits.yaml"
        )
        self._config = None
        self._redis = None
        self._redis_url = redis_url
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._history: Dict[str, List[float]] = defaultdict(list)
        self._blocked_until: Dict[str, float] = {}

    @property
    def config(self) -> Dict[str, Any]:
        if self._config is None:
            try:
                with open(self.config_path, "r") as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"Loaded scraper rate limits from {self.config_path}")
            except FileNotFoundError:
                logger.warning(f"Rate limit config not found at {self.config_path}, using defaults")
                self._config = {"defaults": dict(DEFAULT_LIMITS), "domains": {}}
        return self._config

    @property
    def redis(self):
        """Redis client, or None (connection failures fall back to memory for good)."""
        if self._redis is None and self._redis_url:
            try:
                import redis
                client = redis.from_url(self._redis_url)
                client.ping()
                self._redis = client
                logger.info("Scraper rate limiter using Redis")
            except Exception as e:
                logger.warning(f"Redis unavailable for scraper rate limiting, using memory: {e}")
                self._redis = False
        return self._redis or None

    def get_limits(self, domain: str, route_group: str = "default") -> Dict[str, float]:
        """Effective limits: route overrides domain, domain overrides defaults."""
        defaults = self.config.get("defaults") or {}
        domain_config = (self.config.get("domains") or {}).get(domain) or {}
        route_config = (domain_config.get("routes") or {}).get(route_group) or {}

        limits = {}
        for key, fallback in DEFAULT_LIMITS.items():
            value = defaults.get(key, fallback)
            value = domain_config.get(key, value)
            limits[key] = route_config.get(key, value)
        return limits

    @staticmethod
    def key_for(domain: str, route_group: str = "default") -> str:
        return f"scrape:{domain}:{route_group}"

    def wait(self, domain: str, route_group: str = "default"):
        """Block until a request to `domain` is allowed, then record it."""
        limits = self.get_limits(domain, route_group)
        key = self.key_for(domain, route_group)
        if self.redis:
            self._wait_redis(key, limits)
        else:
            self._wait_memory(key, limits)

    def penalize(self, domain: str, seconds: float, route_group: str = "default"):
        """Hold every request for this key for `seconds` (capped)."""
        seconds = min(max(float(seconds), 0.0), MAX_PENALTY_SECONDS)
        if seconds <= 0:
            return
        key = self.key_for(domain, route_group)
        until = self._clock() + seconds
        if self.redis:
            self.redis.set(f"{key}:blocked", until, ex=int(seconds) + 1)
        else:
            with self._lock:
                self._blocked_until[key] = max(self._blocked_until.get(key, 0.0), until)
        logger.warning(f"Portal asked us to back off: {domain} blocked for {seconds:.0f}s")

    def _wait_memory(self, key: str, limits: Dict[str, float]):
        with self._lock:
            now = self._clock()
            history = [t for t in self._history[key] if now - t < 3600]
            gap = max(_gap_needed(now, history, limits), self._blocked_until.get(key, 0.0) - now)
            # The slot is reserved before sleeping so other workers queue behind it
            history.append(now + gap)
            self._history[key] = history

        if gap > 0:
            logger.debug(f"Rate limited on {key}, waiting {gap:.1f}s")
            self._sleep(gap)

    def _wait_redis(self, key: str, limits: Dict[str, float]):
        history_key = f"{key}:history"
        for _ in range(REDIS_MAX_POLLS):
            now = self._clock()
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(history_key, 0, now - 3600)
            pipe.zrange(history_key, 0, -1, withscores=True)
            pipe.get(f"{key}:blocked")
            _, entries, blocked = pipe.execute()

            history = [score for _, score in entries]
            gap = _gap_needed(now, history, limits)
            if blocked:
                gap = max(gap, float(blocked) - now)
            if gap <= 0:
                pipe = self.redis.pipeline()
                pipe.zadd(history_key, {str(now): now})
                pipe.expire(history_key, 7200)
                pipe.execute()
                return

            logger.debug(f"Rate limited on {key}, waiting {gap:.1f}s (redis)")
            self._sleep(gap)

        raise RuntimeError(f"Rate limit wait timeout for {key}")

    def get_status(self, domain: str, route_group: str = "default") -> Dict:
        """Current counts and limits for a domain."""
        limits = self.get_limits(domain, route_group)
        key = self.key_for(domain, route_group)
        now = self._clock()

        if self.redis:
            history = [score for _, score in self.redis.zrange(f"{key}:history", 0, -1, withscores=True)]
            blocked = float(self.redis.get(f"{key}:blocked") or 0)
        else:
            with self._lock:
                history = list(self._history[key])
                blocked = self._blocked_until.get(key, 0.0)

        return {
            "domain": domain,
            "route_group": route_group,
            "backend": "redis" if self.redis else "memory",
            "minute": {
                "current": len([t for t in history if now - t < 60]),
                "limit": limits["requests_per_minute"],
            },
            "hour": {
                "current": len([t for t in history if now - t < 3600]),
                "limit": limits["requests_per_hour"],
            },
            "min_interval_seconds": limits["min_interval_seconds"],
            "blocked_for_seconds": round(max(blocked - now, 0.0), 1),
        }


_rate_limiter = None


def get_scraper_rate_limiter() -> ScraperRateLimiter:
    """Process-wide limiter shared by every strategy and worker."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = ScraperRateLimiter()
    return _rate_limiter
