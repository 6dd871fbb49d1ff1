"""
Rate Limiter Configuration for the public API

Limits callers of our own endpoints (the scraper's outbound limits live in
scrapers/rate_limiter.py). Uses Redis in production, memory storage for
development.

Key decisions:
- Admin-token callers are keyed by token so operators behind shared IPs
  do not throttle each other
- IP-based key for everyone else
- Tiered limits by endpoint cost
"""

import os
import hashlib
import logging
from flask import request

logger = logging.getLogger(__name__)

# Storage configuration: Redis in production, memory for dev
REDIS_URL = os.environ.get("REDIS_URL")

if REDIS_URL:
    storage_uri = REDIS_URL
    logger.info("Rate limiter using Redis storage")
else:
    storage_uri = "memory://"
    logger.warning("Rate limiter using in-memory storage (dev only)")


def get_rate_limit_key():
    """
    Get rate limit key - hashed admin token if present, else remote_addr.
    """
    token = request.headers.get("X-Admin-Token")
    if token:
        return "admin:" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
    return f"ip:{request.remote_addr}"


# Per-endpoint rate limits (tune by cost)
# Format: "X per period" where period is minute, hour, day
RATE_LIMITS = {
    # Listing / detail reads
    "read": "120 per minute",

    # Aggregations over the whole table
    "analytics": "30 per minute",

    # Starting a run hits the RERA portal; keep it rare
    "trigger": "6 per hour",

    # Admin writes (upload, add, clear)
    "admin": "30 per minute",
}

# Default limits for unannotated endpoints
DEFAULT_LIMITS = ["2000 per day", "500 per hour"]


def init_limiter(app):
    """
    Initialize Flask-Limiter with the app.

    Call this in app.py after creating the Flask app:
        from utils.rate_limiter import init_limiter
        limiter = init_limiter(app)

    Returns the limiter instance for decorator use.
    """
    from flask_limiter import Limiter

    limiter = Limiter(
        key_func=get_rate_limit_key,
        app=app,
        default_limits=DEFAULT_LIMITS,
        storage_uri=app.config.get("RATELIMIT_STORAGE_URI", storage_uri),
        key_prefix="rate_limit",
        # Return 429 with retry-after header
        headers_enabled=True,
    )

    # 429s use the same error envelope as every other failure
    @app.errorhandler(429)
    def ratelimit_handler(e):
        from api.middleware.error_envelope import make_error_response

        return make_error_response(
            "TOO_MANY_REQUESTS",
            f"Rate limit exceeded: {e.description}",
            details={"retryAfter": getattr(e, "retry_after", None) or 60},
        )

    logger.info(f"Rate limiter initialized with storage: {storage_uri}")
    return limiter


def apply_blueprint_limits(limiter, assignments):
    """
    Attach tiered limits to blueprints.

    Args:
        limiter: Limiter from init_limiter()
        assignments: iterable of (blueprint, tier name, methods or None)
    """
    for blueprint, tier, methods in assignments:
        limiter.limit(RATE_LIMITS[tier], methods=methods)(blueprint)
