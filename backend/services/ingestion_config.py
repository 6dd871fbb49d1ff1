"""
Ingestion Configuration - Environment-based settings and kill switch

Environment Variables:
    INGESTION_ENABLED: 'true' or 'false' (default: 'true')
        Kill switch. When disabled, triggers are refused with 503.

    RERA_BASE_URL: Portal base URL (default: https://gujrera.gujarat.gov.in)

    INGESTION_STRATEGIES: Comma-separated strategy order
        (default: api-probe,paginated-table,district-partitioned;
        underscores are accepted in place of hyphens)

    INGESTION_MIN_RECORDS: Minimum raw records to accept a strategy (default: 1)
    INGESTION_MAX_PAGES: Page cap per listing crawl (default: 100)
    INGESTION_REQUEST_TIMEOUT: Per-request timeout in seconds (default: 30)
    INGESTION_MAX_RETRIES: Transient-failure retries per request (default: 3)
    INGESTION_BACKOFF_SECONDS: Base backoff between retries (default: 1.0)
    INGESTION_MAX_WORKERS: District worker pool size, 1..5 (default: 3)
    INGESTION_RETRY_ROUNDS: Passes over the strategy list (default: 2)
    INGESTION_COOLDOWN_SECONDS: Pause between passes (default: 30)
    INGESTION_MAX_RUNTIME_MINUTES: Wall-clock budget per run (default: 30)
    SYNTHETIC_SEED: Optional integer seed for the synthetic generator
"""

import os
import logging
from typing import List, Optional

from constants import RERA_BASE_URL
from scrapers.strategies import DEFAULT_STRATEGY_ORDER, STRATEGY_REGISTRY

logger = logging.getLogger(__name__)


MAX_WORKERS_CAP = 5


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, defaulting to {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, defaulting to {default}")
        return default


# =============================================================================
# Kill Switch
# =============================================================================

def is_ingestion_enabled() -> bool:
    """
    Check if ingestion is enabled.

    Environment:
        INGESTION_ENABLED: 'true' (default) or 'false'
    """
    enabled = os.environ.get('INGESTION_ENABLED', 'true').lower()
    if enabled in ('false', '0', 'no', 'off', 'disabled'):
        logger.warning("Ingestion is DISABLED via INGESTION_ENABLED=false")
        return False
    return True


# =============================================================================
# Source and strategies
# =============================================================================

def get_base_url() -> str:
    return os.environ.get('RERA_BASE_URL', RERA_BASE_URL).rstrip('/')


def get_strategy_names() -> List[str]:
    """
    Strategy priority order. Unknown names are dropped with a warning;
    an empty result falls back to the default order.
    """
    raw = os.environ.get('INGESTION_STRATEGIES', '')
    names = [n.strip().replace('_', '-') for n in raw.split(',') if n.strip()]
    valid = []
    for name in names:
        if name in STRATEGY_REGISTRY:
            valid.append(name)
        else:
            logger.warning(f"Unknown strategy '{name}' in INGESTION_STRATEGIES, skipping")
    return valid or list(DEFAULT_STRATEGY_ORDER)


def get_min_records() -> int:
    return max(_env_int('INGESTION_MIN_RECORDS', 1), 1)


def get_max_pages() -> int:
    return max(_env_int('INGESTION_MAX_PAGES', 100), 1)


def get_request_timeout() -> float:
    return max(_env_float('INGESTION_REQUEST_TIMEOUT', 30.0), 1.0)


def get_max_retries() -> int:
    return max(_env_int('INGESTION_MAX_RETRIES', 3), 0)


def get_backoff_seconds() -> float:
    return max(_env_float('INGESTION_BACKOFF_SECONDS', 1.0), 0.0)


def get_max_workers() -> int:
    """District worker pool size, clamped to 1..5."""
    workers = _env_int('INGESTION_MAX_WORKERS', 3)
    clamped = min(max(workers, 1), MAX_WORKERS_CAP)
    if clamped != workers:
        logger.warning(f"INGESTION_MAX_WORKERS={workers} out of range, using {clamped}")
    return clamped


def get_retry_rounds() -> int:
    return max(_env_int('INGESTION_RETRY_ROUNDS', 2), 1)


def get_cooldown_seconds() -> float:
    return max(_env_float('INGESTION_COOLDOWN_SECONDS', 30.0), 0.0)


def get_max_runtime_seconds() -> Optional[float]:
    """Wall-clock budget per run; 0 or negative disables the deadline."""
    minutes = _env_float('INGESTION_MAX_RUNTIME_MINUTES', 30.0)
    if minutes <= 0:
        return None
    return minutes * 60


def get_synthetic_seed() -> Optional[int]:
    raw = os.environ.get('SYNTHETIC_SEED')
    if raw is None or raw.strip() == '':
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid SYNTHETIC_SEED={raw!r}, ignoring")
        return None


# =============================================================================
# Summary
# =============================================================================

def get_config_summary() -> dict:
    """All ingestion settings, for logging and the admin source-info endpoint."""
    return {
        'enabled': is_ingestion_enabled(),
        'base_url': get_base_url(),
        'strategies': get_strategy_names(),
        'min_records': get_min_records(),
        'max_pages': get_max_pages(),
        'request_timeout': get_request_timeout(),
        'max_retries': get_max_retries(),
        'max_workers': get_max_workers(),
        'retry_rounds': get_retry_rounds(),
        'cooldown_seconds': get_cooldown_seconds(),
        'max_runtime_seconds': get_max_runtime_seconds(),
        'synthetic_seed': get_synthetic_seed(),
    }
