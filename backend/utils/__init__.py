"""
Utility modules for the backend.
"""
from .rate_limiter import (
    init_limiter,
    apply_blueprint_limits,
    get_rate_limit_key,
    RATE_LIMITS,
)

__all__ = [
    'init_limiter',
    'apply_blueprint_limits',
    'get_rate_limit_key',
    'RATE_LIMITS',
]
