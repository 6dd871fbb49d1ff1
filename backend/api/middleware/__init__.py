"""
Global middleware for API requests.

Provides:
- Request ID injection (X-Request-ID) and admin access logging
- Error envelope standardization
"""

from .request_context import setup_request_context
from .error_envelope import setup_error_handlers, make_error_response

__all__ = [
    'setup_request_context',
    'setup_error_handlers',
    'make_error_response',
]
