"""
Admin authentication for destructive and write endpoints.

Admin endpoints require the X-Admin-Token header to match the ADMIN_TOKEN
config value. With no ADMIN_TOKEN configured, admin endpoints are closed.
"""
import hmac
import logging
from functools import wraps

from flask import current_app, request

logger = logging.getLogger(__name__)

ADMIN_TOKEN_HEADER = 'X-Admin-Token'


def is_admin_request() -> bool:
    expected = current_app.config.get('ADMIN_TOKEN') or ''
    supplied = request.headers.get(ADMIN_TOKEN_HEADER) or ''
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected.encode('utf-8'), supplied.encode('utf-8'))


def require_admin(f):
    """
    Decorator to require the admin token.

    Returns 503 if no admin token is configured, 401 if the header is
    missing or wrong.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from api.middleware.error_envelope import make_error_response

        if not current_app.config.get('ADMIN_TOKEN'):
            return make_error_response(
                "SERVICE_UNAVAILABLE",
                "Admin access is not configured",
                hint="Set ADMIN_TOKEN to enable admin endpoints",
            )
        if not is_admin_request():
            logger.warning(f"Rejected admin request to {request.path} from {request.remote_addr}")
            return make_error_response(
                "UNAUTHORIZED",
                "Admin token required",
                hint=f"Send the {ADMIN_TOKEN_HEADER} header",
            )
        return f(*args, **kwargs)
    return decorated_function
