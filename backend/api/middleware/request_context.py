"""
Request context middleware.

Every request gets an id (X-Request-ID, taken from the caller when sent).
Admin and ingestion-trigger requests are access-logged with their outcome
and duration. Admin responses are never cached.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger('api.access')

AUDITED_PREFIXES = ('/api/admin/', '/api/ingestion/trigger', '/api/ingestion/cancel')


def setup_request_context(app: Flask) -> None:

    @app.before_request
    def start_request():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        g.request_started = time.time()

    @app.after_request
    def finish_request(response):
        request_id = getattr(g, 'request_id', None)
        if request_id:
            response.headers['X-Request-ID'] = request_id

        if request.path.startswith(AUDITED_PREFIXES):
            elapsed = time.time() - getattr(g, 'request_started', time.time())
            logger.info(
                f"{request.method} {request.path} -> {response.status_code} "
                f"in {elapsed:.3f}s (request {request_id}, from {request.remote_addr})"
            )
        if request.path.startswith('/api/admin/'):
            response.headers['Cache-Control'] = 'no-store'
        return response
