"""
Error envelope middleware.

Every failure leaves the API in one shape:

    {"success": false,
     "error": {"code": "NOT_FOUND", "message": "...", "requestId": "...",
               "field": "...", "details": {...}, "hint": "..."}}

field, details and hint are present only when set. Bad query/body
parameters (api.params.ParamValidationError) are the one exception and keep
the flat {"error", "type": "validation_error", "field"} shape.

Record-level errors raised by the ingestion core map to codes here, so
routes can let them propagate:
    ValidationError            -> 400 VALIDATION_ERROR
    DuplicateRegistrationError -> 400 DUPLICATE_REGISTRATION_ID
    RepositoryError            -> 500 REPOSITORY_ERROR
"""

import logging

from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from api.params import ParamValidationError, validation_error_response
from scrapers.exceptions import (
    DuplicateRegistrationError,
    RepositoryError,
    ValidationError as RecordValidationError,
)

logger = logging.getLogger('api.middleware.error')

# Error code -> HTTP status
ERROR_CODES = {
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "REQUEST_ENTITY_TOO_LARGE": 413,
    "TOO_MANY_REQUESTS": 429,

    "VALIDATION_ERROR": 400,
    "DUPLICATE_REGISTRATION_ID": 400,
    "INVALID_UPLOAD": 400,

    "INGESTION_IN_PROGRESS": 409,
    "INGESTION_DISABLED": 503,

    "REPOSITORY_ERROR": 500,
    "INTERNAL_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
}


def make_error_response(
    code: str,
    message: str,
    status_code: int = None,
    field: str = None,
    details: dict = None,
    hint: str = None,
):
    """
    Build an enveloped error.

    Args:
        code: Error code (e.g. "NOT_FOUND"); also picks the status if none given
        message: Human-readable message
        status_code: Explicit HTTP status
        field: Offending input field
        details: Extra structured context (e.g. {"registrationId": ...})
        hint: How to fix it

    Returns:
        (response, status_code)
    """
    request_id = getattr(g, 'request_id', None)
    body = {"code": code, "message": message, "requestId": request_id}
    for key, value in (("field", field), ("details", details), ("hint", hint)):
        if value:
            body[key] = value

    response = jsonify({"success": False, "error": body})
    if request_id:
        response.headers['X-Request-ID'] = request_id
    return response, status_code or ERROR_CODES.get(code, 500)


def setup_error_handlers(app: Flask) -> None:
    """Register the envelope for HTTP, parameter, record and unhandled errors."""

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        # "Request Entity Too Large" -> "REQUEST_ENTITY_TOO_LARGE"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, status_code=error.code)

    @app.errorhandler(ParamValidationError)
    def handle_param_error(error):
        body, status = validation_error_response(error)
        return jsonify(body), status

    # DuplicateRegistrationError subclasses ValidationError; Flask resolves by MRO
    @app.errorhandler(DuplicateRegistrationError)
    def handle_duplicate(error):
        return make_error_response(
            "DUPLICATE_REGISTRATION_ID",
            str(error),
            field=error.field,
            details={"registrationId": error.registration_id},
        )

    @app.errorhandler(RecordValidationError)
    def handle_record_error(error):
        return make_error_response("VALIDATION_ERROR", str(error), field=error.field)

    @app.errorhandler(RepositoryError)
    def handle_repository_error(error):
        logger.error(f"Repository error: {error}", extra={"request_id": getattr(g, 'request_id', None)})
        return make_error_response("REPOSITORY_ERROR", "The project store could not complete the request")

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        request_id = getattr(g, 'request_id', None)
        logger.exception(
            f"Unhandled error: {error}",
            extra={"request_id": request_id, "error_type": type(error).__name__},
        )
        return make_error_response("INTERNAL_ERROR", "An unexpected error occurred")
