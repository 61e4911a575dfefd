"""
Centralized error handling for the back office API.

APIError subclasses carry a message that is safe to show to clients and the
status code to answer with. Anything else that escapes a view is answered
with a generic 500 by the app-level handler.

Usage:
    from core.errors import AuthenticationError, ValidationError

    raise AuthenticationError("Authentication failed")
"""

import logging
import uuid
from flask import jsonify

logger = logging.getLogger(__name__)


class APIError(Exception):
    """
    Base class for expected API errors.
    Messages are safe to expose to clients.
    """
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ValidationError(APIError):
    """Request validation failed (400)."""
    status_code = 400


class AuthenticationError(APIError):
    """Authentication failed (401)."""
    status_code = 401


class ConflictError(APIError):
    """Resource state forbids the request (409)."""
    status_code = 409


class ServiceUnavailableError(APIError):
    """A backend the request depends on is down (503)."""
    status_code = 503


def register_error_handlers(app):
    """
    Render APIError, 404 and 405 as JSON.

    Every APIError response carries a short error_id that also appears in
    the log line, so support can match a client report to the server log.
    """

    @app.errorhandler(APIError)
    def handle_api_error(e):
        error_id = str(uuid.uuid4())[:8]
        log = logger.error if e.status_code >= 500 else logger.warning
        log(f"API error ({e.status_code}): {e}", extra={'error_id': error_id})
        return jsonify({"error": str(e), "error_id": error_id}), e.status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405
