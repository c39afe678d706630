"""JSON error handlers shared by every blueprint."""

from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError
from google.api_core import exceptions as google_exceptions

from .core.types import api_response
from .errors import (
    AppError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TransientStoreError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return jsonify(api_response(False, error.message)), error.status_code


@error_handlers_bp.app_errorhandler(ConflictError)
def handle_conflict_error(error):
    """Handles actions that lost a race or no longer apply."""
    current_app.logger.warning(f"Conflict Error: {error.message}")
    return jsonify(api_response(False, error.message)), error.status_code


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles deleted tournaments and matches.

    Clients treat ``detached`` as the signal to stop listening and go back
    to the entry screen.
    """
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return (
        jsonify(api_response(False, error.message, {"detached": True})),
        error.status_code,
    )


@error_handlers_bp.app_errorhandler(PermissionDeniedError)
def handle_permission_denied_error(error):
    """Handles host-only actions and store permission failures."""
    current_app.logger.warning(f"Permission Denied: {error.message}")
    return (
        jsonify(api_response(False, error.message, {"detached": True})),
        error.status_code,
    )


@error_handlers_bp.app_errorhandler(TransientStoreError)
def handle_transient_store_error(error):
    """Handles an unreachable document store; nothing was written."""
    current_app.logger.error(f"Store Error: {error.message}")
    return jsonify(api_response(False, error.message)), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return jsonify(api_response(False, error.message)), error.status_code


@error_handlers_bp.app_errorhandler(google_exceptions.GoogleAPICallError)
def handle_store_call_error(e):
    """Handles Firestore errors that escaped the service layer."""
    current_app.logger.error(f"Firestore Error: {e}")
    return (
        jsonify(api_response(False, TransientStoreError().message)),
        503,
    )


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles a missing or stale CSRF token."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return (
        jsonify(api_response(False, "Your session may have expired. Please sign in again.")),
        400,
    )


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles routes that don't exist."""
    return jsonify(api_response(False, "Not found.")), 404


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles a known route called with the wrong method."""
    return jsonify(api_response(False, "Method not allowed.")), 405


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return jsonify(api_response(False, "An unexpected error occurred.")), 500
