"""Decorators for the auth blueprint."""

from functools import wraps

from flask import current_app, g, jsonify

from rpsbracket.core.types import api_response


def current_participant_id():
    """The signed-in participant's uid for this request, or None."""
    return g.get("participant_id")


def login_required(f=None):
    """Answer 401 unless the request carries a signed-in participant.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if not current_participant_id():
                current_app.logger.info("Rejected request without a session")
                return (
                    jsonify(api_response(False, "Please sign in to play.")),
                    401,
                )
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
