"""Session management for anonymous Firebase participants."""

from firebase_admin import auth
from flask import current_app, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from rpsbracket.core.types import api_response
from rpsbracket.extensions import csrf

from . import bp
from .decorators import current_participant_id, login_required


@bp.route("/session", methods=["POST"])
@csrf.exempt
def session_login():
    """
    Called by the client after it signs in with Firebase (anonymously or not).
    Verifies the ID token and stores the uid as the participant identity.
    """
    payload = request.get_json(silent=True) or {}
    id_token = payload.get("idToken")
    if not id_token:
        return jsonify(api_response(False, "An ID token is required.")), 400
    try:
        decoded_token = auth.verify_id_token(id_token)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError) as e:
        current_app.logger.warning(f"Rejected ID token: {e}")
        return jsonify(api_response(False, "Invalid or expired token.")), 401

    session.clear()
    session["participant_id"] = decoded_token["uid"]
    current_app.logger.info(f"Session started for {decoded_token['uid']}")
    return jsonify(
        api_response(
            True,
            "Signed in.",
            {"participantId": decoded_token["uid"], "csrfToken": generate_csrf()},
        )
    )


@bp.route("/logout", methods=["POST"])
def logout():
    """Forget the server-side session."""
    session.clear()
    return jsonify(api_response(True, "Signed out."))


@bp.route("/me", methods=["GET"])
@login_required
def me():
    """Who the current session belongs to."""
    return jsonify(
        api_response(
            True,
            data={"participantId": current_participant_id(), "csrfToken": generate_csrf()},
        )
    )
