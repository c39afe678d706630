"""Routes for the tournament blueprint.

Every endpoint answers with an ``APIResponse`` JSON body. Errors raised by
the services are turned into responses by the error handlers.
"""

from __future__ import annotations

import random
from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify

from rpsbracket.auth.decorators import login_required
from rpsbracket.core.state import MatchStatus
from rpsbracket.core.types import api_response
from rpsbracket.errors import ValidationError
from rpsbracket.match.models import MoveSubmission
from rpsbracket.match.services import MatchService
from rpsbracket.match.utils import summarize_match

from . import bp
from .forms import CreateTournamentForm, JoinTournamentForm, MoveForm
from .services import TournamentService
from .utils import normalize_game_code


def _collection() -> str:
    return current_app.config["TOURNAMENTS_COLLECTION"]


def _rng() -> random.Random | None:
    seed = current_app.config.get("BRACKET_SEED")
    return random.Random(seed) if seed is not None else None


def _form_error(form: Any) -> ValidationError:
    """Turn the first WTForms error into a ValidationError."""
    for field_name, messages in form.errors.items():
        label = getattr(getattr(form, field_name, None), "label", None)
        prefix = f"{label.text}: " if label else ""
        return ValidationError(f"{prefix}{messages[0]}")
    return ValidationError()


@bp.route("/", methods=["POST"])
@login_required
def create_tournament() -> Any:
    """Open a new lobby with the caller as host."""
    form = CreateTournamentForm()
    if not form.validate_on_submit():
        raise _form_error(form)

    code = TournamentService.create_tournament(
        firestore.client(),
        g.participant_id,
        form.display_name.data,
        form.name.data,
        collection=_collection(),
        attempts=current_app.config["GAME_CODE_ATTEMPTS"],
    )
    return (
        jsonify(api_response(True, "Tournament created.", {"code": code})),
        201,
    )


@bp.route("/join", methods=["POST"])
@login_required
def join_tournament() -> Any:
    """Join a lobby by game code."""
    form = JoinTournamentForm()
    if not form.validate_on_submit():
        raise _form_error(form)

    code = TournamentService.join_tournament(
        firestore.client(),
        form.code.data,
        g.participant_id,
        form.display_name.data,
        collection=_collection(),
    )
    return jsonify(api_response(True, "Joined tournament.", {"code": code}))


@bp.route("/<string:code>", methods=["GET"])
@login_required
def view_tournament(code: str) -> Any:
    """Headline tournament state."""
    view = TournamentService.get_status_view(firestore.client(), code, _collection())
    return jsonify(api_response(True, data=view))


@bp.route("/<string:code>/scoreboard", methods=["GET"])
@login_required
def scoreboard(code: str) -> Any:
    """Ranked roster."""
    rows = TournamentService.get_scoreboard(firestore.client(), code, _collection())
    return jsonify(api_response(True, data={"players": rows}))


@bp.route("/<string:code>/bracket", methods=["GET"])
@login_required
def bracket(code: str) -> Any:
    """Every round drawn so far."""
    rounds = TournamentService.get_bracket_view(firestore.client(), code, _collection())
    return jsonify(api_response(True, data={"rounds": rounds}))


@bp.route("/<string:code>/start", methods=["POST"])
@login_required
def start_tournament(code: str) -> Any:
    """Host: close the lobby and draw round 1."""
    match_count = TournamentService.start_tournament(
        firestore.client(), code, g.participant_id, _collection(), rng=_rng()
    )
    return jsonify(
        api_response(True, "Tournament started.", {"matchCount": match_count})
    )


@bp.route("/<string:code>/advance", methods=["POST"])
@login_required
def advance_round(code: str) -> Any:
    """Host: draw the next round or crown the champion."""
    update = TournamentService.advance_round(
        firestore.client(), code, g.participant_id, _collection(), rng=_rng()
    )
    data = {
        "status": update.get("status"),
        "currentRoundNumber": update.get("currentRoundNumber"),
        "championId": update.get("championId"),
    }
    return jsonify(api_response(True, "Round advanced.", data))


@bp.route("/<string:code>/reset", methods=["POST"])
@login_required
def reset_tournament(code: str) -> Any:
    """Host: send everyone back to the lobby."""
    reset = TournamentService.reset_to_lobby(
        firestore.client(), code, g.participant_id, _collection()
    )
    message = "Tournament reset." if reset else "Tournament is already in the lobby."
    return jsonify(api_response(True, message, {"reset": reset}))


@bp.route("/<string:code>/end", methods=["POST"])
@login_required
def end_tournament(code: str) -> Any:
    """Host: finish the tournament now."""
    update = TournamentService.end_tournament(
        firestore.client(), code, g.participant_id, _collection()
    )
    data = {"championId": (update or {}).get("championId")}
    return jsonify(api_response(True, "Tournament ended.", data))


@bp.route("/<string:code>/leave", methods=["POST"])
@login_required
def leave_tournament(code: str) -> Any:
    """Leave the tournament; the last one out deletes it."""
    result = TournamentService.leave_tournament(
        firestore.client(),
        code,
        g.participant_id,
        _collection(),
        forfeit_on_leave=current_app.config["FORFEIT_ON_LEAVE"],
    )
    return jsonify(api_response(True, "Left tournament.", {"result": result}))


@bp.route("/<string:code>/delete", methods=["POST"])
@login_required
def delete_tournament(code: str) -> Any:
    """Host: delete the tournament for everyone."""
    TournamentService.delete_tournament(
        firestore.client(), code, g.participant_id, _collection()
    )
    return jsonify(api_response(True, "Tournament deleted."))


@bp.route("/<string:code>/matches/current", methods=["GET"])
@login_required
def current_match(code: str) -> Any:
    """The caller's match in the current round, if any."""
    view = TournamentService.current_match_for(
        firestore.client(), code, g.participant_id, _collection()
    )
    return jsonify(api_response(True, data=view))


@bp.route("/<string:code>/matches/<string:match_id>", methods=["GET"])
@login_required
def view_match(code: str, match_id: str) -> Any:
    """Public view of one match."""
    match = MatchService.get_match(
        firestore.client(), normalize_game_code(code), match_id, _collection()
    )
    return jsonify(api_response(True, data=summarize_match(match)))


@bp.route("/<string:code>/matches/<string:match_id>/move", methods=["POST"])
@login_required
def submit_move(code: str, match_id: str) -> Any:
    """Submit a hidden move for the current game of a match."""
    form = MoveForm()
    if not form.validate_on_submit():
        raise _form_error(form)

    db = firestore.client()
    code = normalize_game_code(code)
    update = MatchService.submit_move(
        db,
        MoveSubmission(
            tournament_id=code,
            match_id=match_id,
            participant_id=g.participant_id,
            move=form.move.data,
        ),
        _collection(),
    )
    if update and update.get("status") == MatchStatus.FINISHED.value:
        TournamentService.record_match_outcome(db, code, match_id, _collection())
        TournamentService.finalize_if_decided(db, code, _collection())

    match = MatchService.get_match(db, code, match_id, _collection())
    message = "Game resolved." if update else "Move submitted."
    return jsonify(api_response(True, message, summarize_match(match)))
