"""Tournament blueprint."""

from flask import Blueprint

bp = Blueprint("tournament", __name__, url_prefix="/tournaments")

from . import routes  # noqa: E402, F401
from .bracket import BracketGenerator, RoundPlan  # noqa: E402
from .models import Player, Tournament  # noqa: E402
from .rounds import RoundController  # noqa: E402
from .services import TournamentService  # noqa: E402

__all__ = [
    "BracketGenerator",
    "Player",
    "RoundController",
    "RoundPlan",
    "Tournament",
    "TournamentService",
    "routes",
]
