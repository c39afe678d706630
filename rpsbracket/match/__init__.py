"""Move ledger and match resolution."""

from .models import Match, MoveSubmission
from .moves import GameOutcome, Move, resolve_game
from .resolver import MatchResolver

__all__ = [
    "GameOutcome",
    "Match",
    "MatchResolver",
    "Move",
    "MoveSubmission",
    "resolve_game",
]
