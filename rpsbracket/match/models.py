"""Data models for matches and the move ledger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, TypedDict

from rpsbracket.core.constants import WINS_REQUIRED
from rpsbracket.core.state import MatchStatus
from rpsbracket.core.types import FirestoreDocument
from rpsbracket.errors import ValidationError

from .moves import Move, parse_move


class GameRecord(TypedDict):
    """One resolved game inside a match's history."""

    gameNumber: int
    player1Move: str
    player2Move: str
    outcome: str
    winnerId: Optional[str]
    player1Wins: int
    player2Wins: int


class Match(FirestoreDocument, total=False):
    """A match document in Firestore (``tournaments/{code}/matches/{id}``).

    The two ``*PendingMove`` fields form the move ledger: a move sits there,
    hidden from the opponent's view, until both sides have submitted.
    """

    tournamentId: str
    round: int
    player1Id: str
    player1Name: str
    player2Id: str
    player2Name: str
    player1PendingMove: Optional[str]
    player2PendingMove: Optional[str]
    player1Move: Optional[str]
    player2Move: Optional[str]
    player1Wins: int
    player2Wins: int
    winsRequired: int
    status: str
    winnerId: Optional[str]
    loserId: Optional[str]
    forfeit: bool
    gameHistory: list[GameRecord]


SIDES = ("player1", "player2")


def side_of(match: dict[str, Any], participant_id: str) -> Optional[str]:
    """Return "player1" or "player2" for a participant, or None."""
    for side in SIDES:
        if match.get(f"{side}Id") == participant_id:
            return side
    return None


def other_side(side: str) -> str:
    """Return the opposing side key."""
    return "player2" if side == "player1" else "player1"


def new_match_document(
    tournament_id: str,
    round_number: int,
    player1: dict[str, Any],
    player2: dict[str, Any],
    wins_required: int = WINS_REQUIRED,
) -> dict[str, Any]:
    """Build a fresh, unplayed match document for a pairing."""
    return {
        "tournamentId": tournament_id,
        "round": round_number,
        "player1Id": player1["id"],
        "player1Name": player1.get("displayName", ""),
        "player2Id": player2["id"],
        "player2Name": player2.get("displayName", ""),
        "player1PendingMove": None,
        "player2PendingMove": None,
        "player1Move": None,
        "player2Move": None,
        "player1Wins": 0,
        "player2Wins": 0,
        "winsRequired": wins_required,
        "status": MatchStatus.ACTIVE.value,
        "winnerId": None,
        "loserId": None,
        "forfeit": False,
        "gameHistory": [],
    }


@dataclass
class MoveSubmission:
    """Dataclass for a move submitted by a participant."""

    tournament_id: str
    match_id: str
    participant_id: str
    move: str

    def validate(self) -> Move:
        """Validate the submission for obvious errors and return the move."""
        if not self.participant_id:
            raise ValidationError("You must be signed in to play.")
        if not self.match_id:
            raise ValidationError("A match is required.")
        return parse_move(self.move)
