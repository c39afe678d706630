"""Data models for the tournament blueprint."""

from __future__ import annotations

from typing import Any, Optional, TypedDict

from rpsbracket.core.state import PlayerStatus
from rpsbracket.core.types import FirestoreDocument


class Player(TypedDict, total=False):
    """Represents a tournament participant on the roster."""

    id: str
    displayName: str
    tournamentStatus: str
    winCount: int
    lossCount: int
    advancedThisRound: bool
    isHost: bool


class RoundEntry(TypedDict, total=False):
    """One round of the bracket."""

    roundNumber: int
    matchIds: list[str]
    byePlayerIds: list[str]


class Tournament(FirestoreDocument, total=False):
    """A tournament document in Firestore, keyed by its game code."""

    name: str
    hostId: str
    status: str
    currentRoundNumber: int
    players: list[Player]
    playerIds: list[str]
    bracket: list[RoundEntry]
    championId: Optional[str]
    championName: Optional[str]
    resultsApplied: list[str]


def new_player(participant_id: str, display_name: str, is_host: bool = False) -> Player:
    """Build a roster entry for a participant who just registered."""
    return Player(
        id=participant_id,
        displayName=display_name,
        tournamentStatus=PlayerStatus.JOINED.value,
        winCount=0,
        lossCount=0,
        advancedThisRound=False,
        isHost=is_host,
    )


def reset_player(player: dict[str, Any]) -> Player:
    """Return a roster entry restored to its pre-tournament state."""
    return Player(
        id=player["id"],
        displayName=player.get("displayName", ""),
        tournamentStatus=PlayerStatus.JOINED.value,
        winCount=0,
        lossCount=0,
        advancedThisRound=False,
        isHost=bool(player.get("isHost", False)),
    )


def find_player(
    players: list[dict[str, Any]], participant_id: str
) -> Optional[dict[str, Any]]:
    """Look up a roster entry by participant id."""
    for player in players:
        if player.get("id") == participant_id:
            return player
    return None
