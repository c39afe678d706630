"""Enumerated lifecycle states and their transition tables.

Every status field stored in Firestore is one of these enums' values. Services
check a transition against the table before writing so that a stale or
duplicate trigger can never move an entity backwards.
"""

from __future__ import annotations

from enum import Enum

from rpsbracket.errors import ConflictError


class TournamentStatus(str, Enum):
    """Lifecycle of a tournament document."""

    LOBBY = "lobby"
    RUNNING = "running"
    FINISHED = "finished"


class MatchStatus(str, Enum):
    """Lifecycle of a match document."""

    ACTIVE = "active"
    FINISHED = "finished"


class PlayerStatus(str, Enum):
    """A player's standing within the tournament."""

    JOINED = "joined"
    ACTIVE = "active"
    BYE = "bye"
    ELIMINATED = "eliminated"


TOURNAMENT_TRANSITIONS: dict[TournamentStatus, frozenset[TournamentStatus]] = {
    TournamentStatus.LOBBY: frozenset({TournamentStatus.RUNNING}),
    TournamentStatus.RUNNING: frozenset(
        {TournamentStatus.RUNNING, TournamentStatus.FINISHED, TournamentStatus.LOBBY}
    ),
    TournamentStatus.FINISHED: frozenset(
        {TournamentStatus.FINISHED, TournamentStatus.LOBBY}
    ),
}

MATCH_TRANSITIONS: dict[MatchStatus, frozenset[MatchStatus]] = {
    MatchStatus.ACTIVE: frozenset({MatchStatus.ACTIVE, MatchStatus.FINISHED}),
    MatchStatus.FINISHED: frozenset(),
}

# Any status may go back to JOINED through a reset.
PLAYER_TRANSITIONS: dict[PlayerStatus, frozenset[PlayerStatus]] = {
    PlayerStatus.JOINED: frozenset(
        {PlayerStatus.JOINED, PlayerStatus.ACTIVE, PlayerStatus.BYE}
    ),
    PlayerStatus.ACTIVE: frozenset(
        {
            PlayerStatus.ACTIVE,
            PlayerStatus.BYE,
            PlayerStatus.ELIMINATED,
            PlayerStatus.JOINED,
        }
    ),
    PlayerStatus.BYE: frozenset(
        {PlayerStatus.ACTIVE, PlayerStatus.BYE, PlayerStatus.JOINED}
    ),
    PlayerStatus.ELIMINATED: frozenset(
        {PlayerStatus.ELIMINATED, PlayerStatus.JOINED}
    ),
}


def can_transition(current: Enum, target: Enum) -> bool:
    """Return True if the transition table allows ``current -> target``."""
    table: dict = {
        TournamentStatus: TOURNAMENT_TRANSITIONS,
        MatchStatus: MATCH_TRANSITIONS,
        PlayerStatus: PLAYER_TRANSITIONS,
    }[type(current)]
    if type(target) is not type(current):
        return False
    return target in table[current]


def require_transition(current: Enum, target: Enum) -> None:
    """Raise ConflictError unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise ConflictError(
            f"Cannot move from '{current.value}' to '{target.value}'."
        )


def tournament_status(data: dict) -> TournamentStatus:
    """Read the status of a tournament document, defaulting to lobby."""
    return TournamentStatus(data.get("status") or TournamentStatus.LOBBY.value)


def match_status(data: dict) -> MatchStatus:
    """Read the status of a match document, defaulting to active."""
    return MatchStatus(data.get("status") or MatchStatus.ACTIVE.value)


def player_status(data: dict) -> PlayerStatus:
    """Read a roster entry's status, defaulting to joined."""
    return PlayerStatus(data.get("tournamentStatus") or PlayerStatus.JOINED.value)
