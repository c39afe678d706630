"""Rock-paper-scissors moves and the single-game outcome rule."""

from __future__ import annotations

from enum import Enum

from rpsbracket.errors import ValidationError


class Move(str, Enum):
    """A move a player can submit for one game."""

    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


class GameOutcome(str, Enum):
    """Result of one game, from the match's player 1 point of view."""

    PLAYER1 = "player1"
    PLAYER2 = "player2"
    TIE = "tie"


# Each move maps to the move it defeats.
BEATS = {
    Move.ROCK: Move.SCISSORS,
    Move.PAPER: Move.ROCK,
    Move.SCISSORS: Move.PAPER,
}


def parse_move(value: str | Move | None) -> Move:
    """Convert user input to a Move, raising ValidationError if it is not one."""
    if isinstance(value, Move):
        return value
    try:
        return Move((value or "").strip().lower())
    except ValueError:
        raise ValidationError(
            "Move must be one of rock, paper or scissors."
        ) from None


def resolve_game(move1: str | Move, move2: str | Move) -> GameOutcome:
    """Score one game between player 1's and player 2's moves."""
    m1 = parse_move(move1)
    m2 = parse_move(move2)
    if m1 == m2:
        return GameOutcome.TIE
    if BEATS[m1] == m2:
        return GameOutcome.PLAYER1
    return GameOutcome.PLAYER2
