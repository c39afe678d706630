"""Utility functions for tournament management."""

from __future__ import annotations

import re
import secrets
from typing import Any, Optional

from rpsbracket.core.constants import GAME_CODE_ALPHABET, GAME_CODE_LENGTH
from rpsbracket.core.state import PlayerStatus, player_status
from rpsbracket.errors import ValidationError
from rpsbracket.match.utils import summarize_match

from .rounds import RoundController

GAME_CODE_PATTERN = re.compile(rf"^[A-Z0-9]{{{GAME_CODE_LENGTH}}}$")

# Lower sorts first on the scoreboard.
STATUS_ORDER = {
    PlayerStatus.ACTIVE: 0,
    PlayerStatus.BYE: 0,
    PlayerStatus.JOINED: 1,
    PlayerStatus.ELIMINATED: 2,
}


def generate_game_code(length: int = GAME_CODE_LENGTH) -> str:
    """Return a random, human-shareable game code."""
    return "".join(secrets.choice(GAME_CODE_ALPHABET) for _ in range(length))


def normalize_game_code(code: Optional[str]) -> str:
    """Upper-case and validate a game code typed by a player."""
    normalized = (code or "").strip().upper()
    if not GAME_CODE_PATTERN.match(normalized):
        raise ValidationError(
            f"Game codes are {GAME_CODE_LENGTH} letters or digits."
        )
    return normalized


def sort_and_format_scoreboard(players: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order the roster for display.

    Players still in the tournament come first, then by wins (desc), losses
    (asc), and finally join order.
    """
    rows = []
    for join_order, player in enumerate(players):
        rows.append(
            {
                "id": player["id"],
                "displayName": player.get("displayName", ""),
                "tournamentStatus": player_status(player).value,
                "winCount": int(player.get("winCount", 0)),
                "lossCount": int(player.get("lossCount", 0)),
                "isHost": bool(player.get("isHost", False)),
                "joinOrder": join_order,
            }
        )
    rows.sort(
        key=lambda r: (
            STATUS_ORDER[PlayerStatus(r["tournamentStatus"])],
            -r["winCount"],
            r["lossCount"],
            r["joinOrder"],
        )
    )
    for rank, row in enumerate(rows, start=1):
        row["rank"] = rank
    return rows


def build_bracket_view(
    tournament: dict[str, Any], matches: dict[str, dict[str, Any]]
) -> list[dict[str, Any]]:
    """Rounds in order, each with its match summaries and bye players."""
    names = {p["id"]: p.get("displayName", "") for p in tournament.get("players") or []}
    rounds = []
    for entry in sorted(
        tournament.get("bracket") or [], key=lambda r: r.get("roundNumber", 0)
    ):
        rounds.append(
            {
                "roundNumber": entry.get("roundNumber"),
                "matches": [
                    summarize_match({**matches[mid], "id": mid})
                    for mid in entry.get("matchIds") or []
                    if mid in matches
                ],
                "byes": [
                    {"id": pid, "displayName": names.get(pid, "")}
                    for pid in entry.get("byePlayerIds") or []
                ],
                "complete": RoundController.is_round_complete(entry, matches),
            }
        )
    return rounds


def build_status_view(
    tournament: dict[str, Any], matches: dict[str, dict[str, Any]]
) -> dict[str, Any]:
    """Headline state of the tournament."""
    return {
        "id": tournament.get("id"),
        "name": tournament.get("name", ""),
        "status": tournament.get("status"),
        "hostId": tournament.get("hostId"),
        "currentRoundNumber": tournament.get("currentRoundNumber", 0),
        "playerCount": len(tournament.get("players") or []),
        "championId": tournament.get("championId"),
        "championName": tournament.get("championName"),
        "readyToAdvance": RoundController.ready_to_advance(tournament, matches),
    }
