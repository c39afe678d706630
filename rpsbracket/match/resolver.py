"""Pure transition rules for resolving games and finishing matches.

Nothing here touches Firestore. Each function takes the latest match
snapshot (a plain dict) and returns the fields to write, or None when the
snapshot calls for no change. Because the result depends only on the
snapshot, running the same rule on every client, or twice on one client,
converges on the same document.
"""

from __future__ import annotations

import copy
from typing import Any, Optional

from rpsbracket.core.constants import WINS_REQUIRED
from rpsbracket.core.state import MatchStatus, match_status

from .models import SIDES, other_side
from .moves import GameOutcome, resolve_game


class MatchResolver:
    """Turns two hidden moves into a scored game and a best-of-N result."""

    @staticmethod
    def can_resolve(match: dict[str, Any]) -> bool:
        """A game resolves only on an active match with both moves pending."""
        if match_status(match) != MatchStatus.ACTIVE:
            return False
        return all(match.get(f"{side}PendingMove") for side in SIDES)

    @staticmethod
    def next_state(match: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Derive the fields written when the pending game resolves.

        Scoring, revealing and clearing the pending slots are one update, so
        a second application finds empty slots and returns None.
        """
        if not MatchResolver.can_resolve(match):
            return None

        move1 = match["player1PendingMove"]
        move2 = match["player2PendingMove"]
        outcome = resolve_game(move1, move2)

        wins = {side: int(match.get(f"{side}Wins", 0) or 0) for side in SIDES}
        winner_id: Optional[str] = None
        if outcome != GameOutcome.TIE:
            side = outcome.value
            wins[side] += 1
            winner_id = match.get(f"{side}Id")

        history = list(match.get("gameHistory") or [])
        history.append(
            {
                "gameNumber": len(history) + 1,
                "player1Move": str(getattr(move1, "value", move1)),
                "player2Move": str(getattr(move2, "value", move2)),
                "outcome": outcome.value,
                "winnerId": winner_id,
                "player1Wins": wins["player1"],
                "player2Wins": wins["player2"],
            }
        )

        update: dict[str, Any] = {
            "player1PendingMove": None,
            "player2PendingMove": None,
            "player1Move": history[-1]["player1Move"],
            "player2Move": history[-1]["player2Move"],
            "player1Wins": wins["player1"],
            "player2Wins": wins["player2"],
            "gameHistory": history,
        }

        required = int(match.get("winsRequired") or WINS_REQUIRED)
        for side in SIDES:
            if wins[side] >= required:
                update.update(MatchResolver._finish(match, side))
                break
        return update

    @staticmethod
    def forfeit_state(
        match: dict[str, Any], leaving_id: str
    ) -> Optional[dict[str, Any]]:
        """Award an active match to the opponent of a departing player."""
        if match_status(match) != MatchStatus.ACTIVE:
            return None
        for side in SIDES:
            if match.get(f"{side}Id") == leaving_id:
                update = MatchResolver._finish(match, other_side(side))
                update.update(
                    {
                        "player1PendingMove": None,
                        "player2PendingMove": None,
                        "forfeit": True,
                    }
                )
                return update
        return None

    @staticmethod
    def _finish(match: dict[str, Any], winning_side: str) -> dict[str, Any]:
        return {
            "status": MatchStatus.FINISHED.value,
            "winnerId": match.get(f"{winning_side}Id"),
            "loserId": match.get(f"{other_side(winning_side)}Id"),
        }

    @staticmethod
    def apply(match: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of the match with any pending game resolved."""
        result = copy.deepcopy(match)
        update = MatchResolver.next_state(result)
        if update:
            result.update(update)
        return result

    @staticmethod
    def outcome(match: dict[str, Any]) -> Optional[tuple[str, str]]:
        """Return ``(winner_id, loser_id)`` for a finished match, else None."""
        if match_status(match) != MatchStatus.FINISHED:
            return None
        winner_id = match.get("winnerId")
        loser_id = match.get("loserId")
        if not winner_id or not loser_id:
            return None
        return winner_id, loser_id
