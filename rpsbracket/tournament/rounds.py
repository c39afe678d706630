"""Round completion and elimination bookkeeping.

These helpers fold finished match outcomes back into the tournament roster
and answer whether the current round is over. They operate on plain
snapshots and return new lists rather than mutating their input.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from rpsbracket.core.state import MatchStatus, PlayerStatus, match_status, player_status
from rpsbracket.match.resolver import MatchResolver

STILL_IN = (PlayerStatus.ACTIVE, PlayerStatus.BYE)


class RoundController:
    """Decides round completion and who goes through to the next round."""

    @staticmethod
    def current_round(tournament: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Return the bracket entry for the tournament's current round."""
        number = tournament.get("currentRoundNumber") or 0
        for entry in tournament.get("bracket") or []:
            if entry.get("roundNumber") == number:
                return entry
        return None

    @staticmethod
    def is_round_complete(
        round_entry: Optional[dict[str, Any]], matches: dict[str, dict[str, Any]]
    ) -> bool:
        """True when every match created for the round has finished.

        A match that has not been observed yet counts as unfinished. Byes are
        complete by construction.
        """
        if not round_entry:
            return False
        for match_id in round_entry.get("matchIds") or []:
            match = matches.get(match_id)
            if match is None or match_status(match) != MatchStatus.FINISHED:
                return False
        return True

    @staticmethod
    def outcomes_applied(
        tournament: dict[str, Any], round_entry: Optional[dict[str, Any]]
    ) -> bool:
        """True when every match of the round has been folded into the roster."""
        if not round_entry:
            return False
        applied = set(tournament.get("resultsApplied") or [])
        return all(mid in applied for mid in round_entry.get("matchIds") or [])

    @staticmethod
    def ready_to_advance(
        tournament: dict[str, Any], matches: dict[str, dict[str, Any]]
    ) -> bool:
        """Round complete and reflected in the roster."""
        round_entry = RoundController.current_round(tournament)
        return RoundController.is_round_complete(
            round_entry, matches
        ) and RoundController.outcomes_applied(tournament, round_entry)

    @staticmethod
    def apply_outcome(
        players: list[dict[str, Any]],
        match_id: str,
        match: dict[str, Any],
        results_applied: Iterable[str],
    ) -> tuple[list[dict[str, Any]], list[str], bool]:
        """Fold one finished match into the roster.

        Returns ``(players, results_applied, changed)``. A match already listed
        in ``results_applied`` is skipped, which keeps the fold exactly-once.
        """
        applied = list(results_applied)
        result = MatchResolver.outcome(match)
        if result is None or match_id in applied:
            return [dict(p) for p in players], applied, False

        winner_id, loser_id = result
        updated = []
        for player in players:
            entry = dict(player)
            if entry["id"] == winner_id:
                entry["tournamentStatus"] = PlayerStatus.ACTIVE.value
                entry["advancedThisRound"] = True
                entry["winCount"] = int(entry.get("winCount", 0)) + 1
            elif entry["id"] == loser_id:
                entry["tournamentStatus"] = PlayerStatus.ELIMINATED.value
                entry["advancedThisRound"] = False
                entry["lossCount"] = int(entry.get("lossCount", 0)) + 1
            updated.append(entry)
        applied.append(match_id)
        return updated, applied, True

    @staticmethod
    def apply_outcomes(
        players: list[dict[str, Any]],
        matches: dict[str, dict[str, Any]],
        results_applied: Iterable[str],
    ) -> tuple[list[dict[str, Any]], list[str], bool]:
        """Fold every finished, not yet applied match."""
        applied = list(results_applied)
        changed = False
        for match_id in sorted(matches):
            players, applied, did_change = RoundController.apply_outcome(
                players, match_id, matches[match_id], applied
            )
            changed = changed or did_change
        return players, applied, changed

    @staticmethod
    def eligible_players(players: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Players who advanced out of the round just played."""
        return [
            p
            for p in players
            if p.get("advancedThisRound") and player_status(p) in STILL_IN
        ]

    @staticmethod
    def reset_advancement(players: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Clear every ``advancedThisRound`` flag before the next draw."""
        return [{**p, "advancedThisRound": False} for p in players]

    @staticmethod
    def derive_champion(players: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
        """The sole player still in the tournament, or None.

        Derived only from ``tournamentStatus`` so that concurrent finalizers
        agree regardless of who writes last.
        """
        remaining = [p for p in players if player_status(p) in STILL_IN]
        if len(remaining) == 1:
            return remaining[0]
        return None
