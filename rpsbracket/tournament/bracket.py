"""Single-elimination round generation."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Optional

from rpsbracket.core.constants import MIN_PLAYERS
from rpsbracket.core.state import PlayerStatus
from rpsbracket.errors import ValidationError


@dataclass
class RoundPlan:
    """The pairings and bye chosen for one round."""

    round_number: int
    pairings: list[tuple[str, str]] = field(default_factory=list)
    bye_player_id: Optional[str] = None

    @property
    def bye_player_ids(self) -> list[str]:
        """The bye as a list, the shape stored in the bracket."""
        return [self.bye_player_id] if self.bye_player_id else []

    def participant_ids(self) -> list[str]:
        """Every player placed in this round, matches first."""
        ids = [pid for pair in self.pairings for pid in pair]
        return ids + self.bye_player_ids


class BracketGenerator:
    """Utility class for generating single-elimination rounds."""

    MIN_PARTICIPANTS = MIN_PLAYERS

    @staticmethod
    def generate_round(
        player_ids: list[str],
        round_number: int,
        rng: Optional[random.Random] = None,
    ) -> RoundPlan:
        """Pair the eligible players for one round, giving a bye if odd.

        Pass a seeded ``random.Random`` for a reproducible draw.
        """
        if round_number < 1:
            raise ValidationError("Round numbers start at 1.")
        if len(set(player_ids)) != len(player_ids):
            raise ValidationError("A player cannot be drawn twice in one round.")
        if len(player_ids) < BracketGenerator.MIN_PARTICIPANTS:
            raise ValidationError(
                f"At least {BracketGenerator.MIN_PARTICIPANTS} players are needed "
                "to form a round."
            )

        rng = rng or random.Random()
        ids = list(player_ids)
        rng.shuffle(ids)

        bye_player_id = None
        if len(ids) % 2 != 0:
            bye_player_id = ids.pop(rng.randrange(len(ids)))

        pairings = [(ids[i], ids[i + 1]) for i in range(0, len(ids), 2)]
        return RoundPlan(
            round_number=round_number,
            pairings=pairings,
            bye_player_id=bye_player_id,
        )

    @staticmethod
    def seat_players(
        players: list[dict[str, Any]], plan: RoundPlan
    ) -> list[dict[str, Any]]:
        """Return the roster with statuses set for a freshly drawn round.

        Paired players become active, the bye player is marked as already
        advanced, and everyone else is left untouched.
        """
        paired = {pid for pair in plan.pairings for pid in pair}
        seated = []
        for player in players:
            entry = dict(player)
            if entry["id"] in paired:
                entry["tournamentStatus"] = PlayerStatus.ACTIVE.value
                entry["advancedThisRound"] = False
            elif entry["id"] == plan.bye_player_id:
                entry["tournamentStatus"] = PlayerStatus.BYE.value
                entry["advancedThisRound"] = True
            seated.append(entry)
        return seated
