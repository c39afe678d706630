"""Tests for moves and the single-game outcome rule."""

from __future__ import annotations

import itertools
import unittest

from rpsbracket.errors import ValidationError
from rpsbracket.match.moves import BEATS, GameOutcome, Move, parse_move, resolve_game


class ResolveGameTestCase(unittest.TestCase):
    """Test case for resolve_game."""

    def test_each_move_beats_exactly_one_other(self) -> None:
        self.assertEqual(resolve_game("rock", "scissors"), GameOutcome.PLAYER1)
        self.assertEqual(resolve_game("paper", "rock"), GameOutcome.PLAYER1)
        self.assertEqual(resolve_game("scissors", "paper"), GameOutcome.PLAYER1)
        self.assertEqual(resolve_game("scissors", "rock"), GameOutcome.PLAYER2)

    def test_same_move_ties(self) -> None:
        for move in Move:
            self.assertEqual(resolve_game(move, move), GameOutcome.TIE)

    def test_outcome_is_antisymmetric(self) -> None:
        flipped = {
            GameOutcome.PLAYER1: GameOutcome.PLAYER2,
            GameOutcome.PLAYER2: GameOutcome.PLAYER1,
            GameOutcome.TIE: GameOutcome.TIE,
        }
        for a, b in itertools.product(Move, repeat=2):
            self.assertEqual(resolve_game(b, a), flipped[resolve_game(a, b)])

    def test_beats_table_is_a_cycle(self) -> None:
        self.assertEqual(set(BEATS), set(Move))
        self.assertEqual(set(BEATS.values()), set(Move))


class ParseMoveTestCase(unittest.TestCase):
    """Test case for parse_move."""

    def test_accepts_case_and_whitespace(self) -> None:
        self.assertEqual(parse_move("  Rock "), Move.ROCK)
        self.assertEqual(parse_move(Move.PAPER), Move.PAPER)

    def test_rejects_unknown_moves(self) -> None:
        for value in ("lizard", "", None):
            with self.assertRaises(ValidationError):
                parse_move(value)


if __name__ == "__main__":
    unittest.main()
