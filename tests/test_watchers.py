"""Tests for snapshot watchers."""

from __future__ import annotations

import threading
import unittest
from unittest.mock import MagicMock, patch

from rpsbracket.errors import ConflictError, NotFoundError
from rpsbracket.match.models import new_match_document
from rpsbracket.watchers import (
    Intent,
    IntentKind,
    TournamentWatcher,
    on_match_snapshot,
    on_tournament_snapshot,
)

CODE = "ABC123"
P1 = {"id": "p1", "displayName": "Ada"}
P2 = {"id": "p2", "displayName": "Grace"}


def _match(**fields) -> dict:
    return {**new_match_document(CODE, 1, P1, P2), "id": "m1", **fields}


def _tournament(**fields) -> dict:
    return {
        "id": CODE,
        "status": "running",
        "currentRoundNumber": 1,
        "bracket": [{"roundNumber": 1, "matchIds": ["m1"], "byePlayerIds": []}],
        "players": [
            {"id": "p1", "tournamentStatus": "active", "advancedThisRound": False},
            {"id": "p2", "tournamentStatus": "active", "advancedThisRound": False},
        ],
        "resultsApplied": [],
        **fields,
    }


class MatchSnapshotTestCase(unittest.TestCase):
    """Test case for on_match_snapshot."""

    def test_both_moves_in_resolves(self) -> None:
        new = _match(player1PendingMove="rock", player2PendingMove="paper")
        self.assertEqual(
            on_match_snapshot(CODE, _match(), new),
            Intent(IntentKind.RESOLVE_GAME, CODE, "m1"),
        )

    def test_one_move_in_waits(self) -> None:
        self.assertIsNone(on_match_snapshot(CODE, None, _match(player1PendingMove="rock")))

    def test_newly_finished_records_outcome_once(self) -> None:
        finished = _match(status="finished", winnerId="p1", loserId="p2")
        self.assertEqual(
            on_match_snapshot(CODE, _match(), finished).kind, IntentKind.RECORD_OUTCOME
        )
        self.assertIsNone(on_match_snapshot(CODE, finished, finished))

    def test_deleted_match(self) -> None:
        self.assertIsNone(on_match_snapshot(CODE, _match(), None))


class TournamentSnapshotTestCase(unittest.TestCase):
    """Test case for on_tournament_snapshot."""

    def test_deleted_tournament_detaches(self) -> None:
        intent = on_tournament_snapshot(_tournament(), None, {})
        self.assertEqual(intent, Intent(IntentKind.DETACH, CODE))

    def test_incomplete_round_does_nothing(self) -> None:
        self.assertIsNone(on_tournament_snapshot(None, _tournament(), {"m1": _match()}))

    def test_decided_round_finalizes(self) -> None:
        matches = {"m1": _match(status="finished", winnerId="p1", loserId="p2")}
        intent = on_tournament_snapshot(None, _tournament(), matches)
        self.assertEqual(intent, Intent(IntentKind.FINALIZE, CODE))

    def test_finished_tournament_is_left_alone(self) -> None:
        matches = {"m1": _match(status="finished", winnerId="p1", loserId="p2")}
        self.assertIsNone(
            on_tournament_snapshot(None, _tournament(status="finished"), matches)
        )

    def test_round_waiting_for_host_is_left_alone(self) -> None:
        tournament = _tournament(
            resultsApplied=["m1"],
            players=[
                {"id": "p1", "tournamentStatus": "active", "advancedThisRound": True},
                {"id": "p2", "tournamentStatus": "eliminated"},
                {"id": "p3", "tournamentStatus": "bye", "advancedThisRound": True},
            ],
        )
        matches = {"m1": _match(status="finished", winnerId="p1", loserId="p2")}
        self.assertIsNone(on_tournament_snapshot(None, tournament, matches))


class TournamentWatcherTestCase(unittest.TestCase):
    """Test case for TournamentWatcher dispatching."""

    def setUp(self) -> None:
        self.store = MagicMock()
        self.unsubscribe_doc = MagicMock()
        self.unsubscribe_query = MagicMock()
        self.store.subscribe.return_value = self.unsubscribe_doc
        self.store.subscribe_query.return_value = self.unsubscribe_query
        self.db = MagicMock()
        self.watcher = TournamentWatcher(self.db, CODE, store=self.store)

        patchers = {
            "match_service": patch("rpsbracket.watchers.MatchService"),
            "tournament_service": patch("rpsbracket.watchers.TournamentService"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.watcher.start()
        self.addCleanup(self.watcher.stop)

    def test_start_subscribes_to_tournament_and_matches(self) -> None:
        self.store.subscribe.assert_called_once()
        self.assertEqual(self.store.subscribe.call_args[0][0], f"tournaments/{CODE}")
        self.assertEqual(
            self.store.subscribe_query.call_args[0][0], f"tournaments/{CODE}/matches"
        )

    def test_match_snapshot_dispatches_resolution(self) -> None:
        self.watcher.handle_matches(
            {"m1": _match(player1PendingMove="rock", player2PendingMove="rock")}
        )
        self.watcher.wait_idle()
        self.mocks["match_service"].resolve_match.assert_called_once_with(
            self.db, CODE, "m1", "tournaments"
        )

    def test_callbacks_return_before_service_calls_finish(self) -> None:
        release = threading.Event()
        finished = threading.Event()

        def slow_resolve(*args) -> None:
            release.wait(timeout=5)
            finished.set()

        self.mocks["match_service"].resolve_match.side_effect = slow_resolve

        self.watcher.handle_matches(
            {"m1": _match(player1PendingMove="rock", player2PendingMove="paper")}
        )

        self.assertFalse(finished.is_set())
        release.set()
        self.watcher.wait_idle()
        self.mocks["match_service"].resolve_match.assert_called_once()

    def test_finished_match_is_folded_and_finalized(self) -> None:
        self.watcher.handle_matches({"m1": _match()})
        self.watcher.handle_matches(
            {"m1": _match(status="finished", winnerId="p1", loserId="p2")}
        )
        self.watcher.wait_idle()
        service = self.mocks["tournament_service"]
        service.record_match_outcome.assert_called_once_with(
            self.db, CODE, "m1", "tournaments"
        )
        service.finalize_if_decided.assert_called_once_with(self.db, CODE, "tournaments")

    def test_deleted_tournament_detaches_and_stop_unsubscribes(self) -> None:
        self.watcher.handle_tournament(_tournament())
        self.watcher.handle_tournament(None)

        self.assertTrue(self.watcher.detached.is_set())
        self.unsubscribe_doc.assert_not_called()

        self.watcher.stop()
        self.unsubscribe_doc.assert_called_once()
        self.unsubscribe_query.assert_called_once()
        self.watcher.stop()
        self.unsubscribe_doc.assert_called_once()

    def test_service_conflicts_are_absorbed(self) -> None:
        self.mocks["match_service"].resolve_match.side_effect = ConflictError()
        self.watcher.handle_matches(
            {"m1": _match(player1PendingMove="rock", player2PendingMove="paper")}
        )
        self.watcher.wait_idle()
        self.assertFalse(self.watcher.detached.is_set())

    def test_not_found_from_a_service_detaches(self) -> None:
        self.mocks["tournament_service"].finalize_if_decided.side_effect = (
            NotFoundError()
        )
        matches = {"m1": _match(status="finished", winnerId="p1", loserId="p2")}
        self.watcher.handle_matches(matches)
        self.watcher.wait_idle()
        self.assertTrue(self.watcher.detached.is_set())

    def test_not_found_detaches(self) -> None:
        self.watcher.handle_error(NotFoundError())
        self.assertTrue(self.watcher.detached.is_set())


class ThreadedStore:
    """Runs each callback on its own thread; unsubscribing joins that thread."""

    def __init__(self) -> None:
        self.on_tournament = None
        self.listener: threading.Thread | None = None

    def subscribe(self, path, on_change, on_error):
        self.on_tournament = on_change
        return self.unsubscribe

    def subscribe_query(self, path, filters, on_change, on_error):
        return self.unsubscribe

    def deliver(self, snapshot) -> None:
        self.listener = threading.Thread(target=self.on_tournament, args=(snapshot,))
        self.listener.start()

    def unsubscribe(self) -> None:
        if self.listener is not None:
            self.listener.join()


class ListenerThreadTestCase(unittest.TestCase):
    """Detaching from inside a listener callback."""

    def test_deletion_on_listener_thread_detaches(self) -> None:
        store = ThreadedStore()
        watcher = TournamentWatcher(MagicMock(), CODE, store=store)
        watcher.start()

        store.deliver(None)

        self.assertTrue(watcher.detached.wait(timeout=5))
        watcher.stop()
        self.assertFalse(store.listener.is_alive())


if __name__ == "__main__":
    unittest.main()
