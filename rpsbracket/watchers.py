"""Reactions to tournament and match snapshots.

The ``on_*`` handlers are pure: given the previously observed and the newly
observed version of a document they return the follow-up work, if any. Every
client may run them on every snapshot because each intent maps onto an
idempotent service call.

``TournamentWatcher`` wires those handlers to live Firestore listeners and
runs the resulting service calls off the listener threads.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from rpsbracket.core.constants import MATCHES_COLLECTION, TOURNAMENTS_COLLECTION
from rpsbracket.core.state import MatchStatus, TournamentStatus, match_status, tournament_status
from rpsbracket.errors import AppError, NotFoundError, PermissionDeniedError
from rpsbracket.match.resolver import MatchResolver
from rpsbracket.match.services import MatchService
from rpsbracket.store import DocumentStore
from rpsbracket.tournament.rounds import RoundController
from rpsbracket.tournament.services import TournamentService

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


class IntentKind(str, Enum):
    """Follow-up work triggered by a snapshot."""

    RESOLVE_GAME = "resolve_game"
    RECORD_OUTCOME = "record_outcome"
    FINALIZE = "finalize"
    DETACH = "detach"


@dataclass(frozen=True)
class Intent:
    """One unit of follow-up work."""

    kind: IntentKind
    tournament_id: str
    match_id: Optional[str] = None


def on_match_snapshot(
    tournament_id: str,
    old: Optional[dict[str, Any]],
    new: Optional[dict[str, Any]],
) -> Optional[Intent]:
    """Resolve a game once both moves are in; fold a match once it finishes."""
    if new is None:
        return None
    match_id = new.get("id")
    if MatchResolver.can_resolve(new):
        return Intent(IntentKind.RESOLVE_GAME, tournament_id, match_id)
    if match_status(new) == MatchStatus.FINISHED and (
        old is None or match_status(old) != MatchStatus.FINISHED
    ):
        return Intent(IntentKind.RECORD_OUTCOME, tournament_id, match_id)
    return None


def on_tournament_snapshot(
    old: Optional[dict[str, Any]],
    new: Optional[dict[str, Any]],
    matches: dict[str, dict[str, Any]],
) -> Optional[Intent]:
    """Detach on deletion; finalize when the current round decides a champion."""
    if new is None:
        if old is None:
            return None
        return Intent(IntentKind.DETACH, old.get("id", ""))
    if tournament_status(new) != TournamentStatus.RUNNING:
        return None

    round_entry = RoundController.current_round(new)
    if not RoundController.is_round_complete(round_entry, matches):
        return None
    pending = [
        mid
        for mid in (round_entry or {}).get("matchIds") or []
        if mid not in (new.get("resultsApplied") or [])
    ]
    if pending or len(RoundController.eligible_players(new.get("players") or [])) <= 1:
        return Intent(IntentKind.FINALIZE, new.get("id", ""))
    return None


class TournamentWatcher:
    """Keeps one tournament moving by reacting to its snapshots.

    Listener callbacks run on Firestore's threads and only queue work. A
    single worker thread runs the service calls. Detaching from a callback
    just sets ``detached``; the thread that called ``start`` calls ``stop``.
    """

    def __init__(
        self,
        db: Client,
        tournament_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
        store: DocumentStore | None = None,
    ) -> None:
        self.db = db
        self.tournament_id = tournament_id
        self.collection = collection
        self.store = store or DocumentStore(db)
        self.tournament: Optional[dict[str, Any]] = None
        self.matches: dict[str, dict[str, Any]] = {}
        self.detached = threading.Event()
        self._lock = threading.Lock()
        self._unsubscribers: list[Any] = []
        self._intents: queue.Queue[Optional[Intent]] = queue.Queue()
        self._worker: Optional[threading.Thread] = None

    @property
    def tournament_path(self) -> str:
        return f"{self.collection}/{self.tournament_id}"

    def start(self) -> None:
        """Start the worker, then attach the tournament and match listeners."""
        self._worker = threading.Thread(
            target=self._run, name=f"watcher-{self.tournament_id}", daemon=True
        )
        self._worker.start()
        self._unsubscribers.append(
            self.store.subscribe(
                self.tournament_path, self.handle_tournament, self.handle_error
            )
        )
        self._unsubscribers.append(
            self.store.subscribe_query(
                f"{self.tournament_path}/{MATCHES_COLLECTION}",
                [],
                self.handle_matches,
                self.handle_error,
            )
        )
        logger.info(f"Watching tournament {self.tournament_id}")

    def stop(self) -> None:
        """Detach every listener and wait for the worker to exit.

        Must not run on a listener thread: unsubscribing joins that thread.
        Safe to call more than once.
        """
        while self._unsubscribers:
            unsubscribe = self._unsubscribers.pop()
            unsubscribe()
        self.detached.set()
        if self._worker is not None:
            self._intents.put(None)
            self._worker.join()
            self._worker = None

    def wait_idle(self) -> None:
        """Block until every queued intent has been handled."""
        self._intents.join()

    def handle_tournament(self, snapshot: Optional[dict[str, Any]]) -> None:
        with self._lock:
            old, self.tournament = self.tournament, snapshot
            matches = dict(self.matches)
        if old is None and snapshot is None:
            old = {"id": self.tournament_id}
        intent = on_tournament_snapshot(old, snapshot, matches)
        if intent:
            self.enqueue(intent)

    def handle_matches(self, documents: dict[str, dict[str, Any]]) -> None:
        with self._lock:
            previous, self.matches = self.matches, dict(documents)
        for match_id, match in documents.items():
            intent = on_match_snapshot(
                self.tournament_id, previous.get(match_id), match
            )
            if intent:
                self.enqueue(intent)

    def handle_error(self, error: Exception) -> None:
        if isinstance(error, (NotFoundError, PermissionDeniedError)):
            logger.warning(f"Tournament {self.tournament_id} unavailable: {error}")
            self.detached.set()
            return
        logger.error(f"Watcher error on {self.tournament_id}: {error}")

    def enqueue(self, intent: Intent) -> None:
        """Hand an intent to the worker without blocking the caller."""
        if intent.kind == IntentKind.DETACH:
            logger.info(f"Tournament {self.tournament_id} was deleted")
            self.detached.set()
            return
        self._intents.put(intent)

    def _run(self) -> None:
        while True:
            intent = self._intents.get()
            try:
                if intent is None:
                    return
                if not self.detached.is_set():
                    self.dispatch(intent)
            except Exception:
                logger.exception(f"Watcher worker failed on {intent}")
            finally:
                self._intents.task_done()

    def dispatch(self, intent: Intent) -> None:
        """Run the service call behind an intent."""
        try:
            if intent.kind == IntentKind.RESOLVE_GAME and intent.match_id:
                MatchService.resolve_match(
                    self.db, intent.tournament_id, intent.match_id, self.collection
                )
            elif intent.kind == IntentKind.RECORD_OUTCOME and intent.match_id:
                TournamentService.record_match_outcome(
                    self.db, intent.tournament_id, intent.match_id, self.collection
                )
                TournamentService.finalize_if_decided(
                    self.db, intent.tournament_id, self.collection
                )
            elif intent.kind == IntentKind.FINALIZE:
                TournamentService.finalize_if_decided(
                    self.db, intent.tournament_id, self.collection
                )
        except AppError as e:
            self.handle_error(e)
