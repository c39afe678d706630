"""Service layer for tournament business logic.

Every state change is a Firestore transaction that re-reads the tournament,
derives the complete next state from that snapshot, and writes it back.
Repeating a call after it has already taken effect either changes nothing
or fails with a ConflictError, so any client may retry freely.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore

from rpsbracket.core.constants import (
    DISPLAY_NAME_MAX_LENGTH,
    FIRESTORE_BATCH_LIMIT,
    GAME_CODE_ATTEMPTS,
    MATCHES_COLLECTION,
    MIN_PLAYERS,
    TOURNAMENT_NAME_MAX_LENGTH,
    TOURNAMENTS_COLLECTION,
)
from rpsbracket.core.state import (
    MatchStatus,
    PlayerStatus,
    TournamentStatus,
    match_status,
    player_status,
    require_transition,
    tournament_status,
)
from rpsbracket.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from rpsbracket.match.models import new_match_document, other_side, side_of
from rpsbracket.match.services import MatchService
from rpsbracket.match.utils import (
    fetch_tournament_matches,
    matches_collection,
    summarize_match,
)
from rpsbracket.store import store_errors

from .bracket import BracketGenerator
from .models import Tournament, find_player, new_player, reset_player
from .rounds import RoundController
from .utils import (
    build_bracket_view,
    build_status_view,
    generate_game_code,
    normalize_game_code,
    sort_and_format_scoreboard,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)


def clean_display_name(display_name: Optional[str]) -> str:
    """Strip and validate a display name."""
    name = (display_name or "").strip()
    if not name:
        raise ValidationError("Please enter a display name.")
    if len(name) > DISPLAY_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Display names are at most {DISPLAY_NAME_MAX_LENGTH} characters."
        )
    return name


class TournamentService:
    """Handles business logic and data access for tournaments."""

    @staticmethod
    def _ref(
        db: Client, tournament_id: str, collection: str = TOURNAMENTS_COLLECTION
    ) -> DocumentReference:
        return cast(
            "DocumentReference", db.collection(collection).document(tournament_id)
        )

    @staticmethod
    def _read(
        ref: DocumentReference, transaction: Transaction | None = None
    ) -> dict[str, Any]:
        """Read a tournament snapshot, raising NotFoundError if it is gone."""
        if transaction is not None:
            doc = cast("DocumentSnapshot", ref.get(transaction=transaction))
        else:
            doc = cast("DocumentSnapshot", ref.get())
        if not doc.exists:
            raise NotFoundError("Tournament not found.")
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return data

    @staticmethod
    def _require_host(tournament: dict[str, Any], participant_id: str, action: str) -> None:
        if tournament.get("hostId") != participant_id:
            raise PermissionDeniedError(f"Only the host can {action}.")

    @staticmethod
    def _finish_payload(players: list[dict[str, Any]]) -> dict[str, Any]:
        champion = RoundController.derive_champion(players)
        return {
            "status": TournamentStatus.FINISHED.value,
            "championId": champion["id"] if champion else None,
            "championName": champion.get("displayName") if champion else None,
            "lastUpdated": firestore.SERVER_TIMESTAMP,
        }

    @staticmethod
    def get_tournament(
        db: Client, tournament_id: str, collection: str = TOURNAMENTS_COLLECTION
    ) -> Tournament:
        """Fetch a tournament by game code."""
        code = normalize_game_code(tournament_id)
        with store_errors():
            data = TournamentService._read(TournamentService._ref(db, code, collection))
        return cast(Tournament, data)

    # Lobby

    @staticmethod
    def _create_transaction(
        transaction: Transaction, ref: DocumentReference, payload: dict[str, Any]
    ) -> None:
        doc = cast("DocumentSnapshot", ref.get(transaction=transaction))
        if doc.exists:
            raise ConflictError("That game code is already in use.")
        transaction.set(ref, payload)

    @staticmethod
    def create_tournament(
        db: Client,
        host_id: str,
        display_name: Optional[str],
        name: Optional[str] = None,
        collection: str = TOURNAMENTS_COLLECTION,
        attempts: int = GAME_CODE_ATTEMPTS,
    ) -> str:
        """Open a lobby hosted by ``host_id`` and return its game code."""
        display_name = clean_display_name(display_name)
        title = (name or "").strip() or f"{display_name}'s tournament"
        if len(title) > TOURNAMENT_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Tournament names are at most {TOURNAMENT_NAME_MAX_LENGTH} characters."
            )

        host = new_player(host_id, display_name, is_host=True)
        payload = {
            "name": title,
            "hostId": host_id,
            "status": TournamentStatus.LOBBY.value,
            "currentRoundNumber": 0,
            "players": [host],
            "playerIds": [host_id],
            "bracket": [],
            "championId": None,
            "championName": None,
            "resultsApplied": [],
            "createdAt": firestore.SERVER_TIMESTAMP,
            "lastUpdated": firestore.SERVER_TIMESTAMP,
        }

        for _ in range(attempts):
            code = generate_game_code()
            ref = TournamentService._ref(db, code, collection)
            try:
                with store_errors():
                    firestore.transactional(TournamentService._create_transaction)(
                        db.transaction(), ref, payload
                    )
            except ConflictError:
                logger.warning(f"Game code {code} already taken, drawing another")
                continue
            logger.info(f"Tournament {code} created by {host_id}")
            return code
        raise ConflictError("Could not allocate a unique game code. Please try again.")

    @staticmethod
    def _join_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        participant_id: str,
        display_name: str,
    ) -> bool:
        tournament = TournamentService._read(ref, transaction)
        players = list(tournament.get("players") or [])
        if find_player(players, participant_id):
            return False
        if tournament_status(tournament) != TournamentStatus.LOBBY:
            raise ConflictError("This tournament has already started.")

        players.append(new_player(participant_id, display_name))
        transaction.update(
            ref,
            {
                "players": players,
                "playerIds": [p["id"] for p in players],
                "lastUpdated": firestore.SERVER_TIMESTAMP,
            },
        )
        return True

    @staticmethod
    def join_tournament(
        db: Client,
        tournament_id: str,
        participant_id: str,
        display_name: Optional[str],
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> str:
        """Register a participant in a lobby. Re-joining is a no-op."""
        code = normalize_game_code(tournament_id)
        display_name = clean_display_name(display_name)
        ref = TournamentService._ref(db, code, collection)
        with store_errors():
            joined = firestore.transactional(TournamentService._join_transaction)(
                db.transaction(), ref, participant_id, display_name
            )
        if joined:
            logger.info(f"{participant_id} joined tournament {code}")
        return code

    @staticmethod
    def _leave_transaction(
        transaction: Transaction, ref: DocumentReference, participant_id: str
    ) -> Optional[str]:
        """Remove the participant.

        Returns "left", "deleted" (last player out of a drawn tournament),
        "closed" (last player out of a lobby) or None if nothing changed.
        """
        doc = cast("DocumentSnapshot", ref.get(transaction=transaction))
        if not doc.exists:
            return None
        tournament = doc.to_dict() or {}
        players = [
            dict(p) for p in tournament.get("players") or [] if p.get("id") != participant_id
        ]
        if len(players) == len(tournament.get("players") or []):
            return None

        if not players:
            transaction.delete(ref)
            return "deleted" if tournament.get("bracket") else "closed"

        update: dict[str, Any] = {
            "players": players,
            "playerIds": [p["id"] for p in players],
            "lastUpdated": firestore.SERVER_TIMESTAMP,
        }
        if tournament.get("hostId") == participant_id:
            new_host = players[0]
            for player in players:
                player["isHost"] = player is new_host
            update["hostId"] = new_host["id"]
        transaction.update(ref, update)
        return "left"

    @staticmethod
    def leave_tournament(
        db: Client,
        tournament_id: str,
        participant_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
        forfeit_on_leave: bool = False,
    ) -> Optional[str]:
        """Take a participant off the roster.

        With ``forfeit_on_leave`` an unfinished match of the departing player
        is awarded to the opponent first; otherwise that match stays open.
        """
        code = normalize_game_code(tournament_id)
        ref = TournamentService._ref(db, code, collection)

        if forfeit_on_leave:
            with store_errors():
                tournament = TournamentService._read(ref)
            if tournament_status(tournament) == TournamentStatus.RUNNING:
                matches = fetch_tournament_matches(
                    db, code, tournament.get("currentRoundNumber"), collection
                )
                match = MatchService.find_active_match(matches, participant_id)
                if match:
                    MatchService.forfeit_match(
                        db, code, match["id"], participant_id, collection
                    )

        with store_errors():
            result = firestore.transactional(TournamentService._leave_transaction)(
                db.transaction(), ref, participant_id
            )
        if result == "deleted":
            TournamentService._delete_matches(db, code, collection)
        if result in ("deleted", "closed"):
            logger.info(f"Tournament {code} deleted after the last player left")
        elif result == "left":
            logger.info(f"{participant_id} left tournament {code}")
            TournamentService.finalize_if_decided(db, code, collection)
        return result

    @staticmethod
    def _delete_matches(db: Client, tournament_id: str, collection: str) -> int:
        """Delete every match document of a tournament in batches."""
        count = 0
        with store_errors():
            docs = list(matches_collection(db, tournament_id, collection).stream())
            batch = db.batch()
            pending = 0
            for doc in docs:
                if not doc.exists:
                    continue
                batch.delete(doc.reference)
                pending += 1
                count += 1
                if pending >= FIRESTORE_BATCH_LIMIT:
                    batch.commit()
                    batch = db.batch()
                    pending = 0
            if pending:
                batch.commit()
        return count

    @staticmethod
    def delete_tournament(
        db: Client,
        tournament_id: str,
        participant_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> None:
        """Delete a tournament and its matches (host only)."""
        code = normalize_game_code(tournament_id)
        ref = TournamentService._ref(db, code, collection)
        with store_errors():
            tournament = TournamentService._read(ref)
        TournamentService._require_host(tournament, participant_id, "delete the tournament")
        TournamentService._delete_matches(db, code, collection)
        with store_errors():
            ref.delete()
        logger.info(f"Tournament {code} deleted by host {participant_id}")

    # Rounds

    @staticmethod
    def _draw_round(
        transaction: Transaction,
        ref: DocumentReference,
        tournament_id: str,
        players: list[dict[str, Any]],
        eligible: list[dict[str, Any]],
        round_number: int,
        rng: Optional[random.Random],
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """Write the match documents of a new round.

        Returns the seated roster and the bracket entry for the round.
        """
        plan = BracketGenerator.generate_round(
            [p["id"] for p in eligible], round_number, rng
        )
        by_id = {p["id"]: p for p in players}
        match_ids = []
        for player1_id, player2_id in plan.pairings:
            match_ref = ref.collection(MATCHES_COLLECTION).document()
            transaction.set(
                match_ref,
                {
                    **new_match_document(
                        tournament_id, round_number, by_id[player1_id], by_id[player2_id]
                    ),
                    "createdAt": firestore.SERVER_TIMESTAMP,
                    "lastUpdated": firestore.SERVER_TIMESTAMP,
                },
            )
            match_ids.append(match_ref.id)

        entry = {
            "roundNumber": round_number,
            "matchIds": match_ids,
            "byePlayerIds": plan.bye_player_ids,
        }
        return BracketGenerator.seat_players(players, plan), entry

    @staticmethod
    def _start_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        participant_id: str,
        rng: Optional[random.Random],
    ) -> int:
        tournament = TournamentService._read(ref, transaction)
        TournamentService._require_host(tournament, participant_id, "start the tournament")
        status = tournament_status(tournament)
        if status != TournamentStatus.LOBBY:
            raise ConflictError("This tournament has already started.")
        players = [reset_player(p) for p in tournament.get("players") or []]
        if len(players) < MIN_PLAYERS:
            raise ValidationError(
                f"At least {MIN_PLAYERS} players are needed to start."
            )
        require_transition(status, TournamentStatus.RUNNING)

        players, entry = TournamentService._draw_round(
            transaction, ref, tournament["id"], players, players, 1, rng
        )
        transaction.update(
            ref,
            {
                "status": TournamentStatus.RUNNING.value,
                "currentRoundNumber": 1,
                "players": players,
                "bracket": [entry],
                "resultsApplied": [],
                "championId": None,
                "championName": None,
                "lastUpdated": firestore.SERVER_TIMESTAMP,
            },
        )
        return len(entry["matchIds"])

    @staticmethod
    def start_tournament(
        db: Client,
        tournament_id: str,
        participant_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
        rng: Optional[random.Random] = None,
    ) -> int:
        """Close the lobby and draw round 1. Returns the number of matches."""
        code = normalize_game_code(tournament_id)
        ref = TournamentService._ref(db, code, collection)
        with store_errors():
            match_count = firestore.transactional(TournamentService._start_transaction)(
                db.transaction(), ref, participant_id, rng
            )
        logger.info(f"Tournament {code} started with {match_count} matches in round 1")
        return match_count

    @staticmethod
    def _record_outcome_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        match_ref: DocumentReference,
    ) -> bool:
        doc = cast("DocumentSnapshot", ref.get(transaction=transaction))
        match_doc = cast("DocumentSnapshot", match_ref.get(transaction=transaction))
        if not doc.exists or not match_doc.exists:
            return False
        tournament = doc.to_dict() or {}
        if tournament_status(tournament) != TournamentStatus.RUNNING:
            return False
        round_entry = RoundController.current_round(tournament) or {}
        if match_ref.id not in (round_entry.get("matchIds") or []):
            return False

        players, applied, changed = RoundController.apply_outcome(
            tournament.get("players") or [],
            match_ref.id,
            match_doc.to_dict() or {},
            tournament.get("resultsApplied") or [],
        )
        if changed:
            transaction.update(
                ref,
                {
                    "players": players,
                    "resultsApplied": applied,
                    "lastUpdated": firestore.SERVER_TIMESTAMP,
                },
            )
        return changed

    @staticmethod
    def record_match_outcome(
        db: Client,
        tournament_id: str,
        match_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> bool:
        """Fold a finished match into the roster exactly once."""
        ref = TournamentService._ref(db, tournament_id, collection)
        match_ref = cast(
            "DocumentReference",
            matches_collection(db, tournament_id, collection).document(match_id),
        )
        with store_errors():
            changed = firestore.transactional(
                TournamentService._record_outcome_transaction
            )(db.transaction(), ref, match_ref)
        if changed:
            logger.info(f"Outcome of match {match_id} applied to {tournament_id}")
        return changed

    @staticmethod
    def _advance_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        participant_id: Optional[str],
        matches: dict[str, dict[str, Any]],
        observed_round: int,
        rng: Optional[random.Random],
    ) -> Optional[dict[str, Any]]:
        """Finish the tournament or draw the next round.

        ``participant_id`` None means an automatic finalization, which never
        draws a new round.
        """
        tournament = TournamentService._read(ref, transaction)
        status = tournament_status(tournament)
        if participant_id is not None:
            TournamentService._require_host(tournament, participant_id, "advance the round")
        if status == TournamentStatus.FINISHED:
            if participant_id is None:
                return None
            raise ConflictError("This tournament is already finished.")
        if status != TournamentStatus.RUNNING:
            if participant_id is None:
                return None
            raise ConflictError("This tournament has not started.")
        if tournament.get("currentRoundNumber") != observed_round:
            if participant_id is None:
                return None
            raise ConflictError("The round has already been advanced.")

        round_entry = RoundController.current_round(tournament)
        round_matches = {
            mid: matches[mid]
            for mid in (round_entry or {}).get("matchIds") or []
            if mid in matches
        }
        players, applied, changed = RoundController.apply_outcomes(
            tournament.get("players") or [],
            round_matches,
            tournament.get("resultsApplied") or [],
        )
        update: dict[str, Any] = {}
        if changed:
            update.update({"players": players, "resultsApplied": applied})

        complete = RoundController.is_round_complete(round_entry, matches)
        eligible = RoundController.eligible_players(players)
        if complete and len(eligible) <= 1:
            require_transition(status, TournamentStatus.FINISHED)
            update.update(TournamentService._finish_payload(players))
        elif participant_id is not None:
            if not complete:
                raise ConflictError("The current round is not complete yet.")
            next_round = observed_round + 1
            players = RoundController.reset_advancement(players)
            players, entry = TournamentService._draw_round(
                transaction, ref, tournament["id"], players, eligible, next_round, rng
            )
            update.update(
                {
                    "players": players,
                    "resultsApplied": applied,
                    "currentRoundNumber": next_round,
                    "bracket": list(tournament.get("bracket") or []) + [entry],
                }
            )

        if not update:
            return None
        update["lastUpdated"] = firestore.SERVER_TIMESTAMP
        transaction.update(ref, update)
        return update

    @staticmethod
    def _round_snapshot(
        db: Client, tournament_id: str, collection: str
    ) -> tuple[int, dict[str, dict[str, Any]]]:
        """Current round number and its match documents, read outside a transaction.

        Finished matches never change, so a stale read can only make a round
        look less complete than it is.
        """
        with store_errors():
            tournament = TournamentService._read(
                TournamentService._ref(db, tournament_id, collection)
            )
            round_number = tournament.get("currentRoundNumber") or 0
            if tournament_status(tournament) != TournamentStatus.RUNNING:
                return round_number, {}
            matches = fetch_tournament_matches(db, tournament_id, round_number, collection)
        return round_number, matches

    @staticmethod
    def advance_round(
        db: Client,
        tournament_id: str,
        participant_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
        rng: Optional[random.Random] = None,
    ) -> dict[str, Any]:
        """Host action: move on from a completed round.

        Draws the next round, or finishes the tournament when at most one
        player advanced.
        """
        code = normalize_game_code(tournament_id)
        round_number, matches = TournamentService._round_snapshot(db, code, collection)
        ref = TournamentService._ref(db, code, collection)
        with store_errors():
            update = firestore.transactional(TournamentService._advance_transaction)(
                db.transaction(), ref, participant_id, matches, round_number, rng
            )
        update = update or {}
        if update.get("status") == TournamentStatus.FINISHED.value:
            logger.info(f"Tournament {code} finished; champion {update.get('championId')}")
        elif "currentRoundNumber" in update:
            logger.info(f"Tournament {code} advanced to round {update['currentRoundNumber']}")
        return update

    @staticmethod
    def finalize_if_decided(
        db: Client, tournament_id: str, collection: str = TOURNAMENTS_COLLECTION
    ) -> Optional[dict[str, Any]]:
        """Any client: fold finished matches and finish the tournament if decided.

        The champion comes from player statuses alone, so every finalizer
        writes the same result.
        """
        try:
            round_number, matches = TournamentService._round_snapshot(
                db, tournament_id, collection
            )
        except NotFoundError:
            return None
        ref = TournamentService._ref(db, tournament_id, collection)
        with store_errors():
            update = firestore.transactional(TournamentService._advance_transaction)(
                db.transaction(), ref, None, matches, round_number, None
            )
        if update and update.get("status") == TournamentStatus.FINISHED.value:
            logger.info(
                f"Tournament {tournament_id} finished; champion {update.get('championId')}"
            )
        return update

    # Host lifecycle

    @staticmethod
    def _end_transaction(
        transaction: Transaction,
        ref: DocumentReference,
        participant_id: str,
        matches: dict[str, dict[str, Any]],
    ) -> Optional[dict[str, Any]]:
        tournament = TournamentService._read(ref, transaction)
        TournamentService._require_host(tournament, participant_id, "end the tournament")
        status = tournament_status(tournament)
        if status == TournamentStatus.FINISHED:
            return None
        if status != TournamentStatus.RUNNING:
            raise ConflictError("This tournament has not started.")
        require_transition(status, TournamentStatus.FINISHED)

        round_entry = RoundController.current_round(tournament) or {}
        players, applied, _ = RoundController.apply_outcomes(
            tournament.get("players") or [],
            {mid: m for mid, m in matches.items() if mid in (round_entry.get("matchIds") or [])},
            tournament.get("resultsApplied") or [],
        )
        update = {
            "players": players,
            "resultsApplied": applied,
            **TournamentService._finish_payload(players),
        }
        transaction.update(ref, update)
        return update

    @staticmethod
    def end_tournament(
        db: Client,
        tournament_id: str,
        participant_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> Optional[dict[str, Any]]:
        """Host action: stop a running tournament now.

        The champion is set only if a single player is still in; otherwise the
        tournament ends without one.
        """
        code = normalize_game_code(tournament_id)
        _, matches = TournamentService._round_snapshot(db, code, collection)
        ref = TournamentService._ref(db, code, collection)
        with store_errors():
            update = firestore.transactional(TournamentService._end_transaction)(
                db.transaction(), ref, participant_id, matches
            )
        if update:
            logger.info(f"Tournament {code} ended by host {participant_id}")
        return update

    @staticmethod
    def _reset_transaction(
        transaction: Transaction, ref: DocumentReference, participant_id: str
    ) -> Optional[int]:
        """Return the number of match documents removed, or None if already a lobby."""
        tournament = TournamentService._read(ref, transaction)
        TournamentService._require_host(tournament, participant_id, "reset the tournament")
        status = tournament_status(tournament)
        if status == TournamentStatus.LOBBY:
            return None
        require_transition(status, TournamentStatus.LOBBY)
        match_ids = [
            match_id
            for entry in tournament.get("bracket") or []
            for match_id in entry.get("matchIds") or []
        ]
        for match_id in match_ids:
            transaction.delete(ref.collection(MATCHES_COLLECTION).document(match_id))
        transaction.update(
            ref,
            {
                "status": TournamentStatus.LOBBY.value,
                "currentRoundNumber": 0,
                "players": [reset_player(p) for p in tournament.get("players") or []],
                "bracket": [],
                "resultsApplied": [],
                "championId": None,
                "championName": None,
                "lastUpdated": firestore.SERVER_TIMESTAMP,
            },
        )
        return len(match_ids)

    @staticmethod
    def reset_to_lobby(
        db: Client,
        tournament_id: str,
        participant_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> bool:
        """Host action: discard the bracket and return everyone to the lobby."""
        code = normalize_game_code(tournament_id)
        ref = TournamentService._ref(db, code, collection)
        with store_errors():
            removed = firestore.transactional(TournamentService._reset_transaction)(
                db.transaction(), ref, participant_id
            )
        if removed is None:
            return False
        logger.info(f"Tournament {code} reset to lobby; {removed} matches removed")
        return True

    # Views

    @staticmethod
    def get_status_view(
        db: Client, tournament_id: str, collection: str = TOURNAMENTS_COLLECTION
    ) -> dict[str, Any]:
        """Headline state: status, round, champion, ready-to-advance."""
        tournament = TournamentService.get_tournament(db, tournament_id, collection)
        with store_errors():
            matches = fetch_tournament_matches(
                db, tournament["id"], tournament.get("currentRoundNumber"), collection
            )
        return build_status_view(tournament, matches)

    @staticmethod
    def get_scoreboard(
        db: Client, tournament_id: str, collection: str = TOURNAMENTS_COLLECTION
    ) -> list[dict[str, Any]]:
        """Ranked roster."""
        tournament = TournamentService.get_tournament(db, tournament_id, collection)
        return sort_and_format_scoreboard(tournament.get("players") or [])

    @staticmethod
    def get_bracket_view(
        db: Client, tournament_id: str, collection: str = TOURNAMENTS_COLLECTION
    ) -> list[dict[str, Any]]:
        """Every round with its matches and byes."""
        tournament = TournamentService.get_tournament(db, tournament_id, collection)
        with store_errors():
            matches = fetch_tournament_matches(db, tournament["id"], None, collection)
        return build_bracket_view(tournament, matches)

    @staticmethod
    def current_match_for(
        db: Client,
        tournament_id: str,
        participant_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> dict[str, Any]:
        """What the participant should be looking at right now.

        The opponent's pending move is never included, only whether it exists.
        """
        tournament = TournamentService.get_tournament(db, tournament_id, collection)
        player = find_player(tournament.get("players") or [], participant_id)
        if player is None:
            raise PermissionDeniedError("You are not part of this tournament.")

        status = tournament_status(tournament)
        view: dict[str, Any] = {
            "tournamentStatus": status.value,
            "roundNumber": tournament.get("currentRoundNumber") or 0,
            "playerStatus": player_status(player).value,
            "state": status.value,
            "match": None,
        }
        if status != TournamentStatus.RUNNING:
            return view
        if player_status(player) == PlayerStatus.ELIMINATED:
            view["state"] = "eliminated"
            return view

        round_entry = RoundController.current_round(tournament) or {}
        if participant_id in (round_entry.get("byePlayerIds") or []):
            view["state"] = "bye"
            return view

        with store_errors():
            matches = fetch_tournament_matches(
                db, tournament["id"], view["roundNumber"], collection
            )
        mine = [m for m in matches.values() if side_of(m, participant_id)]
        if not mine:
            view["state"] = "waiting"
            return view

        match = mine[0]
        side = cast(str, side_of(match, participant_id))
        summary = summarize_match(match)
        summary["yourSide"] = side
        summary["yourPendingMove"] = match.get(f"{side}PendingMove")
        summary["opponentHasMoved"] = bool(match.get(f"{other_side(side)}PendingMove"))
        view["match"] = summary

        if match_status(match) == MatchStatus.ACTIVE:
            view["state"] = "playing"
        elif match.get("winnerId") == participant_id:
            view["state"] = "advanced"
        else:
            view["state"] = "eliminated"
        return view
