"""Service layer for move submission and match resolution."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore

from rpsbracket.core.constants import TOURNAMENTS_COLLECTION
from rpsbracket.core.state import (
    MatchStatus,
    TournamentStatus,
    match_status,
    tournament_status,
)
from rpsbracket.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from rpsbracket.store import store_errors

from .models import Match, MoveSubmission, side_of
from .resolver import MatchResolver
from .utils import matches_collection

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)


class MatchService:
    """Service class for match-related operations."""

    @staticmethod
    def _match_ref(
        db: Client, tournament_id: str, match_id: str, collection: str
    ) -> DocumentReference:
        return cast(
            "DocumentReference",
            matches_collection(db, tournament_id, collection).document(match_id),
        )

    @staticmethod
    def get_match(
        db: Client,
        tournament_id: str,
        match_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> Match:
        """Fetch a single match by its ID."""
        ref = MatchService._match_ref(db, tournament_id, match_id, collection)
        with store_errors():
            doc = cast("DocumentSnapshot", ref.get())
        if not doc.exists:
            raise NotFoundError("Match not found.")
        data = cast("Match", doc.to_dict() or {})
        data["id"] = match_id
        return data

    @staticmethod
    def _submit_move_transaction(
        transaction: Transaction,
        tournament_ref: DocumentReference,
        match_ref: DocumentReference,
        participant_id: str,
        move: str,
    ) -> str:
        """Record a hidden move, refusing anything that would overwrite one."""
        tournament_doc = cast(
            "DocumentSnapshot", tournament_ref.get(transaction=transaction)
        )
        if not tournament_doc.exists:
            raise NotFoundError("Tournament not found.")
        tournament = tournament_doc.to_dict() or {}
        if tournament_status(tournament) != TournamentStatus.RUNNING:
            raise ConflictError("The tournament is not running.")

        match_doc = cast("DocumentSnapshot", match_ref.get(transaction=transaction))
        if not match_doc.exists:
            raise NotFoundError("Match not found.")
        match = match_doc.to_dict() or {}

        side = side_of(match, participant_id)
        if side is None:
            raise PermissionDeniedError("You are not playing in this match.")
        if match.get("round") != tournament.get("currentRoundNumber"):
            raise ConflictError("This match belongs to an earlier round.")
        if match_status(match) != MatchStatus.ACTIVE:
            raise ConflictError("This match is already over.")
        if match.get(f"{side}PendingMove"):
            raise ConflictError("You have already submitted a move for this game.")

        transaction.update(
            match_ref,
            {
                f"{side}PendingMove": move,
                "lastUpdated": firestore.SERVER_TIMESTAMP,
            },
        )
        return side

    @staticmethod
    def submit_move(
        db: Client,
        submission: MoveSubmission,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> Optional[dict[str, Any]]:
        """Store a participant's move, then try to resolve the game.

        Returns the fields written by the resolution, or None if the opponent
        has not moved yet.
        """
        move = submission.validate()
        tournament_ref = db.collection(collection).document(submission.tournament_id)
        match_ref = MatchService._match_ref(
            db, submission.tournament_id, submission.match_id, collection
        )

        with store_errors():
            side = firestore.transactional(MatchService._submit_move_transaction)(
                db.transaction(),
                tournament_ref,
                match_ref,
                submission.participant_id,
                move.value,
            )
        logger.info(
            f"Move recorded for {side} in match {submission.match_id} "
            f"of {submission.tournament_id}"
        )
        return MatchService.resolve_match(
            db, submission.tournament_id, submission.match_id, collection
        )

    @staticmethod
    def _resolve_transaction(
        transaction: Transaction, match_ref: DocumentReference
    ) -> Optional[dict[str, Any]]:
        """Score the pending game if both moves are in; otherwise do nothing."""
        match_doc = cast("DocumentSnapshot", match_ref.get(transaction=transaction))
        if not match_doc.exists:
            return None
        update = MatchResolver.next_state(match_doc.to_dict() or {})
        if update is None:
            return None
        transaction.update(
            match_ref, {**update, "lastUpdated": firestore.SERVER_TIMESTAMP}
        )
        return update

    @staticmethod
    def resolve_match(
        db: Client,
        tournament_id: str,
        match_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> Optional[dict[str, Any]]:
        """Resolve the match's pending game. Safe to call from any client."""
        match_ref = MatchService._match_ref(db, tournament_id, match_id, collection)
        with store_errors():
            update = firestore.transactional(MatchService._resolve_transaction)(
                db.transaction(), match_ref
            )
        if update:
            game = update["gameHistory"][-1]
            logger.info(
                f"Game {game['gameNumber']} of match {match_id} resolved: "
                f"{game['outcome']}"
            )
            if update.get("status") == MatchStatus.FINISHED.value:
                logger.info(f"Match {match_id} won by {update['winnerId']}")
        return update

    @staticmethod
    def _forfeit_transaction(
        transaction: Transaction, match_ref: DocumentReference, leaving_id: str
    ) -> Optional[dict[str, Any]]:
        match_doc = cast("DocumentSnapshot", match_ref.get(transaction=transaction))
        if not match_doc.exists:
            return None
        update = MatchResolver.forfeit_state(match_doc.to_dict() or {}, leaving_id)
        if update is None:
            return None
        transaction.update(
            match_ref, {**update, "lastUpdated": firestore.SERVER_TIMESTAMP}
        )
        return update

    @staticmethod
    def forfeit_match(
        db: Client,
        tournament_id: str,
        match_id: str,
        leaving_id: str,
        collection: str = TOURNAMENTS_COLLECTION,
    ) -> Optional[dict[str, Any]]:
        """Award an active match to the opponent of a player who left."""
        match_ref = MatchService._match_ref(db, tournament_id, match_id, collection)
        with store_errors():
            update = firestore.transactional(MatchService._forfeit_transaction)(
                db.transaction(), match_ref, leaving_id
            )
        if update:
            logger.info(
                f"Match {match_id} forfeited by {leaving_id}; "
                f"{update['winnerId']} advances"
            )
        return update

    @staticmethod
    def find_active_match(
        matches: dict[str, dict[str, Any]], participant_id: str
    ) -> Optional[dict[str, Any]]:
        """Return the participant's unfinished match among ``matches``."""
        for match_id, match in matches.items():
            if side_of(match, participant_id) and (
                match_status(match) == MatchStatus.ACTIVE
            ):
                return {**match, "id": match_id}
        return None

