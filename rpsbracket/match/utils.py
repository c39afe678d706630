"""Utility functions for reading match documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore

from rpsbracket.core.constants import MATCHES_COLLECTION, TOURNAMENTS_COLLECTION

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def matches_collection(
    db: Client, tournament_id: str, collection: str = TOURNAMENTS_COLLECTION
) -> Any:
    """Return the matches sub-collection of a tournament."""
    return (
        db.collection(collection)
        .document(tournament_id)
        .collection(MATCHES_COLLECTION)
    )


def fetch_tournament_matches(
    db: Client,
    tournament_id: str,
    round_number: Optional[int] = None,
    collection: str = TOURNAMENTS_COLLECTION,
) -> dict[str, dict[str, Any]]:
    """Fetch the tournament's match documents, keyed by match id."""
    query = matches_collection(db, tournament_id, collection)
    if round_number is not None:
        query = query.where(
            filter=firestore.FieldFilter("round", "==", round_number)
        )

    matches: dict[str, dict[str, Any]] = {}
    for doc in query.stream():
        if not doc.exists:
            continue
        data = doc.to_dict()
        if data:
            data["id"] = doc.id
            matches[doc.id] = data
    return matches


def summarize_match(match: dict[str, Any]) -> dict[str, Any]:
    """Public view of a match; pending moves are reduced to flags."""
    return {
        "id": match.get("id"),
        "round": match.get("round"),
        "status": match.get("status"),
        "player1": {
            "id": match.get("player1Id"),
            "displayName": match.get("player1Name", ""),
            "wins": int(match.get("player1Wins", 0) or 0),
            "hasMoved": bool(match.get("player1PendingMove")),
            "lastMove": match.get("player1Move"),
        },
        "player2": {
            "id": match.get("player2Id"),
            "displayName": match.get("player2Name", ""),
            "wins": int(match.get("player2Wins", 0) or 0),
            "hasMoved": bool(match.get("player2PendingMove")),
            "lastMove": match.get("player2Move"),
        },
        "winsRequired": match.get("winsRequired"),
        "winnerId": match.get("winnerId"),
        "loserId": match.get("loserId"),
        "forfeit": bool(match.get("forfeit", False)),
        "gameHistory": list(match.get("gameHistory") or []),
    }
