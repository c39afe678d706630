"""Thin adapter over Firestore exposing the primitives the game relies on.

Paths are slash-separated document or collection paths, e.g.
``tournaments/ABC123`` or ``tournaments/ABC123/matches``.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from .errors import NotFoundError, PermissionDeniedError, TransientStoreError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Optional[dict[str, Any]]], None]
QueryCallback = Callable[[dict[str, dict[str, Any]]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


@contextlib.contextmanager
def store_errors() -> Iterator[None]:
    """Translate Firestore client exceptions into application errors."""
    try:
        yield
    except google_exceptions.NotFound as e:
        raise NotFoundError("That game no longer exists.") from e
    except google_exceptions.PermissionDenied as e:
        raise PermissionDeniedError("Access to this game was denied.") from e
    except google_exceptions.GoogleAPICallError as e:
        logger.error(f"Firestore call failed: {e}")
        raise TransientStoreError() from e


def _log_error(error: Exception) -> None:
    logger.error(f"Snapshot listener error: {error}")


class DocumentStore:
    """Read, write and subscribe to documents by path."""

    def __init__(self, db: Client | None = None) -> None:
        """Wrap an existing client, or the default Firebase app's client."""
        self.db = db if db is not None else firestore.client()

    def get(self, path: str) -> Optional[dict[str, Any]]:
        """Return the document's data, or None if it does not exist."""
        with store_errors():
            snapshot = self.db.document(path).get()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        return data

    def set(self, path: str, document: dict[str, Any]) -> None:
        """Create or overwrite a document."""
        with store_errors():
            self.db.document(path).set(document)

    def update(self, path: str, fields: dict[str, Any]) -> None:
        """Write only the given top-level fields."""
        with store_errors():
            self.db.document(path).update(fields)

    def delete(self, path: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""
        with store_errors():
            self.db.document(path).delete()

    def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Call ``on_snapshot`` with each new version of a document.

        ``on_snapshot`` receives None once the document is deleted. Exceptions
        raised by the callback go to ``on_error`` instead of the listener
        thread.
        """
        report = on_error or _log_error

        def _callback(doc_snapshots: list[Any], changes: Any, read_time: Any) -> None:
            for snapshot in doc_snapshots:
                try:
                    if snapshot.exists:
                        data = snapshot.to_dict() or {}
                        data["id"] = snapshot.id
                        on_snapshot(data)
                    else:
                        on_snapshot(None)
                except Exception as e:  # noqa: BLE001
                    report(e)

        with store_errors():
            watch = self.db.document(path).on_snapshot(_callback)
        return watch.unsubscribe

    def subscribe_query(
        self,
        collection_path: str,
        filters: list[tuple[str, str, Any]],
        on_snapshot: QueryCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Call ``on_snapshot`` with every matching document, keyed by id."""
        report = on_error or _log_error
        query = self.db.collection(collection_path)
        for field_path, op_string, value in filters:
            query = query.where(
                filter=firestore.FieldFilter(field_path, op_string, value)
            )

        def _callback(doc_snapshots: list[Any], changes: Any, read_time: Any) -> None:
            documents = {}
            for snapshot in doc_snapshots:
                if snapshot.exists:
                    data = snapshot.to_dict() or {}
                    data["id"] = snapshot.id
                    documents[snapshot.id] = data
            try:
                on_snapshot(documents)
            except Exception as e:  # noqa: BLE001
                report(e)

        with store_errors():
            watch = query.on_snapshot(_callback)
        return watch.unsubscribe
