"""Tests for the DocumentStore adapter."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from google.api_core import exceptions as google_exceptions

from rpsbracket.errors import NotFoundError, TransientStoreError
from rpsbracket.store import DocumentStore
from tests.mock_utils import MockFieldFilter


def _snapshot(doc_id: str, data: dict | None) -> MagicMock:
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = data is not None
    snapshot.to_dict.return_value = data
    return snapshot


class DocumentStoreTestCase(unittest.TestCase):
    """Test case for DocumentStore."""

    def setUp(self) -> None:
        self.db = MagicMock()
        self.store = DocumentStore(self.db)

    def test_get(self) -> None:
        self.db.document.return_value.get.return_value = _snapshot("ABC123", {"status": "lobby"})
        self.assertEqual(
            self.store.get("tournaments/ABC123"), {"status": "lobby", "id": "ABC123"}
        )
        self.db.document.assert_called_with("tournaments/ABC123")

        self.db.document.return_value.get.return_value = _snapshot("ABC123", None)
        self.assertIsNone(self.store.get("tournaments/ABC123"))

    def test_writes(self) -> None:
        self.store.set("tournaments/A", {"a": 1})
        self.store.update("tournaments/A", {"b": 2})
        self.store.delete("tournaments/A")

        ref = self.db.document.return_value
        ref.set.assert_called_once_with({"a": 1})
        ref.update.assert_called_once_with({"b": 2})
        ref.delete.assert_called_once_with()

    def test_store_failures_are_translated(self) -> None:
        self.db.document.return_value.update.side_effect = google_exceptions.NotFound("x")
        with self.assertRaises(NotFoundError):
            self.store.update("tournaments/A", {"b": 2})

        self.db.document.return_value.set.side_effect = google_exceptions.InternalServerError("x")
        with self.assertRaises(TransientStoreError):
            self.store.set("tournaments/A", {})

    def test_subscribe(self) -> None:
        received = []
        errors = []
        unsubscribe = self.store.subscribe("tournaments/A", received.append, errors.append)

        callback = self.db.document.return_value.on_snapshot.call_args[0][0]
        callback([_snapshot("A", {"status": "running"})], [], None)
        callback([_snapshot("A", None)], [], None)

        self.assertEqual(received, [{"status": "running", "id": "A"}, None])
        self.assertEqual(errors, [])
        self.assertIs(
            unsubscribe, self.db.document.return_value.on_snapshot.return_value.unsubscribe
        )

    def test_subscribe_routes_callback_errors(self) -> None:
        errors = []

        def explode(data):
            raise RuntimeError("boom")

        self.store.subscribe("tournaments/A", explode, errors.append)
        callback = self.db.document.return_value.on_snapshot.call_args[0][0]
        callback([_snapshot("A", {})], [], None)

        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], RuntimeError)

    def test_subscribe_query(self) -> None:
        firestore_module = MagicMock()
        firestore_module.FieldFilter = MockFieldFilter
        received = []
        with patch("rpsbracket.store.firestore", new=firestore_module):
            self.store.subscribe_query(
                "tournaments/A/matches", [("round", "==", 1)], received.append
            )

        collection = self.db.collection.return_value
        filter_arg = collection.where.call_args.kwargs["filter"]
        self.assertEqual(
            (filter_arg.field_path, filter_arg.op_string, filter_arg.value),
            ("round", "==", 1),
        )
        callback = collection.where.return_value.on_snapshot.call_args[0][0]
        callback([_snapshot("m1", {"round": 1}), _snapshot("m2", None)], [], None)

        self.assertEqual(received, [{"m1": {"round": 1, "id": "m1"}}])


if __name__ == "__main__":
    unittest.main()
