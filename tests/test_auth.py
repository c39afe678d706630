"""Tests for the auth blueprint."""

from __future__ import annotations

import unittest
from unittest.mock import patch

from rpsbracket import create_app

MOCK_USER_PAYLOAD = {"uid": "anon-123", "provider_id": "anonymous"}


class AuthTestCase(unittest.TestCase):
    """Test case for session login and logout."""

    def setUp(self) -> None:
        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "verify_id_token": patch("rpsbracket.auth.routes.auth.verify_id_token"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})
        self.client = self.app.test_client()

    def test_session_login(self) -> None:
        self.mocks["verify_id_token"].return_value = MOCK_USER_PAYLOAD

        response = self.client.post("/auth/session", json={"idToken": "token"})

        self.assertEqual(response.status_code, 200)
        body = response.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["participantId"], "anon-123")
        self.assertTrue(body["data"]["csrfToken"])
        self.mocks["verify_id_token"].assert_called_once_with("token")

        me = self.client.get("/auth/me").get_json()
        self.assertEqual(me["data"]["participantId"], "anon-123")

    def test_session_login_rejects_bad_token(self) -> None:
        self.mocks["verify_id_token"].side_effect = ValueError("bad token")

        response = self.client.post("/auth/session", json={"idToken": "token"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.client.get("/auth/me").status_code, 401)

    def test_session_login_requires_token(self) -> None:
        response = self.client.post("/auth/session", json={})
        self.assertEqual(response.status_code, 400)
        self.mocks["verify_id_token"].assert_not_called()

    def test_logout(self) -> None:
        with self.client.session_transaction() as sess:
            sess["participant_id"] = "anon-123"

        response = self.client.post("/auth/logout")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/auth/me").status_code, 401)


if __name__ == "__main__":
    unittest.main()
