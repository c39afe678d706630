"""Tests for the tournament blueprint routes."""

from __future__ import annotations

import unittest
from unittest.mock import patch

from rpsbracket import create_app
from tests.mock_utils import FirestoreTestCase

HOST = "host-uid"
GUEST = "guest-uid"


class TournamentRoutesTestCase(FirestoreTestCase):
    """Test case for the tournament JSON API."""

    def setUp(self) -> None:
        super().setUp()
        patcher = patch("firebase_admin.initialize_app")
        patcher.start()
        self.addCleanup(patcher.stop)

        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SERVER_NAME": "localhost",
                "BRACKET_SEED": 42,
            }
        )
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()

    def tearDown(self) -> None:
        self.app_context.pop()
        super().tearDown()

    def _set_session_user(self, participant_id: str) -> None:
        with self.client.session_transaction() as sess:
            sess["participant_id"] = participant_id

    def _create(self) -> str:
        self._set_session_user(HOST)
        response = self.client.post(
            "/tournaments/", json={"name": "Lunch Cup", "display_name": "Hosty"}
        )
        self.assertEqual(response.status_code, 201)
        return response.get_json()["data"]["code"]

    def _join(self, code: str, participant_id: str = GUEST, name: str = "Guest") -> None:
        self._set_session_user(participant_id)
        response = self.client.post(
            "/tournaments/join", json={"code": code, "display_name": name}
        )
        self.assertEqual(response.status_code, 200, response.get_json())

    def test_requires_session(self) -> None:
        response = self.client.post("/tournaments/", json={"display_name": "Hosty"})
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.get_json()["success"])

    def test_create_and_view(self) -> None:
        code = self._create()

        response = self.client.get(f"/tournaments/{code}")
        data = response.get_json()["data"]
        self.assertEqual(data["status"], "lobby")
        self.assertEqual(data["name"], "Lunch Cup")
        self.assertEqual(data["hostId"], HOST)
        self.assertEqual(data["playerCount"], 1)

    def test_create_rejects_missing_display_name(self) -> None:
        self._set_session_user(HOST)
        response = self.client.post("/tournaments/", json={"name": "No Host Name"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Display Name", response.get_json()["message"])

    def test_join_unknown_code_detaches(self) -> None:
        self._set_session_user(GUEST)
        response = self.client.post(
            "/tournaments/join", json={"code": "QQQQQQ", "display_name": "Guest"}
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["data"], {"detached": True})

    def test_start_is_host_only(self) -> None:
        code = self._create()
        self._join(code)

        response = self.client.post(f"/tournaments/{code}/start")
        self.assertEqual(response.status_code, 403)

        self._set_session_user(HOST)
        response = self.client.post(f"/tournaments/{code}/start")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["data"]["matchCount"], 1)

        response = self.client.post(f"/tournaments/{code}/start")
        self.assertEqual(response.status_code, 409)

    def test_play_a_match_over_http(self) -> None:
        code = self._create()
        self._join(code)
        self._set_session_user(HOST)
        self.client.post(f"/tournaments/{code}/start")

        current = self.client.get(f"/tournaments/{code}/matches/current").get_json()
        self.assertEqual(current["data"]["state"], "playing")
        match_id = current["data"]["match"]["id"]
        move_url = f"/tournaments/{code}/matches/{match_id}/move"

        response = self.client.post(move_url, json={"move": "lizard"})
        self.assertEqual(response.status_code, 400)

        for _ in range(3):
            self._set_session_user(HOST)
            response = self.client.post(move_url, json={"move": "rock"})
            self.assertEqual(response.get_json()["message"], "Move submitted.")
            self._set_session_user(GUEST)
            response = self.client.post(move_url, json={"move": "scissors"})
            self.assertEqual(response.get_json()["message"], "Game resolved.")

        match = response.get_json()["data"]
        self.assertEqual(match["status"], "finished")
        self.assertEqual(match["winnerId"], HOST)
        self.assertEqual(match["player1"]["wins"] + match["player2"]["wins"], 3)

        status = self.client.get(f"/tournaments/{code}").get_json()["data"]
        self.assertEqual(status["status"], "finished")
        self.assertEqual(status["championId"], HOST)

        board = self.client.get(f"/tournaments/{code}/scoreboard").get_json()
        self.assertEqual(board["data"]["players"][0]["id"], HOST)

        rounds = self.client.get(f"/tournaments/{code}/bracket").get_json()["data"]["rounds"]
        self.assertEqual(len(rounds), 1)
        self.assertTrue(rounds[0]["complete"])

        response = self.client.post(move_url, json={"move": "rock"})
        self.assertEqual(response.status_code, 409)

    def test_match_view_hides_pending_moves(self) -> None:
        code = self._create()
        self._join(code)
        self._set_session_user(HOST)
        self.client.post(f"/tournaments/{code}/start")
        match_id = self.client.get(f"/tournaments/{code}/matches/current").get_json()[
            "data"
        ]["match"]["id"]
        self.client.post(
            f"/tournaments/{code}/matches/{match_id}/move", json={"move": "paper"}
        )

        self._set_session_user(GUEST)
        response = self.client.get(f"/tournaments/{code}/matches/{match_id}")
        self.assertEqual(response.status_code, 200)
        self.assertNotIn(b"paper", response.data)

    def test_reset_end_and_delete(self) -> None:
        code = self._create()
        self._join(code)
        self._set_session_user(HOST)
        self.client.post(f"/tournaments/{code}/start")

        response = self.client.post(f"/tournaments/{code}/end")
        self.assertEqual(response.status_code, 200)
        response = self.client.post(f"/tournaments/{code}/reset")
        self.assertTrue(response.get_json()["data"]["reset"])
        self.assertEqual(
            self.client.get(f"/tournaments/{code}").get_json()["data"]["status"], "lobby"
        )

        self._set_session_user(GUEST)
        self.assertEqual(self.client.post(f"/tournaments/{code}/delete").status_code, 403)
        self._set_session_user(HOST)
        self.assertEqual(self.client.post(f"/tournaments/{code}/delete").status_code, 200)
        self.assertEqual(self.client.get(f"/tournaments/{code}").status_code, 404)

    def test_leave(self) -> None:
        code = self._create()
        self._join(code)

        response = self.client.post(f"/tournaments/{code}/leave")
        self.assertEqual(response.get_json()["data"]["result"], "left")
        self.assertEqual(self.tournament_doc(code)["playerIds"], [HOST])

    def test_unknown_route_is_json(self) -> None:
        response = self.client.get("/nowhere")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.get_json()["success"])


if __name__ == "__main__":
    unittest.main()
