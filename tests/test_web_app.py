"""
tests/test_web_app.py — Tests for the FastAPI bridge using TestClient.

The controller uses a MagicMock for audio, so no sound device is needed.
"""

from __future__ import annotations

import time
import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from eyetalk.core.config import EyeTalkConfig, InputConfig
from eyetalk.core.session import SessionController
from eyetalk.ui import web_app


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestWebApp(unittest.TestCase):
    """REST and WebSocket endpoints against a live controller."""

    def setUp(self) -> None:
        self.controller = SessionController(
            config=EyeTalkConfig(), audio=MagicMock(), background_audio=False,
        )
        web_app.wire_controller(self.controller)
        self.client = TestClient(web_app.app)

    def tearDown(self) -> None:
        self.controller.stop()

    def test_health(self) -> None:
        body = self.client.get("/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertFalse(body["running"])

    def test_index_served(self) -> None:
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("EyeTalk", resp.text)

    def test_state_lists_targets(self) -> None:
        body = self.client.get("/state").json()
        ids = [t["id"] for t in body["targets"]]
        self.assertEqual(ids, ["thirsty", "hungry", "help", "pain", "lock-control"])
        self.assertFalse(body["locked"])
        self.assertIsNone(body["last_selection"])

    def test_session_start_stop(self) -> None:
        self.assertEqual(self.client.post("/session/start").status_code, 200)
        self.assertTrue(self.controller.running)
        self.assertEqual(self.client.post("/session/start").status_code, 409)
        self.assertEqual(self.client.post("/session/stop").status_code, 200)
        self.assertFalse(self.controller.running)

    def test_sample_endpoint(self) -> None:
        body = self.client.post("/sample", json={"x": 25.0, "y": 75.0, "t": 0.0}).json()
        self.assertTrue(body["accepted"])
        self.assertEqual(body["smoothed"], {"x": 25.0, "y": 75.0})
        state = self.client.get("/state").json()
        self.assertEqual(state["smoothed_point"], {"x": 25.0, "y": 75.0})

    def test_sample_endpoint_validates_body(self) -> None:
        self.assertEqual(self.client.post("/sample", json={"x": "left"}).status_code, 422)

    def test_replace_phrases(self) -> None:
        resp = self.client.put("/phrases", json=[
            {"id": "yes", "label": "Yes"},
            {"id": "no", "label": "No", "category": "comfort"},
        ])
        self.assertEqual(resp.json(), {"ok": True, "count": 2})
        listed = self.client.get("/phrases").json()
        self.assertEqual([p["id"] for p in listed], ["yes", "no"])
        self.assertEqual(len(self.controller.registry.standard_targets), 2)

    def test_replace_phrases_rejects_invalid(self) -> None:
        resp = self.client.put("/phrases", json=[{"id": "a", "label": ""}])
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(len(self.controller.phrase_book), 4)

    def test_ws_sends_snapshot_on_connect(self) -> None:
        with self.client.websocket_connect("/ws") as ws:
            msg = ws.receive_json()
        self.assertEqual(msg["type"], "snapshot")
        self.assertIn("targets", msg)

    def test_gaze_socket_accepts_wire_formats(self) -> None:
        with self.client.websocket_connect("/gaze?ack=true") as ws:
            ws.send_text("25,75")
            self.assertEqual(ws.receive_json(), {"type": "ack", "accepted": True})
            ws.send_text('{"type": "gaze_data", "data": {"x": 25, "y": 75}}')
            self.assertTrue(ws.receive_json()["accepted"])
            ws.send_text("garbage")
            self.assertFalse(ws.receive_json()["accepted"])
        point = self.controller.smoother.latest
        self.assertEqual((point.x, point.y), (25.0, 75.0))

    def test_ws_start_stop_actions(self) -> None:
        with self.client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"action": "start"})
            self.assertTrue(_wait_for(lambda: self.controller.running))
            ws.send_json({"action": "stop"})
            self.assertTrue(_wait_for(lambda: not self.controller.running))

    def test_stop_route_joins_tick_thread(self) -> None:
        self.client.post("/session/start")
        thread = self.controller._loop_thread
        self.assertTrue(thread.is_alive())
        self.assertEqual(self.client.post("/session/stop").json(), {"ok": True, "running": False})
        self.assertFalse(thread.is_alive())


class TestWebAppPixelInput(unittest.TestCase):
    """Dashboard samples carry their own space; trackers use the configured one."""

    def setUp(self) -> None:
        config = EyeTalkConfig(input=InputConfig(coordinate_space="pixels"))
        self.controller = SessionController(
            config=config, audio=MagicMock(), background_audio=False,
        )
        web_app.wire_controller(self.controller)
        self.client = TestClient(web_app.app)

    def tearDown(self) -> None:
        self.controller.stop()

    def test_percent_sample_not_rescaled(self) -> None:
        body = self.client.post(
            "/sample", json={"x": 50, "y": 50, "t": 0.0, "space": "percent"},
        ).json()
        self.assertEqual(body["smoothed"], {"x": 50.0, "y": 50.0})

    def test_sample_without_space_uses_pixels(self) -> None:
        body = self.client.post("/sample", json={"x": 960, "y": 540, "t": 0.0}).json()
        self.assertEqual(body["smoothed"], {"x": 50.0, "y": 50.0})

    def test_unknown_space_rejected(self) -> None:
        resp = self.client.post("/sample", json={"x": 1, "y": 1, "space": "inches"})
        self.assertEqual(resp.status_code, 422)

    def test_dashboard_posts_percent(self) -> None:
        self.assertIn('space: "percent"', self.client.get("/").text)


if __name__ == "__main__":
    unittest.main()
