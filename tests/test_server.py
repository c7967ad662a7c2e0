"""Tests for the HTTP API."""
import sys
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from council.config import Config
from council.pipeline import CouncilPipeline
from council.server import create_app

ECHO = [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read())"]


class ServerTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        config = Config({"root": str(self.root), "engines": {"claude": {"command": ECHO}}})
        self.client = TestClient(create_app(CouncilPipeline(config)))

    def tearDown(self):
        self._tmp.cleanup()

    def _seed(self):
        topic = self.root / "dac-shootout"
        topic.mkdir()
        (topic / "claude-answer.md").write_text("claude says A", encoding="utf-8")
        (topic / "gemini-answer.md").write_text("gemini says B", encoding="utf-8")

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertIn("claude", response.json()["engines"])

    def test_peer_review_then_finalize(self):
        self._seed()
        response = self.client.post("/api/peer-review", json={"title": "DAC Shootout", "self_model": "gemini"})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["engine"], "claude")
        self.assertNotIn("gemini says B", data["review_body"])
        self.assertEqual(Path(data["path"]).read_text(encoding="utf-8"), data["markdown"])

        response = self.client.post("/api/finalize", json={"title": "DAC Shootout"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["source_kind"], "reviews")

    def test_errors_map_to_status(self):
        response = self.client.post("/api/peer-review", json={"title": "Nothing Yet"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["kind"], "NoSourceDocuments")

        response = self.client.post("/api/finalize", json={"title": "x", "engine": "llama"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["kind"], "UnknownEngine")

        response = self.client.post("/api/finalize", json={})
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
