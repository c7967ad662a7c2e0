import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from council.config import Config, find_council_dir, load_config


class ConfigTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults(self):
        config = Config({"root": str(self.base)})
        self.assertEqual(config.root, self.base)
        self.assertEqual(config.review_timeout_seconds, 300)
        self.assertEqual(config.finalize_timeout_seconds, 600)
        self.assertEqual(config.default_engine, "claude")
        self.assertIsNone(config.audit_path)

    def test_user_file_merges_over_default(self):
        default = self.base / "default.yaml"
        default.write_text("timeouts:\n  review_seconds: 100\n  finalize_seconds: 200\nserver:\n  port: 8099\n")
        user = self.base / "user.yaml"
        user.write_text("timeouts:\n  finalize_seconds: 900\nengines:\n  claude:\n    command: [claude, -p]\n")
        with patch.dict(os.environ, {}, clear=True):
            config = Config(load_config(default_path=default, user_path=user))
        self.assertEqual(config.review_timeout_seconds, 100)
        self.assertEqual(config.finalize_timeout_seconds, 900)
        self.assertEqual(config.engines["claude"]["command"], ["claude", "-p"])
        self.assertEqual(config.server["port"], 8099)

    def test_environment_overrides(self):
        env = {
            "COUNCIL_ROOT": str(self.base / "store"),
            "COUNCIL_REVIEW_TIMEOUT": "42",
            "COUNCIL_FINALIZE_TIMEOUT": "not-a-number",
            "COUNCIL_PORT": "9000",
            "COUNCIL_AUDIT_PATH": str(self.base / "audit.jsonl"),
        }
        missing = self.base / "missing.yaml"
        with patch.dict(os.environ, env, clear=True):
            config = Config(load_config(default_path=missing, user_path=missing))
        self.assertEqual(config.root, self.base / "store")
        self.assertEqual(config.review_timeout_seconds, 42)
        self.assertEqual(config.finalize_timeout_seconds, 600)
        self.assertEqual(config.server["port"], 9000)
        self.assertEqual(config.audit_path, self.base / "audit.jsonl")

    def test_find_council_dir_walks_up(self):
        (self.base / ".council").mkdir()
        nested = self.base / "a" / "b" / "c"
        nested.mkdir(parents=True)
        self.assertEqual(find_council_dir(nested), (self.base / ".council").resolve())

    def test_find_council_dir_fallback(self):
        start = self.base / "fresh"
        start.mkdir()
        with patch("council.config.PARENT_SEARCH_DEPTH", 0):
            self.assertEqual(find_council_dir(start), start.resolve() / ".council")


if __name__ == "__main__":
    unittest.main()
