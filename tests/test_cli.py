import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from council.cli import build_parser, main


class CliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        topic = self.root / "streaming-setup"
        topic.mkdir()
        (topic / "claude-answer.md").write_text("---\nmodel: claude\nprompt: How to stream?\n---\nUse a streamer.")
        self.env = patch.dict(os.environ, {"COUNCIL_ROOT": str(self.root)})
        self.env.start()

    def tearDown(self):
        self.env.stop()
        self._tmp.cleanup()

    def _run(self, *argv):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = main(list(argv))
        return code, json.loads(buffer.getvalue())

    def test_parser_defaults(self):
        args = build_parser().parse_args(["peer-review", "--title", "X"])
        self.assertIsNone(args.engine)
        self.assertIsNone(args.self_model)

    def test_answers_list_and_show(self):
        code, payload = self._run("answers", "list", "--title", "Streaming Setup")
        self.assertEqual(code, 0)
        self.assertEqual(payload["question"], "How to stream?")
        self.assertEqual([a["model_id"] for a in payload["answers"]], ["claude"])

        code, payload = self._run("answers", "show", "--title", "Streaming Setup", "--model", "claude")
        self.assertEqual(code, 0)
        self.assertEqual(payload["body_text"], "Use a streamer.")

    def test_errors_print_structured_payload(self):
        code, payload = self._run("answers", "show", "--title", "Streaming Setup", "--model", "gpt-5")
        self.assertEqual(code, 1)
        self.assertEqual(payload["error"]["kind"], "NotFound")

        code, payload = self._run("peer-review", "--title", "Streaming Setup", "--engine", "llama")
        self.assertEqual(code, 1)
        self.assertEqual(payload["error"]["kind"], "UnknownEngine")


if __name__ == "__main__":
    unittest.main()
