"""Tests for the stdio MCP server."""
import io
import json
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from council.errors import NoSourceDocuments
from council.mcp import McpServer
from council.pipeline import PeerReviewResult


def request(method, params=None, request_id=1):
    payload = {"jsonrpc": "2.0", "method": method}
    if request_id is not None:
        payload["id"] = request_id
    if params is not None:
        payload["params"] = params
    return json.dumps(payload)


class McpServerTests(unittest.TestCase):
    def setUp(self):
        self.pipeline = MagicMock()
        self.server = McpServer(self.pipeline)

    def test_initialize(self):
        response = self.server.handle_line(request("initialize"))
        self.assertEqual(response["id"], 1)
        self.assertEqual(response["result"]["serverInfo"]["name"], "mcp-council")
        self.assertIn("tools", response["result"]["capabilities"])

    def test_tools_list(self):
        response = self.server.handle_line(request("tools/list"))
        names = [tool["name"] for tool in response["result"]["tools"]]
        self.assertEqual(names, ["council.peer_review", "council.finalize"])

    def test_peer_review_call(self):
        self.pipeline.peer_review.return_value = PeerReviewResult(
            engine="claude",
            review_body="body",
            markdown="---\nengine: claude\n---\nbody",
            path=Path("/x/peer-review-by-claude.md"),
            slug="x",
            sources=["gemini"],
            excluded_model="claude",
        )
        response = self.server.handle_line(request(
            "tools/call",
            {"name": "council.peer_review", "arguments": {"title": "X", "self_model": "claude"}},
        ))
        self.pipeline.peer_review.assert_called_once_with("X", engine=None, self_model="claude")
        content = response["result"]["content"][0]
        self.assertEqual(content["type"], "text")
        payload = json.loads(content["text"])
        self.assertEqual(payload["review_body"], "body")
        self.assertEqual(payload["path"], "/x/peer-review-by-claude.md")

    def test_council_error_is_structured(self):
        self.pipeline.finalize.side_effect = NoSourceDocuments("nothing here")
        response = self.server.handle_line(request(
            "tools/call", {"name": "council.finalize", "arguments": {"title": "X", "engine": "gemini"}}, request_id="abc"
        ))
        self.assertEqual(response["id"], "abc")
        self.assertEqual(response["error"]["code"], -32603)
        self.assertEqual(response["error"]["data"], {"kind": "NoSourceDocuments", "message": "nothing here"})

    def test_engine_argument_forwarded(self):
        self.pipeline.finalize.return_value.to_dict.return_value = {"engine": "gemini"}
        self.server.handle_line(request(
            "tools/call", {"name": "council.finalize", "arguments": {"title": "X", "engine": "gemini"}}
        ))
        self.pipeline.finalize.assert_called_once_with("X", engine="gemini")

    def test_unexpected_error_keeps_serving(self):
        self.pipeline.peer_review.side_effect = OSError(8, "Exec format error")
        stdin = io.StringIO(
            request("tools/call", {"name": "council.peer_review", "arguments": {"title": "X"}}, request_id=1)
            + "\n"
            + request("tools/list", request_id=2)
            + "\n"
        )
        stdout = io.StringIO()
        with self.assertLogs("council.mcp", level="ERROR"):
            self.server.serve(stdin=stdin, stdout=stdout)
        replies = [json.loads(line) for line in stdout.getvalue().splitlines()]
        self.assertEqual([reply["id"] for reply in replies], [1, 2])
        self.assertEqual(replies[0]["error"]["code"], -32603)
        self.assertIn("Exec format error", replies[0]["error"]["message"])
        self.assertIn("tools", replies[1]["result"])

    def test_missing_title(self):
        response = self.server.handle_line(request("tools/call", {"name": "council.finalize", "arguments": {}}))
        self.assertEqual(response["error"]["code"], -32602)
        self.pipeline.finalize.assert_not_called()

    def test_unknown_tool_and_method(self):
        response = self.server.handle_line(request("tools/call", {"name": "council.vote", "arguments": {}}))
        self.assertEqual(response["error"]["code"], -32601)
        response = self.server.handle_line(request("resources/list"))
        self.assertEqual(response["error"]["code"], -32601)

    def test_notifications_get_no_response(self):
        self.assertIsNone(self.server.handle_line(request("notifications/initialized", request_id=None)))
        self.assertIsNone(self.server.handle_line(request("tools/list", request_id=[1])))
        self.assertIsNone(self.server.handle_line(request("bogus", request_id=None)))

    def test_serve_skips_malformed_lines(self):
        stdin = io.StringIO("not json\n\n" + request("tools/list", request_id=7) + "\n[1, 2]\n")
        stdout = io.StringIO()
        self.server.serve(stdin=stdin, stdout=stdout)
        lines = stdout.getvalue().splitlines()
        self.assertEqual(len(lines), 1)
        self.assertEqual(json.loads(lines[0])["id"], 7)


if __name__ == "__main__":
    unittest.main()
