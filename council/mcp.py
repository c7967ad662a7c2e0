"""Line-delimited JSON-RPC (MCP) server exposing the council tools over stdio."""
from __future__ import annotations

from typing import Any, Callable, Dict, IO, Optional
import json
import logging
import sys

from council import __version__
from council.errors import CouncilError
from council.pipeline import CouncilPipeline

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

_ENGINE_PROPERTY = {
    "type": "string",
    "description": "Engine to run (claude, codex, gemini, grok; aliases: sonnet, gpt); defaults to the configured default_engine",
}
_TITLE_PROPERTY = {
    "type": "string",
    "description": "Consultation title; normalized to the directory slug",
}

TOOLS = [
    {
        "name": "council.peer_review",
        "description": "Stage 2: read the stage-1 answers and write a peer review produced by a local engine CLI",
        "inputSchema": {
            "type": "object",
            "properties": {
                "title": _TITLE_PROPERTY,
                "engine": _ENGINE_PROPERTY,
                "self_model": {
                    "type": "string",
                    "description": "Model whose own answer is withheld from the review",
                },
            },
            "required": ["title"],
        },
    },
    {
        "name": "council.finalize",
        "description": "Stage 3: read the peer reviews (or stage-1 answers) and write a synthesized final answer",
        "inputSchema": {
            "type": "object",
            "properties": {
                "title": _TITLE_PROPERTY,
                "engine": _ENGINE_PROPERTY,
            },
            "required": ["title"],
        },
    },
]


class McpServer:
    def __init__(self, pipeline: CouncilPipeline) -> None:
        self.pipeline = pipeline
        self._tools: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            "council.peer_review": self._peer_review,
            "council.finalize": self._finalize,
        }

    def serve(self, stdin: IO[str] | None = None, stdout: IO[str] | None = None) -> None:
        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout
        for raw in stdin:
            line = raw.strip()
            if not line:
                continue
            try:
                response = self.handle_line(line)
            except ValueError as exc:
                logger.warning(f"Ignoring malformed request line: {exc}")
                continue
            if response is None:
                continue
            stdout.write(json.dumps(response) + "\n")
            stdout.flush()

    def handle_line(self, line: str) -> Optional[Dict[str, Any]]:
        request = json.loads(line)
        if not isinstance(request, dict):
            raise ValueError("request must be a JSON object")
        request_id = request.get("id")
        is_notification = request_id is None or isinstance(request_id, (bool, list, dict))
        if is_notification and "id" in request and request_id is not None:
            logger.warning(f"Invalid JSON-RPC id {request_id!r}; treating request as a notification")

        method = request.get("method")
        params = request.get("params") or {}
        if method == "initialize":
            result: Dict[str, Any] = {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": "mcp-council", "version": __version__},
            }
        elif method == "tools/list":
            result = {"tools": TOOLS}
        elif method == "tools/call":
            name = params.get("name") if isinstance(params, dict) else None
            handler = self._tools.get(name or "")
            if handler is None:
                return None if is_notification else _error(request_id, METHOD_NOT_FOUND, f"Unknown tool: {name}")
            arguments = params.get("arguments") or {}
            if not isinstance(arguments, dict) or not isinstance(arguments.get("title"), str):
                return None if is_notification else _error(
                    request_id, INVALID_PARAMS, "Missing required parameter: title"
                )
            try:
                payload = handler(arguments)
            except CouncilError as exc:
                if is_notification:
                    logger.error(f"{name} failed for notification: {exc.message}")
                    return None
                return _error(request_id, INTERNAL_ERROR, f"{name} failed: {exc.message}", exc.to_dict())
            except Exception as exc:
                logger.exception(f"{name} raised an unexpected error")
                if is_notification:
                    return None
                return _error(request_id, INTERNAL_ERROR, f"{name} failed: {exc}")
            result = {"content": [{"type": "text", "text": json.dumps(payload)}]}
        else:
            return None if is_notification else _error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

        if is_notification:
            return None
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    def _peer_review(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        result = self.pipeline.peer_review(
            arguments["title"],
            engine=str(arguments["engine"]) if arguments.get("engine") else None,
            self_model=str(arguments["self_model"]) if arguments.get("self_model") else None,
        )
        return result.to_dict()

    def _finalize(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        result = self.pipeline.finalize(
            arguments["title"],
            engine=str(arguments["engine"]) if arguments.get("engine") else None,
        )
        return result.to_dict()


def _error(request_id: Any, code: int, message: str, data: Dict[str, Any] | None = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}
