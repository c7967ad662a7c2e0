"""Command line interface for Council."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from council.config import get_config
from council.errors import CouncilError
from council.pipeline import CouncilPipeline
from council.slug import normalize
from council.store import AnswerStore


def _print(obj: Any) -> None:
    print(json.dumps(obj, indent=2))


def cmd_peer_review(args: argparse.Namespace) -> None:
    pipeline = CouncilPipeline(get_config())
    result = pipeline.peer_review(args.title, engine=args.engine, self_model=args.self_model)
    _print(result.to_dict())


def cmd_finalize(args: argparse.Namespace) -> None:
    pipeline = CouncilPipeline(get_config())
    result = pipeline.finalize(args.title, engine=args.engine)
    _print(result.to_dict())


def cmd_answers(args: argparse.Namespace) -> None:
    store = AnswerStore(get_config().root)
    slug = normalize(args.title)
    if args.answers_cmd == "show":
        document = store.read_stage1(slug, args.model)
        _print({
            "model_id": document.model_id,
            "prompt_text": document.prompt_text,
            "created_at": document.created_at,
            "body_text": document.body_text,
            "path": str(document.path),
        })
        return
    answers = store.list_stage1(slug)
    _print({
        "slug": slug,
        "question": store.read_question(slug, answers),
        "answers": [
            {"model_id": doc.model_id, "created_at": doc.created_at, "path": str(doc.path)}
            for doc in answers
        ],
        "reviews": [doc.engine_id for doc in store.list_stage2(slug)],
    })


def cmd_mcp(args: argparse.Namespace) -> None:
    from council.mcp import McpServer
    McpServer(CouncilPipeline(get_config())).serve()


def cmd_serve(args: argparse.Namespace) -> None:
    from council.server import main as serve_main
    serve_main()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="council")
    parser.add_argument("--verbose", "-v", action="store_true")
    sub = parser.add_subparsers(dest="command")

    review = sub.add_parser("peer-review", help="Stage 2: review the stage-1 answers with one engine")
    review.add_argument("--title", required=True)
    review.add_argument("--engine", help="Defaults to the configured default_engine")
    review.add_argument("--self-model")

    finalize = sub.add_parser("finalize", help="Stage 3: synthesize the final answer with one engine")
    finalize.add_argument("--title", required=True)
    finalize.add_argument("--engine", help="Defaults to the configured default_engine")

    answers = sub.add_parser("answers", help="Inspect stage-1 answers of a consultation")
    answers_sub = answers.add_subparsers(dest="answers_cmd")
    list_cmd = answers_sub.add_parser("list")
    list_cmd.add_argument("--title", required=True)
    show_cmd = answers_sub.add_parser("show")
    show_cmd.add_argument("--title", required=True)
    show_cmd.add_argument("--model", required=True)

    sub.add_parser("mcp", help="Serve the council tools over stdio (MCP)")
    sub.add_parser("serve", help="Run the HTTP API")

    return parser


COMMANDS = {
    "peer-review": cmd_peer_review,
    "finalize": cmd_finalize,
    "answers": cmd_answers,
    "mcp": cmd_mcp,
    "serve": cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    handler = COMMANDS.get(args.command)
    if handler is None or (args.command == "answers" and not args.answers_cmd):
        parser.print_help()
        return 2
    try:
        handler(args)
    except CouncilError as exc:
        _print({"error": exc.to_dict()})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
