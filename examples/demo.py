#!/usr/bin/env python3
"""
Council Demo -- seed a consultation, peer review it, then finalize.

Run:
    python examples/demo.py --engine claude
    python examples/demo.py --echo        # no engine CLI needed; the engine echoes its prompt

Stage-1 answers are written into a temporary store so the demo never touches
your real .council directory.
"""
from __future__ import annotations

import argparse
import json
import sys
import tempfile
from pathlib import Path

# Ensure council is importable when running from the repo root.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from council.config import Config
from council.models.engines import canonical_engine
from council.pipeline import CouncilPipeline
from council.slug import normalize
from council.store import AnswerDocument, AnswerStore, now_iso


DEMO_TITLE = "High Res Network Player"
DEMO_QUESTION = "Which high-resolution network player should I buy for a 2,000 USD budget?"
DEMO_ANSWERS = {
    "gpt-5": "A streamer with a strong DAC section and Roon Ready support gives the best value.",
    "claude": "Prioritize software support and firmware updates over DAC specifications.",
    "gemini": "Pick a transport-only streamer and spend the rest on a separate DAC.",
}


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--engine", default="claude")
    parser.add_argument("--echo", action="store_true", help="Use an echo process instead of a real engine CLI")
    args = parser.parse_args()

    with tempfile.TemporaryDirectory(prefix="council-demo-") as tmp:
        raw: dict = {"root": tmp}
        if args.echo:
            echo = [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read())"]
            raw["engines"] = {canonical_engine(args.engine): {"command": echo, "stdin_flag": None}}
        pipeline = CouncilPipeline(Config(raw))

        store = AnswerStore(Path(tmp))
        slug = normalize(DEMO_TITLE)
        for model_id, body in DEMO_ANSWERS.items():
            store.write_document("answer", slug, model_id, AnswerDocument(model_id, DEMO_QUESTION, now_iso(), body))

        review = pipeline.peer_review(DEMO_TITLE, engine=args.engine, self_model="claude")
        print(json.dumps({k: v for k, v in review.to_dict().items() if k != "markdown"}, indent=2))
        final = pipeline.finalize(DEMO_TITLE, engine=args.engine)
        print(final.final_body)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
