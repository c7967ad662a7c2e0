"""Title normalization and per-consultation path layout."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re

from council.errors import InvalidTitle

ANSWER_SUFFIX = "-answer.md"
ANSWER_JSON_SUFFIX = "-answer.json"
REVIEW_PREFIX = "peer-review-by-"
FINAL_PREFIX = "final-answer-by-"


def normalize(title: str) -> str:
    value = (title or "").lower()
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"[^a-z0-9-]", "", value)
    value = re.sub(r"-{2,}", "-", value)
    value = value.strip("-")
    if not value:
        raise InvalidTitle(f"title {title!r} has no usable characters")
    return value


@dataclass(frozen=True)
class ConsultationPaths:
    slug: str
    root_dir: Path

    @property
    def stage1_glob(self) -> str:
        return f"*{ANSWER_SUFFIX}"

    @property
    def stage1_json_glob(self) -> str:
        return f"*{ANSWER_JSON_SUFFIX}"

    @property
    def stage2_glob(self) -> str:
        return f"{REVIEW_PREFIX}*.md"

    def answer_path(self, model_id: str) -> Path:
        return self.root_dir / f"{model_id}{ANSWER_SUFFIX}"

    def review_path(self, engine_id: str) -> Path:
        return self.root_dir / f"{REVIEW_PREFIX}{engine_id}.md"

    def final_path(self, engine_id: str) -> Path:
        return self.root_dir / f"{FINAL_PREFIX}{engine_id}.md"


def resolve(slug: str, base_dir: Path) -> ConsultationPaths:
    """Build the path layout for ``slug`` under ``base_dir`` without touching disk."""
    return ConsultationPaths(slug=slug, root_dir=Path(base_dir) / slug)
