"""Directory-backed store for consultation documents."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json
import logging
import os
import re
import tempfile
import yaml

from council.errors import NotFound, StoreIO
from council.slug import (
    ANSWER_JSON_SUFFIX,
    ANSWER_SUFFIX,
    REVIEW_PREFIX,
    ConsultationPaths,
    resolve,
)

logger = logging.getLogger(__name__)

QUESTION_FILES = ("query.txt", "user_query.txt", "question.txt", "input.txt")
UNKNOWN_QUERY = "Unknown query"
FRONT_MATTER = "---"
_KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def now_iso() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def split_front_matter(text: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """Split a ``---`` delimited YAML header from the body.

    Returns ``(None, text)`` when the document has no parseable header; the
    body is returned exactly as stored.
    """
    if not text.startswith(FRONT_MATTER + "\n"):
        return None, text
    end = text.find("\n" + FRONT_MATTER + "\n", len(FRONT_MATTER))
    if end == -1:
        return None, text
    header_text = text[len(FRONT_MATTER) + 1:end + 1]
    try:
        header = yaml.safe_load(header_text)
    except yaml.YAMLError:
        logger.warning("Unparseable front matter; treating document as plain text")
        return None, text
    if not isinstance(header, dict):
        return None, text
    return header, text[end + len(FRONT_MATTER) + 2:]


def render_front_matter(header: Dict[str, Any], body: str) -> str:
    dumped = yaml.safe_dump(header, sort_keys=False, allow_unicode=True)
    return f"{FRONT_MATTER}\n{dumped}{FRONT_MATTER}\n{body}"


@dataclass
class AnswerDocument:
    model_id: str
    prompt_text: str
    created_at: str
    body_text: str
    path: Optional[Path] = None

    def render(self) -> str:
        header = {
            "model": self.model_id,
            "prompt": self.prompt_text,
            "created_at": self.created_at,
        }
        return render_front_matter(header, self.body_text)


@dataclass
class ReviewDocument:
    engine_id: str
    created_at: str
    body_text: str
    excluded_model: Optional[str] = None
    title: str = ""
    slug: str = ""
    sources: List[str] = field(default_factory=list)
    path: Optional[Path] = None

    def render(self) -> str:
        header = {
            "engine": self.engine_id,
            "title": self.title,
            "slug": self.slug,
            "excluded_model": self.excluded_model,
            "sources": list(self.sources),
            "created_at": self.created_at,
        }
        return render_front_matter(header, self.body_text)


@dataclass
class FinalDocument:
    engine_id: str
    created_at: str
    body_text: str
    title: str = ""
    slug: str = ""
    source_kind: str = "reviews"
    sources: List[str] = field(default_factory=list)
    path: Optional[Path] = None

    def render(self) -> str:
        header = {
            "engine": self.engine_id,
            "title": self.title,
            "slug": self.slug,
            "source_kind": self.source_kind,
            "sources": list(self.sources),
            "created_at": self.created_at,
        }
        return render_front_matter(header, self.body_text)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise StoreIO(f"Failed to read {path}: {exc}") from exc


def _mtime_iso(path: Path) -> str:
    try:
        stamp = path.stat().st_mtime
    except OSError:
        return ""
    return datetime.fromtimestamp(stamp).astimezone().isoformat(timespec="seconds")


def _response_text(payload: Any) -> str:
    if isinstance(payload, dict):
        for key in ("response", "content", "answer"):
            if isinstance(payload.get(key), str):
                return payload[key]
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, indent=2)


def parse_answer(path: Path) -> AnswerDocument:
    """Parse one stage-1 document in any of the accepted layouts."""
    text = _read_text(path)
    name = path.name
    if name.endswith(ANSWER_JSON_SUFFIX):
        model_from_name = name[: -len(ANSWER_JSON_SUFFIX)]
    else:
        model_from_name = name[: -len(ANSWER_SUFFIX)] if name.endswith(ANSWER_SUFFIX) else path.stem

    if name.endswith(".json"):
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            prompt = payload.get("query") or payload.get("user_query") or payload.get("prompt")
            return AnswerDocument(
                model_id=str(payload.get("model") or model_from_name),
                prompt_text=_as_text(prompt),
                created_at=_as_text(payload.get("created_at")) or _mtime_iso(path),
                body_text=_response_text(payload),
                path=path,
            )

    header, body = split_front_matter(text)
    if header is None:
        return AnswerDocument(
            model_id=model_from_name,
            prompt_text="",
            created_at=_mtime_iso(path),
            body_text=text,
            path=path,
        )
    prompt = header.get("prompt") or header.get("query") or header.get("user_query")
    return AnswerDocument(
        model_id=str(header.get("model") or model_from_name),
        prompt_text=_as_text(prompt),
        created_at=_as_text(header.get("created_at")) or _mtime_iso(path),
        body_text=body,
        path=path,
    )


def parse_review(path: Path) -> ReviewDocument:
    text = _read_text(path)
    engine_from_name = path.stem[len(REVIEW_PREFIX):] if path.stem.startswith(REVIEW_PREFIX) else path.stem
    header, body = split_front_matter(text)
    if header is None:
        return ReviewDocument(
            engine_id=engine_from_name,
            created_at=_mtime_iso(path),
            body_text=text,
            path=path,
        )
    excluded = header.get("excluded_model")
    return ReviewDocument(
        engine_id=str(header.get("engine") or engine_from_name),
        created_at=_as_text(header.get("created_at")) or _mtime_iso(path),
        body_text=body,
        excluded_model=str(excluded) if excluded else None,
        title=_as_text(header.get("title")),
        slug=_as_text(header.get("slug")),
        sources=[str(item) for item in header.get("sources") or []],
        path=path,
    )


@dataclass
class AnswerStore:
    base_dir: Path

    def paths(self, slug: str) -> ConsultationPaths:
        return resolve(slug, self.base_dir)

    def list_stage1(self, slug: str) -> List[AnswerDocument]:
        paths = self.paths(slug)
        root = paths.root_dir
        if not root.is_dir():
            return []
        by_model: Dict[str, AnswerDocument] = {}
        # JSON first so that a markdown document for the same model replaces it.
        candidates = sorted(root.glob(paths.stage1_json_glob)) + sorted(root.glob(paths.stage1_glob))
        for path in candidates:
            if not path.is_file():
                continue
            document = parse_answer(path)
            by_model[document.model_id] = document
        return [by_model[key] for key in sorted(by_model)]

    def read_stage1(self, slug: str, model_id: str) -> AnswerDocument:
        for document in self.list_stage1(slug):
            if document.model_id == model_id:
                return document
        raise NotFound(f"No stage-1 answer from {model_id!r} in consultation {slug!r}")

    def list_stage2(self, slug: str) -> List[ReviewDocument]:
        paths = self.paths(slug)
        if not paths.root_dir.is_dir():
            return []
        reviews: Dict[str, ReviewDocument] = {}
        for path in sorted(paths.root_dir.glob(paths.stage2_glob)):
            if not path.is_file():
                continue
            document = parse_review(path)
            reviews[document.engine_id] = document
        return [reviews[key] for key in sorted(reviews)]

    def read_question(self, slug: str, answers: List[AnswerDocument] | None = None) -> str:
        root = self.paths(slug).root_dir
        for name in QUESTION_FILES:
            path = root / name
            if path.is_file():
                question = _read_text(path).strip()
                if question:
                    return question
        for document in answers if answers is not None else self.list_stage1(slug):
            if document.prompt_text.strip():
                return document.prompt_text.strip()
        return UNKNOWN_QUERY

    def target_path(self, kind: str, slug: str, key: str) -> Path:
        paths = self.paths(slug)
        if kind == "answer":
            return paths.answer_path(key)
        if kind == "review":
            return paths.review_path(key)
        if kind == "final":
            return paths.final_path(key)
        raise ValueError(f"unknown document kind: {kind}")

    def write_document(self, kind: str, slug: str, key: str, document: Any) -> Path:
        """Atomically replace the ``kind`` document stored under ``key``."""
        if not _KEY_RE.match(key or ""):
            raise StoreIO(f"Refusing to write {kind} document with unsafe key {key!r}")
        path = self.target_path(kind, slug, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreIO(f"Failed to create {path.parent}: {exc}") from exc
        atomic_write(path, document.render())
        document.path = path
        logger.info(f"Saved {kind} document to {path}")
        return path


def atomic_write(path: Path, content: str) -> None:
    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise StoreIO(f"Failed to write {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.warning(f"Could not remove temporary file {tmp_name}")
