"""Peer-review and finalize orchestration for Council."""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import logging
import time

from council.audit import AuditLog
from council.config import Config
from council.errors import CouncilError, NoSourceDocuments
from council.models.engines import EngineAdapter
from council.prompts import build_finalize_prompt, build_review_prompt
from council.slug import normalize
from council.store import AnswerStore, FinalDocument, ReviewDocument, now_iso

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    BUILDING = "building"
    INVOKING = "invoking"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class OperationTrace:
    operation: str
    slug: str = ""
    engine: str = ""
    path: Optional[Path] = None
    stages: List[Stage] = field(default_factory=lambda: [Stage.IDLE])

    @property
    def stage(self) -> Stage:
        return self.stages[-1]

    def advance(self, stage: Stage) -> None:
        logger.debug(f"{self.operation} [{self.slug or '-'}/{self.engine or '-'}]: {self.stage.value} -> {stage.value}")
        self.stages.append(stage)

    def fail(self, exc: CouncilError) -> None:
        exc.stage = self.stage.value
        self.advance(Stage.FAILED)


def preview_text(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


@dataclass
class PeerReviewResult:
    engine: str
    review_body: str
    markdown: str
    path: Path
    slug: str
    sources: List[str]
    excluded_model: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    stages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine": self.engine,
            "review_body": self.review_body,
            "markdown": self.markdown,
            "path": str(self.path),
            "slug": self.slug,
            "sources": list(self.sources),
            "excluded_model": self.excluded_model,
            "warnings": list(self.warnings),
            "stages": list(self.stages),
            "summary": f"Peer review completed for {len(self.sources)} answers using {self.engine}",
            "preview": preview_text(self.review_body, 200),
        }


@dataclass
class FinalizeResult:
    engine: str
    final_body: str
    markdown: str
    path: Path
    slug: str
    source_kind: str
    sources: List[str]
    stages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine": self.engine,
            "final_body": self.final_body,
            "markdown": self.markdown,
            "path": str(self.path),
            "slug": self.slug,
            "source_kind": self.source_kind,
            "sources": list(self.sources),
            "stages": list(self.stages),
            "summary": f"Final answer generated using {self.engine} from {len(self.sources)} {self.source_kind}",
            "preview": preview_text(self.final_body, 300),
        }


class CouncilPipeline:
    def __init__(
        self,
        config: Config,
        store: AnswerStore | None = None,
        adapter: EngineAdapter | None = None,
        audit: AuditLog | None = None,
    ) -> None:
        self.config = config
        self.store = store or AnswerStore(config.root)
        self.adapter = adapter or EngineAdapter(config.engines)
        audit_path = config.audit_path
        self.audit = audit or (AuditLog(audit_path) if audit_path else None)

    @contextmanager
    def _operation(self, name: str) -> Iterator[OperationTrace]:
        trace = OperationTrace(operation=name)
        start = time.perf_counter()
        try:
            yield trace
        except CouncilError as exc:
            trace.fail(exc)
            logger.error(f"{name} failed at {exc.stage} ({exc.kind}): {exc.message}")
            self._audit(trace, start, status="failed", error=exc)
            raise
        self._audit(trace, start, status="ok")

    def _audit(self, trace: OperationTrace, start: float, status: str, error: CouncilError | None = None) -> None:
        if not self.audit:
            return
        data: Dict[str, Any] = {
            "slug": trace.slug,
            "engine": trace.engine,
            "status": status,
            "stages": [stage.value for stage in trace.stages],
            "duration_ms": round((time.perf_counter() - start) * 1000, 1),
        }
        if trace.path is not None:
            data["path"] = str(trace.path)
        if error is not None:
            data["error"] = error.to_dict()
            data["stage"] = error.stage
        self.audit.log(trace.operation, data)

    def peer_review(
        self,
        title: str,
        engine: str | None = None,
        self_model: str | None = None,
    ) -> PeerReviewResult:
        with self._operation("peer_review") as trace:
            trace.slug = normalize(title)
            trace.engine = self.adapter.resolve(engine or self.config.default_engine).name

            trace.advance(Stage.LOADING)
            answers = self.store.list_stage1(trace.slug)
            if not answers:
                raise NoSourceDocuments(f"No stage-1 answers found for {trace.slug!r} under {self.store.base_dir}")
            question = self.store.read_question(trace.slug, answers)

            trace.advance(Stage.BUILDING)
            prompt = build_review_prompt(answers, excluded_model=self_model, question=question)
            warnings: List[str] = []
            if self_model and prompt.excluded_model is None:
                available = ", ".join(doc.model_id for doc in answers)
                warnings.append(
                    f"self_model {self_model!r} matches no stage-1 answer (available: {available}); reviewing all answers"
                )
                logger.warning(warnings[-1])

            trace.advance(Stage.INVOKING)
            body = self.adapter.invoke(trace.engine, prompt.text, self.config.review_timeout_seconds)

            trace.advance(Stage.PERSISTING)
            document = ReviewDocument(
                engine_id=trace.engine,
                created_at=now_iso(),
                body_text=body,
                excluded_model=prompt.excluded_model,
                title=title,
                slug=trace.slug,
                sources=prompt.included,
            )
            trace.path = self.store.write_document("review", trace.slug, trace.engine, document)

            trace.advance(Stage.DONE)
            return PeerReviewResult(
                engine=trace.engine,
                review_body=body,
                markdown=document.render(),
                path=trace.path,
                slug=trace.slug,
                sources=prompt.included,
                excluded_model=prompt.excluded_model,
                warnings=warnings,
                stages=[stage.value for stage in trace.stages],
            )

    def finalize(self, title: str, engine: str | None = None) -> FinalizeResult:
        with self._operation("finalize") as trace:
            trace.slug = normalize(title)
            trace.engine = self.adapter.resolve(engine or self.config.default_engine).name

            trace.advance(Stage.LOADING)
            reviews = self.store.list_stage2(trace.slug)
            answers = self.store.list_stage1(trace.slug)
            if not reviews and not answers:
                raise NoSourceDocuments(f"No peer reviews or stage-1 answers found for {trace.slug!r}")
            if reviews:
                source_kind, sources = "reviews", [doc.engine_id for doc in reviews]
            else:
                logger.info(f"No peer reviews for {trace.slug!r}; synthesizing from stage-1 answers")
                source_kind, sources = "answers", [doc.model_id for doc in answers]
            question = self.store.read_question(trace.slug, answers)

            trace.advance(Stage.BUILDING)
            prompt = build_finalize_prompt(reviews, answers, question=question)

            trace.advance(Stage.INVOKING)
            body = self.adapter.invoke(trace.engine, prompt, self.config.finalize_timeout_seconds)

            trace.advance(Stage.PERSISTING)
            document = FinalDocument(
                engine_id=trace.engine,
                created_at=now_iso(),
                body_text=body,
                title=title,
                slug=trace.slug,
                source_kind=source_kind,
                sources=sources,
            )
            trace.path = self.store.write_document("final", trace.slug, trace.engine, document)

            trace.advance(Stage.DONE)
            return FinalizeResult(
                engine=trace.engine,
                final_body=body,
                markdown=document.render(),
                path=trace.path,
                slug=trace.slug,
                source_kind=source_kind,
                sources=sources,
                stages=[stage.value for stage in trace.stages],
            )
