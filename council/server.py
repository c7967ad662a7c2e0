"""FastAPI server for Council."""
from __future__ import annotations

from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from council.config import get_config
from council.errors import CouncilError
from council.models.engines import ENGINES
from council.pipeline import CouncilPipeline

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "InvalidTitle": 400,
    "UnknownEngine": 400,
    "NotFound": 404,
    "NoSourceDocuments": 404,
    "EngineUnavailable": 503,
    "EngineFailed": 502,
    "EngineEmptyOutput": 502,
    "EngineTimeout": 504,
    "StoreIO": 500,
}


class PeerReviewRequest(BaseModel):
    title: str
    engine: Optional[str] = None
    self_model: Optional[str] = None


class FinalizeRequest(BaseModel):
    title: str
    engine: Optional[str] = None


def _pipeline(request: Request) -> CouncilPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = CouncilPipeline(get_config())
        request.app.state.pipeline = pipeline
    return pipeline


def create_app(pipeline: CouncilPipeline | None = None) -> FastAPI:
    app = FastAPI(title="Council")
    app.state.pipeline = pipeline

    @app.exception_handler(CouncilError)
    async def council_error_handler(request: Request, exc: CouncilError) -> JSONResponse:
        status = STATUS_BY_KIND.get(exc.kind, 500)
        logger.warning(f"{request.url.path} -> {status} {exc.kind}: {exc.message}")
        return JSONResponse(exc.to_dict(), status_code=status)

    @app.get("/health")
    def health():
        """Health check endpoint for monitoring."""
        return {"status": "healthy", "service": "council", "engines": sorted(ENGINES)}

    @app.post("/api/peer-review")
    def peer_review_api(payload: PeerReviewRequest, request: Request):
        result = _pipeline(request).peer_review(
            payload.title,
            engine=payload.engine or None,
            self_model=payload.self_model or None,
        )
        return result.to_dict()

    @app.post("/api/finalize")
    def finalize_api(payload: FinalizeRequest, request: Request):
        result = _pipeline(request).finalize(payload.title, engine=payload.engine or None)
        return result.to_dict()

    return app


app = create_app()


def main():
    import uvicorn
    config = get_config()
    host = config.server.get("host", "127.0.0.1")
    port = int(config.server.get("port", 8099))
    uvicorn.run("council.server:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
