"""FastAPI application entrypoint for depscan service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..errors import AnalysisError, DepscanError
from ..models import Module
from ..normalize import normalize
from ..orchestrator import Orchestrator


class ModulePayload(BaseModel):
    type: str
    target: str
    name: Optional[str] = None
    revision: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)

    def to_module(self) -> Module:
        return Module(
            name=self.name or self.target,
            type=self.type.lower(),
            build_target=self.target,
            revision=self.revision,
            options=dict(self.options),
        )


class AnalyzeRequest(BaseModel):
    modules: List[ModulePayload]


class AnalyzeResponse(BaseModel):
    units: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    status: str
    version: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing depscan analysis."""

    app = FastAPI(title="depscan", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        # One orchestrator per request.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.post("/analyze", response_model=AnalyzeResponse)
    async def analyze(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> AnalyzeResponse:
        modules = [item.to_module() for item in payload.modules]

        def _run() -> List[Dict[str, Any]]:
            analyzed = orchestrator.analyze(modules)
            return [unit.to_dict() for unit in normalize(analyzed)]

        loop = asyncio.get_running_loop()
        units = await loop.run_in_executor(None, _run)
        return AnalyzeResponse(units=units)

    @app.exception_handler(AnalysisError)
    async def analysis_error_handler(
        _: Any, exc: AnalysisError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": f"Could not analyze: {exc}", "module": exc.module},
        )

    @app.exception_handler(DepscanError)
    async def depscan_error_handler(
        _: Any, exc: DepscanError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc), "code": exc.code})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
