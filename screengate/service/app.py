"""FastAPI application entrypoint for screengate service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import RemediationPolicy, ScoringThresholds, parse_policy
from ..manifests.store import ManifestStore
from ..models import ScreenManifest, ScreenScorecard
from ..plan.builder import ExecutionPlanBuilder
from ..plan.validator import ExecutionPlanValidator, parse_plan
from ..remediation.policy import evaluate_policy
from ..results import Err
from ..scoring.aggregator import ScoreAggregator
from ..scoring.evidence import ScreenEvidence
from ..scoring.summary import BatchSummarizer


class ManifestBatchRequest(BaseModel):
    manifests: List[Dict[str, Any]]


class ManifestValidationResponse(BaseModel):
    ok: bool
    total: int
    issues: List[Dict[str, Any]]


class PlanRequest(BaseModel):
    manifests: List[Dict[str, Any]]
    break_mutual_links: bool = False


class PlanResponse(BaseModel):
    ok: bool
    plan: Optional[Dict[str, Any]] = None
    errors: List[Dict[str, Any]] = Field(default_factory=list)


class PlanValidationRequest(BaseModel):
    plan: Dict[str, Any]
    manifests: List[Dict[str, Any]]


class PlanValidationResponse(BaseModel):
    valid: bool
    expectedOrder: List[str] = Field(default_factory=list)
    actualOrder: List[str] = Field(default_factory=list)
    errors: List[Dict[str, Any]] = Field(default_factory=list)


class ScreenEvidencePayload(BaseModel):
    screenId: str
    declaredStates: int = 0
    evidence: Dict[str, Any] = Field(default_factory=dict)


class ScoreRequest(BaseModel):
    screens: List[ScreenEvidencePayload]
    thresholds: Optional[Dict[str, float]] = None


class ScoreResponse(BaseModel):
    scorecards: List[Dict[str, Any]]


class SummaryRequest(BaseModel):
    scorecards: List[Dict[str, Any]]
    policy: Optional[Dict[str, Any]] = None


class SummaryResponse(BaseModel):
    summary: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str


def _default_aggregator() -> ScoreAggregator:
    return ScoreAggregator()


def create_app(
    aggregator_factory: Callable[[], ScoreAggregator] = _default_aggregator,
) -> FastAPI:
    """Create the FastAPI application exposing the stateless core operations."""

    app = FastAPI(title="ScreenGate Service", version="1.0.0")

    async def _offload(func: Callable[[], Any]) -> Any:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:  # pragma: no cover - fallback path when not in async context
            return func()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/manifests/validate", response_model=ManifestValidationResponse)
    async def validate_manifests(payload: ManifestBatchRequest) -> ManifestValidationResponse:
        loaded = await _offload(lambda: ManifestStore().load(payload.manifests))
        return ManifestValidationResponse(
            ok=loaded.ok,
            total=loaded.total_records,
            issues=[issue.to_dict() for issue in loaded.issues],
        )

    @app.post("/plan", response_model=PlanResponse)
    async def build_plan(payload: PlanRequest) -> PlanResponse:
        manifests = _manifests_or_raise(payload.manifests)
        builder = ExecutionPlanBuilder(break_mutual_links=payload.break_mutual_links)
        built = await _offload(lambda: builder.build(manifests))
        if isinstance(built, Err):
            return PlanResponse(ok=False, errors=[error.to_dict() for error in built.error])
        return PlanResponse(ok=True, plan=built.value.to_dict())

    @app.post("/plan/validate", response_model=PlanValidationResponse)
    async def validate_plan(payload: PlanValidationRequest) -> PlanValidationResponse:
        manifests = _manifests_or_raise(payload.manifests)
        parsed = parse_plan(payload.plan)
        if isinstance(parsed, Err):
            return PlanValidationResponse(valid=False, errors=[error.to_dict() for error in parsed.error])
        result = await _offload(lambda: ExecutionPlanValidator().validate(parsed.value, manifests))
        return PlanValidationResponse(**result.to_dict())

    @app.post("/scorecards", response_model=ScoreResponse)
    async def score(payload: ScoreRequest) -> ScoreResponse:
        aggregator = aggregator_factory()
        if payload.thresholds:
            aggregator = ScoreAggregator(_thresholds(payload.thresholds))
        evidence = {
            screen.screenId: ScreenEvidence.from_dict(screen.evidence, declared_states=screen.declaredStates)
            for screen in payload.screens
        }
        order = [screen.screenId for screen in payload.screens]
        cards = await _offload(lambda: aggregator.score_batch(evidence, order))
        return ScoreResponse(scorecards=[card.to_dict() for card in cards])

    @app.post("/summary", response_model=SummaryResponse)
    async def summarize(payload: SummaryRequest) -> SummaryResponse:
        cards = [ScreenScorecard.from_dict(raw) for raw in payload.scorecards]
        summary = BatchSummarizer().summarize(cards)
        policy = parse_policy(payload.policy) if payload.policy is not None else RemediationPolicy()
        summary.decision = evaluate_policy(summary, policy)
        return SummaryResponse(summary=summary.to_dict())

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(
        _: Any, exc: RuntimeError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def _manifests_or_raise(records: List[Dict[str, Any]]) -> List[ScreenManifest]:
    loaded = ManifestStore().load(records)
    if not loaded.ok:
        details = "; ".join(f"{issue.screen_id}: {issue.message}" for issue in loaded.errors)
        raise ValueError(f"Batch rejected: {details}")
    return loaded.manifests


def _thresholds(data: Dict[str, float]) -> ScoringThresholds:
    defaults = ScoringThresholds()
    return ScoringThresholds(
        visual_pass_below=data.get("visualPassBelow", defaults.visual_pass_below),
        visual_fail_above=data.get("visualFailAbove", defaults.visual_fail_above),
        max_load_time_ms=data.get("maxLoadTimeMs", defaults.max_load_time_ms),
        max_bundle_kb=data.get("maxBundleKb", defaults.max_bundle_kb),
    )


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
