"""FastAPI backend for the arena frontend."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from arenaengine.api.schemas import (
    ArenaCreatedResponse,
    ArenasListResponse,
    CancelRequest,
    DisputeRequest,
    ErrorResponse,
    FeedsResponse,
    HealthResponse,
    JoinRequest,
    ResolutionResponse,
    SampleAcceptedResponse,
    StakeRequest,
    StakeResponse,
)
from arenaengine.config import Settings, get_settings
from arenaengine.errors import (
    ArenaConfigError,
    ArenaEngineError,
    ArenaFull,
    ArenaNotFound,
    ArenaNotOpen,
    InputValidationError,
    InvariantViolation,
    PredictionWindowClosed,
    ResolutionFailed,
)
from arenaengine.match_types import MATCH_TYPES, MatchType
from arenaengine.models import Arena, ArenaStatus, FeedSample, OddsSnapshot, OptionTotals, Settlement
from arenaengine.service import ArenaService

log = structlog.get_logger(__name__)

# Set by run_api() so lifespan can start the background scheduler in the same process.
_run_with_scheduler = False
_settings: Settings | None = None

# Errors that describe the arena's state rather than a bad request body
_CONFLICTS = (ArenaNotOpen, ArenaFull, PredictionWindowClosed, ResolutionFailed)


def _error_json(code: str, message: str, status_code: int = 404, **extra: Any) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    content: dict[str, Any] = {"detail": message, "code": code}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def _status_for(exc: ArenaEngineError) -> int:
    if isinstance(exc, ArenaNotFound):
        return 404
    if isinstance(exc, _CONFLICTS):
        return 409
    if isinstance(exc, (InputValidationError, ArenaConfigError)):
        return 422
    if isinstance(exc, InvariantViolation):
        return 409
    return 503 if getattr(exc, "retryable", False) else 500


def _settings_or_load() -> Settings:
    return _settings if _settings is not None else get_settings()


def _build_service(settings: Settings) -> ArenaService:
    store = None
    if settings.persist:
        from arenaengine.storage.store import ArenaStore

        store = ArenaStore(settings.db_path)
    service = ArenaService.from_settings(settings, store=store)
    restored = service.restore()
    if restored:
        log.info("arenas_restored", count=restored)
    return service


def create_app(service: ArenaService | None = None, *, run_scheduler: bool | None = None) -> FastAPI:
    """Build the app. Without a service, one is built from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.service is None:
            app.state.service = _build_service(_settings_or_load())
        scheduler = None
        scheduler_task = None
        stop = None
        with_scheduler = _run_with_scheduler if run_scheduler is None else run_scheduler
        if with_scheduler:
            from arenaengine.oracle.router import build_router
            from arenaengine.scheduler import ArenaScheduler

            settings = _settings_or_load()
            scheduler = ArenaScheduler(
                app.state.service,
                build_router(settings, app.state.service.catalog),
                tick_interval_sec=settings.tick_interval_sec,
                odds_interval_sec=settings.odds_update_interval_sec,
                oracle_backoff_max_sec=settings.oracle_backoff_max_sec,
            )
            stop = asyncio.Event()
            scheduler_task = asyncio.create_task(scheduler.run(stop_event=stop))

        yield

        if scheduler is not None and scheduler_task is not None and stop is not None:
            stop.set()
            await scheduler_task
            await scheduler.close()
        store = app.state.service.store
        if store is not None:
            store.close()

    app = FastAPI(title="Arena Engine API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.state.service = service

    @app.exception_handler(ArenaEngineError)
    async def engine_error_handler(request: Request, exc: ArenaEngineError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            log.error("api_error", path=request.url.path, code=exc.code, error=exc.message)
        if isinstance(exc, ArenaConfigError):
            return _error_json(exc.code, exc.message, status_code, errors=exc.errors, warnings=exc.warnings)
        return _error_json(exc.code, exc.message, status_code)

    def svc(request: Request) -> ArenaService:
        return request.app.state.service

    @app.get("/health", response_model=HealthResponse)
    def health(request: Request) -> HealthResponse:
        return HealthResponse(status="ok", arenas=len(svc(request).lifecycle.arena_ids()))

    @app.get("/match-types", response_model=list[MatchType])
    def match_types() -> list[MatchType]:
        return list(MATCH_TYPES.values())

    @app.get("/oracles/feeds", response_model=FeedsResponse)
    def oracle_feeds(request: Request) -> FeedsResponse:
        catalog = svc(request).catalog
        if catalog is None:
            return FeedsResponse(feeds=[], by_provider={})
        return FeedsResponse(
            feeds=catalog.feeds(),
            by_provider={p: [f.id for f in feeds] for p, feeds in catalog.by_provider().items()},
        )

    # --- arenas ---
    @app.post(
        "/arenas",
        response_model=ArenaCreatedResponse,
        status_code=201,
        responses={422: {"description": "Invalid arena configuration", "model": ErrorResponse}},
    )
    def create_arena(request: Request, body: dict[str, Any]) -> ArenaCreatedResponse:
        arena, result = svc(request).create_arena(body)
        return ArenaCreatedResponse(arena=arena, warnings=result.warnings)

    @app.get("/arenas", response_model=ArenasListResponse)
    def list_arenas(request: Request, status: ArenaStatus | None = None) -> ArenasListResponse:
        arenas = svc(request).list_arenas(status)
        return ArenasListResponse(arenas=arenas, total=len(arenas))

    @app.get("/arenas/{arena_id}", response_model=Arena, responses={404: {"model": ErrorResponse}})
    def get_arena(request: Request, arena_id: str) -> Arena:
        return svc(request).get_arena(arena_id)

    @app.post("/arenas/{arena_id}/join", response_model=Arena, responses={409: {"model": ErrorResponse}})
    def join_arena(request: Request, arena_id: str, body: JoinRequest) -> Arena:
        return svc(request).join_arena(arena_id, body.participant_id)

    @app.post("/arenas/{arena_id}/start", response_model=Arena, responses={409: {"model": ErrorResponse}})
    def start_arena(request: Request, arena_id: str) -> Arena:
        return svc(request).start_arena(arena_id)

    @app.post("/arenas/{arena_id}/cancel", response_model=Arena, responses={409: {"model": ErrorResponse}})
    def cancel_arena(request: Request, arena_id: str, body: CancelRequest | None = None) -> Arena:
        return svc(request).cancel_arena(arena_id, (body or CancelRequest()).reason)

    # --- stakes and odds ---
    @app.post(
        "/arenas/{arena_id}/stakes",
        response_model=StakeResponse,
        status_code=201,
        responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    )
    def submit_stake(request: Request, arena_id: str, body: StakeRequest) -> StakeResponse:
        service = svc(request)
        stake_id = service.submit_stake(arena_id, body.participant_id, body.option, body.amount)
        return StakeResponse(stake_id=stake_id, arena_id=arena_id, total_pool=service.ledger.pool(arena_id))

    @app.get("/arenas/{arena_id}/totals", response_model=dict[str, OptionTotals])
    def get_totals(request: Request, arena_id: str) -> dict[str, OptionTotals]:
        return svc(request).get_totals(arena_id)

    @app.get("/arenas/{arena_id}/odds", response_model=dict[str, OddsSnapshot])
    def get_odds(request: Request, arena_id: str) -> dict[str, OddsSnapshot]:
        return svc(request).get_odds(arena_id)

    # --- oracle, resolution, settlement ---
    @app.post("/arenas/{arena_id}/samples", response_model=SampleAcceptedResponse)
    def ingest_sample(request: Request, arena_id: str, body: FeedSample) -> SampleAcceptedResponse:
        return SampleAcceptedResponse(accepted=svc(request).ingest_sample(arena_id, body))

    @app.get("/arenas/{arena_id}/resolution", response_model=ResolutionResponse)
    def get_resolution(request: Request, arena_id: str) -> ResolutionResponse:
        service = svc(request)
        resolution = service.get_resolution(arena_id)
        return ResolutionResponse(
            arena_id=arena_id,
            status="resolved" if resolution is not None else "pending",
            resolution=resolution,
        )

    @app.post("/arenas/{arena_id}/disputes", response_model=Arena, responses={409: {"model": ErrorResponse}})
    def uphold_dispute(request: Request, arena_id: str, body: DisputeRequest | None = None) -> Arena:
        return svc(request).uphold_dispute(arena_id, (body or DisputeRequest()).reason)

    @app.get("/arenas/{arena_id}/settlement", response_model=Settlement, responses={404: {"model": ErrorResponse}})
    def get_settlement(request: Request, arena_id: str):
        settlement = svc(request).get_settlement(arena_id)
        if settlement is None:
            return _error_json("not_settled", f"arena {arena_id} has no settlement yet")
        return settlement

    return app


app = create_app()


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    with_scheduler: bool = False,
    settings: Settings | None = None,
) -> None:
    """Run the API server. If with_scheduler, oracle polling and lifecycle ticks run in the same process."""
    import uvicorn

    global _run_with_scheduler, _settings
    _run_with_scheduler = with_scheduler
    _settings = settings
    uvicorn.run("arenaengine.api.main:app", host=host, port=port, reload=False)
