# app/api/routes/internal.py
from datetime import datetime
from http import HTTPStatus

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from app.api.dependencies.engine import get_schedule_engine
from app.api.dependencies.internal_auth import verify_internal_api_key
from app.schemas.schedule import EngineStartRequest, EngineState, RunSummary
from app.services.schedule_engine import ScheduleEngine, ScheduleWindowError

router = APIRouter(
    prefix="/internal/schedule",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


@router.post(
    "/reconcile",
    response_model=RunSummary,
    status_code=HTTPStatus.OK,
    summary="Materialize class sessions for a window",
    description=(
        "Runs one reconciliation pass on demand: every active subject's weekly "
        "schedule is expanded over the window and each occurrence is persisted "
        "exactly once. Tokens and baseline attendance are created only for "
        "sessions inserted by this pass.\n\n"
        "- `window_start` defaults to now.\n"
        "- `window_end` defaults to `window_start` plus the configured lookahead.\n"
        "- `window_end` must be after `window_start`, otherwise 400."
    ),
    responses={
        400: {"description": "window_end is not after window_start."},
        401: {"description": "Missing or invalid internal API key (if configured)."},
    },
)
async def trigger_reconcile(
    window_start: datetime | None = Query(
        default=None,
        description="Start of the window (ISO-8601, UTC if no offset).",
        examples=["2025-11-17T00:00:00Z"],
    ),
    window_end: datetime | None = Query(
        default=None,
        description="End of the window (ISO-8601, UTC if no offset).",
        examples=["2025-11-17T23:59:59Z"],
    ),
    engine: ScheduleEngine = Depends(get_schedule_engine),
) -> RunSummary:
    try:
        return await engine.reconcile(window_start=window_start, window_end=window_end)
    except ScheduleWindowError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))


@router.get(
    "/engine",
    response_model=EngineState,
    summary="Schedule engine state",
    description="Timer state, running flag and the summary of the last pass.",
)
async def get_engine_state(
    engine: ScheduleEngine = Depends(get_schedule_engine),
) -> EngineState:
    return engine.state()


@router.post(
    "/engine/start",
    response_model=EngineState,
    summary="Start the periodic schedule engine",
    description=(
        "Starts the reconciliation timer. The first pass runs immediately. "
        "Calling this while the timer is already started changes nothing."
    ),
)
async def start_engine(
    payload: EngineStartRequest | None = Body(default=None),
    engine: ScheduleEngine = Depends(get_schedule_engine),
) -> EngineState:
    payload = payload or EngineStartRequest()
    return engine.start(
        interval_minutes=payload.interval_minutes,
        lookahead_minutes=payload.lookahead_minutes,
    )


@router.post(
    "/engine/stop",
    response_model=EngineState,
    summary="Stop the periodic schedule engine",
)
async def stop_engine(
    engine: ScheduleEngine = Depends(get_schedule_engine),
) -> EngineState:
    return engine.stop()
