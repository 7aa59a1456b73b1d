# app/api/routes/schedule.py
from datetime import datetime
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.api.dependencies.engine import get_schedule_engine
from app.schemas.schedule import SchedulePreview
from app.services.schedule_engine import ScheduleEngine
from app.services.schedule_preview import preview_occurrences

router = APIRouter(prefix="/schedule", tags=["Schedule"])


@router.get(
    "/preview",
    response_model=SchedulePreview,
    summary="Preview upcoming class sessions",
    description=(
        "Lists the occurrences the schedule engine would materialize in a "
        "window, sorted by start time, without persisting anything.\n\n"
        "- Without `window_end`, the window spans `lookahead_minutes` "
        "(default from settings, 180) from `window_start` (default now).\n"
        "- `total_count` is the number of occurrences before `limit` is applied."
    ),
    responses={400: {"description": "window_end is not after window_start."}},
)
async def preview_schedule(
    request: Request,
    window_start: datetime | None = Query(default=None, description="Start of the window."),
    window_end: datetime | None = Query(default=None, description="End of the window."),
    lookahead_minutes: int | None = Query(
        default=None, ge=1, description="Window length when window_end is omitted."
    ),
    limit: int | None = Query(default=None, ge=1, description="Maximum occurrences returned."),
    engine: ScheduleEngine = Depends(get_schedule_engine),
) -> SchedulePreview:
    settings = request.app.state.settings
    try:
        return await preview_occurrences(
            engine.subjects,
            window_start=window_start,
            window_end=window_end,
            limit=limit or settings.SCHEDULE_PREVIEW_LIMIT,
            lookahead_minutes=lookahead_minutes or settings.SCHEDULE_PREVIEW_LOOKAHEAD_MINUTES,
            resolve_code=engine.resolve_code,
            clock=engine.clock,
        )
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
