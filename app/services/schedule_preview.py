# app/services/schedule_preview.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from app.core.clock import Clock, SystemClock, ensure_utc
from app.schemas.schedule import ScheduledOccurrenceRead, SchedulePreview
from app.services.meeting_link import resolve_meet_code
from app.services.recurrence import expand
from app.services.subject_repository import SubjectSource

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LOOKAHEAD_MINUTES = 180
MAX_PREVIEW_OCCURRENCES = 200


async def preview_occurrences(
    subjects: SubjectSource,
    window_start: datetime | None = None,
    window_end: datetime | None = None,
    limit: int = MAX_PREVIEW_OCCURRENCES,
    lookahead_minutes: int = DEFAULT_PREVIEW_LOOKAHEAD_MINUTES,
    resolve_code: Callable[[str | None], str | None] = resolve_meet_code,
    clock: Clock | None = None,
) -> SchedulePreview:
    """
    List upcoming occurrences across all schedulable subjects without
    persisting anything.

    Occurrences are sorted by start time and truncated to `limit`;
    `total_count` reports the number found before truncation. Subjects whose
    meeting link does not resolve to a meet code are left out.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")

    clock = clock or SystemClock()
    start = ensure_utc(window_start) if window_start else clock.now()
    end = (
        ensure_utc(window_end)
        if window_end
        else start + timedelta(minutes=lookahead_minutes)
    )
    if end <= start:
        raise ValueError("window_end must be after window_start")

    items: list[ScheduledOccurrenceRead] = []
    for subject in await subjects.list_schedulable():
        try:
            meet_code = resolve_code(subject.meeting_link or "")
        except Exception:
            logger.exception("Could not resolve meeting link of subject %s", subject.id)
            continue
        if not meet_code:
            continue

        for occurrence in expand(subject.rule, start, end, subject_id=subject.id):
            items.append(
                ScheduledOccurrenceRead(
                    subject_id=subject.id,
                    subject_name=subject.name,
                    meet_code=meet_code,
                    session_date=occurrence.session_date,
                    start_time=occurrence.start_time,
                    end_time=occurrence.end_time,
                    first_third_threshold=occurrence.first_third_threshold,
                )
            )

    items.sort(key=lambda item: item.start_time)

    return SchedulePreview(
        window_start=start,
        window_end=end,
        total_count=len(items),
        occurrences=items[:limit],
    )
