# app/services/recurrence.py
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from app.core.clock import ensure_utc
from app.schemas.schedule import WEEKDAY_NAMES, CandidateOccurrence, RecurrenceRule


def _within_date_bounds(day: date, rule: RecurrenceRule) -> bool:
    if rule.start_date is not None and day < rule.start_date:
        return False
    if rule.end_date is not None and day > rule.end_date:
        return False
    return True


def _iter_days(first: date, last: date):
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)


def expand(
    rule: RecurrenceRule | None,
    window_start: datetime,
    window_end: datetime,
    subject_id: int | None = None,
) -> list[CandidateOccurrence]:
    """
    Expand a weekly recurrence rule into the occurrences overlapping a window.

    Rules
    -----
    - Non-schedulable rules (no weekdays or a missing daily time) yield nothing.
    - Every UTC calendar day between the window's first and last day is
      considered; a day is kept when its weekday is in the rule, it lies within
      the rule's inclusive date bounds, the daily end is after the daily start
      and the resulting interval intersects [window_start, window_end].
    - Daily times are taken as UTC.

    Occurrences come back in ascending calendar-day order.
    """
    if rule is None or not rule.is_schedulable:
        return []

    window_start = ensure_utc(window_start)
    window_end = ensure_utc(window_end)
    if window_end < window_start:
        return []

    occurrences: list[CandidateOccurrence] = []

    for day in _iter_days(window_start.date(), window_end.date()):
        if WEEKDAY_NAMES[day.weekday()] not in rule.weekdays:
            continue
        if not _within_date_bounds(day, rule):
            continue

        start = datetime.combine(day, rule.start_time, tzinfo=timezone.utc)
        end = datetime.combine(day, rule.end_time, tzinfo=timezone.utc)
        if end <= start:
            continue

        # Overlap test runs against the caller's full-precision window.
        if end < window_start or start > window_end:
            continue

        occurrences.append(
            CandidateOccurrence(
                subject_id=subject_id,
                session_date=day,
                start_time=start,
                end_time=end,
            )
        )

    return occurrences
