# app/schemas/schedule.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel, Field

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def parse_time_of_day(value: str | time | None) -> time | None:
    """
    Parse an "HH:MM" (or "HH:MM:SS") string into a `time`.

    Returns None for missing or malformed values so that callers can treat the
    schedule as not schedulable instead of failing.
    """
    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)


@dataclass(frozen=True)
class RecurrenceRule:
    """
    Weekly schedule of a subject: weekday set, daily time window and optional
    inclusive date bounds.
    """

    weekdays: frozenset[str] = field(default_factory=frozenset)
    start_time: time | None = None
    end_time: time | None = None
    start_date: date | None = None
    end_date: date | None = None

    @classmethod
    def build(
        cls,
        weekdays,
        start_time: str | time | None,
        end_time: str | time | None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> "RecurrenceRule":
        names = frozenset(
            str(day).strip().lower() for day in (weekdays or []) if str(day).strip()
        )
        return cls(
            weekdays=names,
            start_time=parse_time_of_day(start_time),
            end_time=parse_time_of_day(end_time),
            start_date=start_date,
            end_date=end_date,
        )

    @property
    def is_schedulable(self) -> bool:
        return bool(self.weekdays) and self.start_time is not None and self.end_time is not None


@dataclass(frozen=True)
class CandidateOccurrence:
    """
    A not-yet-persisted session occurrence produced by recurrence expansion.
    """

    subject_id: int | None
    session_date: date
    start_time: datetime
    end_time: datetime

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def first_third_threshold(self) -> datetime:
        """Start plus one third of the duration; gates late-join handling."""
        return self.start_time + self.duration / 3


class RunSummary(BaseModel):
    """
    Result of one reconciliation pass.
    """

    window_start: datetime = Field(..., description="Start of the reconciled window (UTC).")
    window_end: datetime = Field(..., description="End of the reconciled window (UTC).")
    subjects_processed: int = Field(
        0,
        description="Subjects whose meeting link resolved and whose schedule was expanded.",
        examples=[12],
    )
    subjects_skipped: int = Field(
        0,
        description=(
            "Subjects excluded because their meeting link could not be resolved "
            "or their meet code was already claimed by another subject in the pass."
        ),
        examples=[1],
    )
    sessions_ensured: int = Field(
        0,
        description="Occurrences that now have a persisted session (new or existing).",
        examples=[4],
    )
    sessions_created: int = Field(
        0,
        description="Occurrences for which this pass inserted the session.",
        examples=[2],
    )
    sessions_failed: int = Field(
        0,
        description="Occurrences that could not be persisted in this pass.",
        examples=[0],
    )
    side_effect_failures: int = Field(
        0,
        description="Token issuance or baseline attendance calls that failed.",
        examples=[0],
    )
    timestamp: datetime = Field(..., description="When the pass finished (UTC).")


class EngineState(BaseModel):
    """
    Observable state of the schedule engine.
    """

    scheduler_active: bool = Field(..., description="True while the periodic timer is started.")
    is_running: bool = Field(..., description="True while a timer-driven pass is in progress.")
    interval_minutes: int = Field(..., description="Minutes between two passes.", examples=[5])
    lookahead_minutes: int = Field(
        ..., description="Length of the window each pass materializes.", examples=[60]
    )
    last_run_summary: RunSummary | None = Field(
        None, description="Summary of the most recent completed pass, if any."
    )


class EngineStartRequest(BaseModel):
    interval_minutes: int | None = Field(None, ge=1, description="Override the timer period.")
    lookahead_minutes: int | None = Field(None, ge=1, description="Override the lookahead window.")


class ScheduledOccurrenceRead(BaseModel):
    """
    One upcoming occurrence as shown in the calendar preview.
    """

    subject_id: int = Field(..., examples=[3])
    subject_name: str = Field(..., examples=["Data Structures"])
    meet_code: str = Field(..., examples=["abc-defg-hij"])
    session_date: date = Field(..., examples=["2025-11-17"])
    start_time: datetime
    end_time: datetime
    first_third_threshold: datetime


class SchedulePreview(BaseModel):
    """
    Read-only view of upcoming occurrences across all schedulable subjects.
    """

    window_start: datetime
    window_end: datetime
    total_count: int = Field(
        ..., description="Number of occurrences in the window before applying the limit."
    )
    occurrences: list[ScheduledOccurrenceRead]
