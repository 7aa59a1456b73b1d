# app/schemas/subject.py

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.schemas.schedule import WEEKDAY_NAMES, parse_time_of_day


# --------------------------------------------------------------------------
# Weekly schedule
# --------------------------------------------------------------------------

class SubjectSchedule(BaseModel):
    """
    Weekly recurrence rule of a subject as accepted and returned by the API.
    """

    weekdays: list[str] = Field(
        ...,
        description="Weekday names the class meets on (case-insensitive).",
        examples=[["Monday", "Wednesday"]],
    )
    start_time: str = Field(..., description="Daily start time (HH:MM, UTC).", examples=["08:00"])
    end_time: str = Field(..., description="Daily end time (HH:MM, UTC).", examples=["09:00"])
    start_date: date | None = Field(
        None, description="First day (inclusive) the schedule applies to."
    )
    end_date: date | None = Field(
        None, description="Last day (inclusive) the schedule applies to."
    )

    @field_validator("weekdays")
    @classmethod
    def _normalize_weekdays(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for raw in value:
            day = raw.strip().lower()
            if day not in WEEKDAY_NAMES:
                raise ValueError(f"Unknown weekday '{raw}'.")
            if day not in normalized:
                normalized.append(day)
        if not normalized:
            raise ValueError("At least one weekday is required.")
        return [day.capitalize() for day in normalized]

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_time(cls, value: str) -> str:
        parsed = parse_time_of_day(value)
        if parsed is None:
            raise ValueError(f"Invalid time of day '{value}', expected HH:MM.")
        return parsed.strftime("%H:%M")

    @model_validator(mode="after")
    def _check_ranges(self) -> "SubjectSchedule":
        if parse_time_of_day(self.end_time) <= parse_time_of_day(self.start_time):
            raise ValueError("end_time must be after start_time.")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date.")
        return self


# --------------------------------------------------------------------------
# Base schema shared by create/read
# --------------------------------------------------------------------------

class SubjectBase(BaseModel):
    """
    Shared fields used by SubjectCreate and SubjectRead.
    """
    name: str = Field(
        ...,
        description="Human-readable subject name.",
        examples=["Data Structures"],
    )

    subject_code: str = Field(
        ...,
        description="Short unique code of the subject.",
        examples=["CS201"],
    )

    meeting_link: str | None = Field(
        None,
        description="Online meeting link (full URL or bare meet code).",
        examples=["https://meet.google.com/abc-defg-hij"],
    )

    sections: list[str] = Field(
        default_factory=list,
        description="Sections whose students attend this subject.",
        examples=[["A", "B"]],
    )

    schedule: SubjectSchedule | None = Field(
        None,
        description="Weekly schedule; subjects without one are never materialized.",
    )

    is_active: bool = Field(
        default=True,
        description="Whether the subject is active and included in session materialization.",
    )


class SubjectCreate(SubjectBase):
    """
    Schema for creating a new subject.
    """
    pass


class SubjectUpdate(BaseModel):
    """
    Schema for updating a subject.
    All fields are optional; only provided fields are updated.
    """
    name: str | None = Field(default=None)
    subject_code: str | None = Field(default=None)
    meeting_link: str | None = Field(default=None)
    sections: list[str] | None = Field(default=None)
    schedule: SubjectSchedule | None = Field(default=None)
    is_active: bool | None = Field(default=None)


class SubjectRead(SubjectBase):
    """
    Response schema for reading a subject.
    Includes the DB-generated fields.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Auto-incremented subject ID.", examples=[12])

    created_at: datetime | None = Field(
        None,
        description="Timestamp when the subject record was created (if available).",
    )

    @model_validator(mode="before")
    @classmethod
    def _schedule_from_columns(cls, data):
        # ORM rows keep the schedule in flat columns.
        if isinstance(data, dict) or not hasattr(data, "schedule_weekdays"):
            return data
        schedule = None
        if data.schedule_weekdays and data.schedule_start_time and data.schedule_end_time:
            schedule = {
                "weekdays": list(data.schedule_weekdays),
                "start_time": data.schedule_start_time,
                "end_time": data.schedule_end_time,
                "start_date": data.schedule_start_date,
                "end_date": data.schedule_end_date,
            }
        return {
            "id": data.id,
            "name": data.name,
            "subject_code": data.subject_code,
            "meeting_link": data.meeting_link,
            "sections": list(data.sections or []),
            "schedule": schedule,
            "is_active": data.is_active,
            "created_at": data.created_at,
        }
