# app/schemas/class_session.py
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SessionStatus(str, Enum):
    """
    Lifecycle status of a materialized class session.
    """

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ClassSessionRead(BaseModel):
    """
    Public representation of a ClassSession.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., examples=[1], description="Database identifier of the session.")
    session_uid: str = Field(
        ...,
        description="Opaque identifier used to reference the session externally.",
        examples=["sched_5f0c6b0e8f3d4c4fa1d6f1c3b2a9e7d1"],
    )
    subject_id: int | None = Field(None, examples=[3])
    meet_code: str = Field(..., examples=["abc-defg-hij"])
    session_date: date = Field(..., examples=["2025-11-17"])
    start_time: datetime
    end_time: datetime
    first_third_threshold: datetime | None = None
    status: SessionStatus = Field(SessionStatus.SCHEDULED)
