# app/models/attendance_token.py
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from app.db.base import Base
from app.db.types import UTCDateTime


class AttendanceToken(Base):
    """
    One-time credential allowing a student to check in to a specific session.
    """

    __tablename__ = "attendance_tokens"

    id = Column(Integer, primary_key=True, index=True)

    session_id = Column(
        Integer,
        ForeignKey("class_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True, index=True)

    meet_code = Column(String(64), nullable=True)
    token = Column(String(64), nullable=False, unique=True)
    session_date = Column(Date, nullable=False)

    valid_from = Column(UTCDateTime, nullable=True)
    expires_at = Column(UTCDateTime, nullable=False)

    consumed = Column(Boolean, nullable=False, default=False)
    consumed_at = Column(UTCDateTime, nullable=True)
    issued_automatically = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint(
            "session_id",
            "student_id",
            name="uq_attendance_tokens_session_student",
        ),
    )
