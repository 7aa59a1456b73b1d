# app/models/attendance_record.py
from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from app.db.base import Base


class AttendanceRecord(Base):
    """
    Per-student attendance row for a session. Baseline rows start as absent
    and are later updated by live monitoring.
    """

    __tablename__ = "attendance_records"

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
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True)

    student_name = Column(String(200), nullable=False)
    status = Column(String(16), nullable=False, default="absent")
    duration_seconds = Column(Integer, nullable=False, default=0)
    is_tardy = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint(
            "session_id",
            "student_id",
            name="uq_attendance_records_session_student",
        ),
    )
