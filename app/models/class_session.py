# app/models/class_session.py
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from app.db.base import Base
from app.db.types import UTCDateTime


class ClassSession(Base):
    """
    One concrete, dated class meeting materialized from a subject's schedule.

    At most one row exists per (meet_code, session_date); the unique constraint
    below is what makes concurrent materialization safe.
    """

    __tablename__ = "class_sessions"

    id = Column(Integer, primary_key=True, index=True)

    session_uid = Column(String(64), nullable=False, unique=True)

    subject_id = Column(
        Integer,
        ForeignKey("subjects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    meet_code = Column(String(64), nullable=False, index=True)
    session_date = Column(Date, nullable=False, index=True)

    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    first_third_threshold = Column(UTCDateTime, nullable=True)

    status = Column(String(16), nullable=False, default="scheduled")

    created_at = Column(UTCDateTime, default=lambda: datetime.now(tz=timezone.utc))

    __table_args__ = (
        UniqueConstraint(
            "meet_code",
            "session_date",
            name="uq_class_sessions_meet_code_date",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ClassSession id={self.id} meet_code={self.meet_code} "
            f"date={self.session_date} status={self.status}>"
        )
