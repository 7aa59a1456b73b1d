# app/models/subject.py
from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String, func

from app.db.base import Base


class Subject(Base):
    """
    A class subject with its weekly recurrence schedule and meeting link.
    """

    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(200), nullable=False)
    subject_code = Column(String(64), nullable=False, unique=True, index=True)
    meeting_link = Column(String(500), nullable=True)

    # Section names whose students attend this subject
    sections = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)

    schedule_weekdays = Column(JSON, nullable=False, default=list)
    schedule_start_time = Column(String(8), nullable=True)
    schedule_end_time = Column(String(8), nullable=True)
    schedule_start_date = Column(Date, nullable=True)
    schedule_end_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Subject id={self.id} code={self.subject_code} active={self.is_active}>"
