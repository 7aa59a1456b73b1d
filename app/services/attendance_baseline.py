# app/services/attendance_baseline.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.attendance_record import AttendanceRecord
from app.services.enrollment import load_session_roster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BaselineResult:
    created: int
    reason: str | None = None


class AttendanceBaselineService:
    """
    Pre-populates one `absent` attendance row per enrolled student so that
    reports have a row to update once real attendance data arrives.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def ensure_for(self, session_id: int) -> BaselineResult:
        async with self._session_factory() as db:
            session, subject, students, reason = await load_session_roster(db, session_id)
            if reason is not None:
                return BaselineResult(created=0, reason=reason)

            result = await db.execute(
                select(AttendanceRecord.student_id).where(
                    AttendanceRecord.session_id == session.id
                )
            )
            already_present = set(result.scalars().all())

            created = 0
            for student in students:
                if student.id in already_present:
                    continue
                db.add(
                    AttendanceRecord(
                        session_id=session.id,
                        student_id=student.id,
                        subject_id=subject.id,
                        student_name=student.display_name,
                        status="absent",
                        duration_seconds=0,
                        is_tardy=False,
                    )
                )
                created += 1

            await db.commit()

        if created:
            logger.info("Baseline attendance ensured for session %s (created %d)", session_id, created)
        return BaselineResult(created=created)
