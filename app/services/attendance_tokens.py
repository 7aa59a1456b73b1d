# app/services/attendance_tokens.py
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, SystemClock
from app.models.attendance_token import AttendanceToken
from app.models.class_session import ClassSession
from app.services.enrollment import load_session_roster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueResult:
    issued: int
    reason: str | None = None


def generate_token_string() -> str:
    return secrets.token_hex(32)


class AttendanceTokenService:
    """
    Issues one-time check-in tokens to every student enrolled in a session's
    subject.

    Tokens are valid from `lead_minutes` before the session starts until
    `grace_minutes` after it ends.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lead_minutes: int = 15,
        grace_minutes: int = 15,
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.lead = timedelta(minutes=lead_minutes)
        self.grace = timedelta(minutes=grace_minutes)
        self.clock = clock or SystemClock()

    def validity_window(self, session: ClassSession) -> tuple[datetime, datetime]:
        return session.start_time - self.lead, session.end_time + self.grace

    async def issue_for(self, session_id: int) -> IssueResult:
        async with self._session_factory() as db:
            session, subject, students, reason = await load_session_roster(db, session_id)
            if reason is not None:
                return IssueResult(issued=0, reason=reason)

            valid_from, expires_at = self.validity_window(session)
            now = self.clock.now()

            result = await db.execute(
                select(AttendanceToken).where(AttendanceToken.session_id == session.id)
            )
            existing_by_student = {token.student_id: token for token in result.scalars()}

            issued = 0
            for student in students:
                existing = existing_by_student.get(student.id)
                if existing is not None and not existing.consumed and now < existing.expires_at:
                    continue
                if existing is not None:
                    # Consumed or expired: replace it with a fresh token.
                    await db.delete(existing)
                    await db.flush()

                db.add(
                    AttendanceToken(
                        session_id=session.id,
                        student_id=student.id,
                        subject_id=subject.id,
                        meet_code=session.meet_code,
                        token=generate_token_string(),
                        session_date=session.session_date,
                        valid_from=valid_from,
                        expires_at=expires_at,
                        issued_automatically=True,
                    )
                )
                issued += 1

            await db.commit()

        logger.info(
            "Issued %d token(s) for session %s (subject %s)", issued, session_id, subject.id
        )
        return IssueResult(issued=issued)
