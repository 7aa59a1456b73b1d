# app/services/subject_repository.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.subject import Subject
from app.schemas.schedule import RecurrenceRule


@dataclass(frozen=True)
class SchedulableSubject:
    id: int
    name: str
    meeting_link: str | None
    rule: RecurrenceRule


class SubjectSource(Protocol):
    async def list_schedulable(self) -> list[SchedulableSubject]:
        ...


class SubjectRepository:
    """
    Read-only access to subjects that can be materialized: active, with at
    least one weekday and both daily times set.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_schedulable(self) -> list[SchedulableSubject]:
        async with self._session_factory() as db:
            stmt = (
                select(Subject)
                .where(
                    Subject.is_active.is_(True),
                    Subject.schedule_start_time.is_not(None),
                    Subject.schedule_end_time.is_not(None),
                )
                .order_by(Subject.id.asc())
            )
            result = await db.execute(stmt)
            subjects = list(result.scalars().all())

        schedulable: list[SchedulableSubject] = []
        for subject in subjects:
            rule = RecurrenceRule.build(
                subject.schedule_weekdays,
                subject.schedule_start_time,
                subject.schedule_end_time,
                subject.schedule_start_date,
                subject.schedule_end_date,
            )
            # JSON weekday lists can't be filtered portably in SQL.
            if not rule.is_schedulable:
                continue
            schedulable.append(
                SchedulableSubject(
                    id=subject.id,
                    name=subject.name,
                    meeting_link=subject.meeting_link,
                    rule=rule,
                )
            )
        return schedulable
