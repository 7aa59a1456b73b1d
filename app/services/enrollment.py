# app/services/enrollment.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.class_session import ClassSession
from app.models.student import Student
from app.models.subject import Subject


async def load_session_roster(
    db: AsyncSession,
    session_id: int,
) -> tuple[ClassSession | None, Subject | None, list[Student], str | None]:
    """
    Load a session, its subject and the students enrolled through the
    subject's sections.

    The last element is a reason code when there is nobody to process:
    `missing_session_or_subject`, `subject_has_no_sections` or
    `no_students_for_subject`.
    """
    session = await db.get(ClassSession, session_id)
    if session is None or session.subject_id is None:
        return session, None, [], "missing_session_or_subject"

    subject = await db.get(Subject, session.subject_id)
    if subject is None:
        return session, None, [], "missing_session_or_subject"

    sections = [section for section in (subject.sections or []) if section]
    if not sections:
        return session, subject, [], "subject_has_no_sections"

    result = await db.execute(
        select(Student).where(Student.section.in_(sections)).order_by(Student.id.asc())
    )
    students = list(result.scalars().all())
    if not students:
        return session, subject, [], "no_students_for_subject"

    return session, subject, students, None
