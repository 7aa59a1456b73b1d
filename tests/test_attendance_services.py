# tests/test_attendance_services.py
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.models.attendance_token import AttendanceToken
from app.models.class_session import ClassSession
from app.models.student import Student
from app.models.subject import Subject
from app.services.attendance_baseline import AttendanceBaselineService
from app.services.attendance_tokens import AttendanceTokenService
from tests.fakes import FixedClock

UTC = timezone.utc
START = datetime(2025, 11, 17, 8, 0, tzinfo=UTC)


async def _session_with_roster(session_factory, sections=("A",), students=("A", "A")) -> int:
    async with session_factory() as db:
        subject = Subject(
            name="Networks",
            subject_code="NET-1",
            meeting_link="abc-defg-hij",
            sections=list(sections),
            schedule_weekdays=["Monday"],
            schedule_start_time="08:00",
            schedule_end_time="09:00",
        )
        db.add(subject)
        for index, section in enumerate(students):
            db.add(Student(first_name=f"S{index}", email=f"s{index}@example.com", section=section))
        await db.flush()

        session = ClassSession(
            session_uid="sched_test",
            subject_id=subject.id,
            meet_code="abc-defg-hij",
            session_date=date(2025, 11, 17),
            start_time=START,
            end_time=START + timedelta(hours=1),
            status="scheduled",
        )
        db.add(session)
        await db.commit()
        return session.id


@pytest.mark.asyncio
async def test_issue_reports_missing_session(session_factory):
    service = AttendanceTokenService(session_factory)
    result = await service.issue_for(12345)
    assert result.issued == 0
    assert result.reason == "missing_session_or_subject"


@pytest.mark.asyncio
async def test_issue_reports_subject_without_sections(session_factory):
    session_id = await _session_with_roster(session_factory, sections=())
    result = await AttendanceTokenService(session_factory).issue_for(session_id)
    assert result.reason == "subject_has_no_sections"


@pytest.mark.asyncio
async def test_issue_reports_no_students(session_factory):
    session_id = await _session_with_roster(session_factory, students=("B",))
    result = await AttendanceTokenService(session_factory).issue_for(session_id)
    assert result.reason == "no_students_for_subject"


@pytest.mark.asyncio
async def test_issue_reuses_valid_tokens_and_replaces_consumed(session_factory):
    session_id = await _session_with_roster(session_factory)
    service = AttendanceTokenService(session_factory, clock=FixedClock(START - timedelta(hours=1)))

    first = await service.issue_for(session_id)
    assert first.issued == 2

    async with session_factory() as db:
        tokens = (
            await db.execute(select(AttendanceToken).order_by(AttendanceToken.student_id))
        ).scalars().all()
        original = {t.student_id: t.token for t in tokens}
        tokens[0].consumed = True
        await db.commit()

    second = await service.issue_for(session_id)
    assert second.issued == 1

    async with session_factory() as db:
        tokens = (
            await db.execute(select(AttendanceToken).order_by(AttendanceToken.student_id))
        ).scalars().all()

    assert len(tokens) == 2
    replaced, kept = tokens
    assert replaced.token != original[replaced.student_id]
    assert replaced.consumed is False
    assert kept.token == original[kept.student_id]


@pytest.mark.asyncio
async def test_baseline_creates_absent_rows_once(session_factory):
    session_id = await _session_with_roster(session_factory)
    service = AttendanceBaselineService(session_factory)

    first = await service.ensure_for(session_id)
    second = await service.ensure_for(session_id)

    assert first.created == 2
    assert second.created == 0
    assert second.reason is None


@pytest.mark.asyncio
async def test_baseline_reports_missing_session(session_factory):
    result = await AttendanceBaselineService(session_factory).ensure_for(999)
    assert result.created == 0
    assert result.reason == "missing_session_or_subject"
