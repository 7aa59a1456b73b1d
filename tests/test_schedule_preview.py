# tests/test_schedule_preview.py
from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.schedule import RecurrenceRule
from app.services.schedule_preview import preview_occurrences
from tests.fakes import FakeSubjects, FixedClock, schedulable_subject

UTC = timezone.utc
WINDOW_START = datetime(2025, 11, 17, 0, 0, tzinfo=UTC)
WINDOW_END = datetime(2025, 11, 26, 23, 59, tzinfo=UTC)


def _subjects() -> FakeSubjects:
    return FakeSubjects(
        [
            schedulable_subject(
                1,
                RecurrenceRule.build(["Monday", "Wednesday"], "10:00", "11:00"),
                meeting_link="https://meet.google.com/aaa-bbbb-ccc",
                name="Algorithms",
            ),
            schedulable_subject(
                2,
                RecurrenceRule.build(["Monday"], "08:00", "09:30"),
                meeting_link="ddd-eeee-fff",
                name="Databases",
            ),
            schedulable_subject(
                3,
                RecurrenceRule.build(["Monday"], "07:00", "08:00"),
                meeting_link="https://example.com/no-code-here",
                name="Unlinked",
            ),
        ]
    )


@pytest.mark.asyncio
async def test_preview_sorts_across_subjects_and_reports_total():
    preview = await preview_occurrences(_subjects(), WINDOW_START, WINDOW_END)

    assert preview.total_count == 6
    assert len(preview.occurrences) == 6
    starts = [item.start_time for item in preview.occurrences]
    assert starts == sorted(starts)

    first = preview.occurrences[0]
    assert first.subject_name == "Databases"
    assert first.meet_code == "ddd-eeee-fff"
    assert first.first_third_threshold == first.start_time + timedelta(minutes=30)
    assert all(item.subject_id != 3 for item in preview.occurrences)


@pytest.mark.asyncio
async def test_preview_truncates_to_limit():
    preview = await preview_occurrences(_subjects(), WINDOW_START, WINDOW_END, limit=2)

    assert preview.total_count == 6
    assert len(preview.occurrences) == 2
    assert [item.session_date.day for item in preview.occurrences] == [17, 17]


@pytest.mark.asyncio
async def test_preview_default_window_is_lookahead_from_clock():
    clock = FixedClock(datetime(2025, 11, 17, 7, 0, tzinfo=UTC))

    preview = await preview_occurrences(_subjects(), clock=clock)

    assert preview.window_start == clock.now()
    assert preview.window_end == clock.now() + timedelta(minutes=180)
    assert [item.subject_id for item in preview.occurrences] == [2, 1]


@pytest.mark.asyncio
async def test_preview_rejects_bad_arguments():
    with pytest.raises(ValueError):
        await preview_occurrences(_subjects(), WINDOW_END, WINDOW_START)
    with pytest.raises(ValueError):
        await preview_occurrences(_subjects(), WINDOW_START, WINDOW_END, limit=0)
