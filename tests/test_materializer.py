# tests/test_materializer.py
import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from app.services.materializer import (
    InvalidSessionKeyError,
    SessionMaterializer,
    SessionStoreError,
    normalize_session_date,
)
from app.services.session_store import SessionKey, SqlAlchemySessionStore
from tests.fakes import AlwaysConflictingStore, InMemorySessionStore

UTC = timezone.utc


def _insert_fields(uid: str = "sched_1", subject_id: int = 1) -> dict:
    start = datetime(2025, 11, 17, 8, 0, tzinfo=UTC)
    end = start + timedelta(hours=1)
    return {
        "subject_id": subject_id,
        "start_time": start,
        "end_time": end,
        "first_third_threshold": start + timedelta(minutes=20),
        "status": "scheduled",
        "session_uid": uid,
    }


def test_normalize_session_date_truncates_to_utc_day():
    assert normalize_session_date(date(2025, 11, 17)) == date(2025, 11, 17)
    assert normalize_session_date(datetime(2025, 11, 17, 23, 59, tzinfo=UTC)) == date(2025, 11, 17)
    # 01:00 at UTC+02:00 is still the previous UTC day
    plus_two = timezone(timedelta(hours=2))
    assert normalize_session_date(datetime(2025, 11, 18, 1, 0, tzinfo=plus_two)) == date(2025, 11, 17)
    assert normalize_session_date("2025-11-17T10:00:00+00:00") == date(2025, 11, 17)
    assert normalize_session_date("2025-11-17T23:30:00Z") == date(2025, 11, 17)


@pytest.mark.asyncio
async def test_rejects_empty_meet_code_without_touching_store():
    store = InMemorySessionStore()
    materializer = SessionMaterializer(store)

    with pytest.raises(InvalidSessionKeyError):
        await materializer.materialize("   ", date(2025, 11, 17), _insert_fields())
    with pytest.raises(InvalidSessionKeyError):
        await materializer.materialize(None, date(2025, 11, 17), _insert_fields())

    assert store.find_or_create_calls == 0


@pytest.mark.asyncio
async def test_rejects_unparseable_date():
    store = InMemorySessionStore()
    materializer = SessionMaterializer(store)

    with pytest.raises(InvalidSessionKeyError):
        await materializer.materialize("abc-defg-hij", "next tuesday", _insert_fields())
    assert store.find_or_create_calls == 0


@pytest.mark.asyncio
async def test_second_call_returns_existing_without_overwriting():
    store = InMemorySessionStore()
    materializer = SessionMaterializer(store)

    first = await materializer.materialize(" abc-defg-hij ", date(2025, 11, 17), _insert_fields("sched_1"))
    second = await materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields("sched_2", subject_id=99))

    assert first.created is True
    assert first.attempts == 1
    assert second.created is False
    assert second.session is first.session
    assert second.session.session_uid == "sched_1"
    assert second.session.subject_id == 1


@pytest.mark.asyncio
async def test_concurrent_calls_create_exactly_once():
    store = InMemorySessionStore()
    materializer = SessionMaterializer(store, max_retries=2, retry_delay_ms=1)

    results = await asyncio.gather(
        *[
            materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields(f"sched_{i}"))
            for i in range(5)
        ]
    )

    assert sum(1 for r in results if r.created) == 1
    assert len({id(r.session) for r in results}) == 1
    assert len(store.rows) == 1
    # Losers went through at least one conflict retry.
    assert any(r.attempts > 1 for r in results)


@pytest.mark.asyncio
async def test_exhausted_retries_fall_back_to_read():
    existing = object()
    store = AlwaysConflictingStore(readable_row=existing)
    materializer = SessionMaterializer(store, max_retries=2, retry_delay_ms=0)

    result = await materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields())

    assert result.created is False
    assert result.session is existing
    assert result.attempts == 3
    assert store.find_or_create_calls == 3


@pytest.mark.asyncio
async def test_exhausted_retries_without_row_is_store_fault():
    store = AlwaysConflictingStore(readable_row=None)
    materializer = SessionMaterializer(store, max_retries=2, retry_delay_ms=0)

    with pytest.raises(SessionStoreError):
        await materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields())
    assert store.find_or_create_calls == 3


@pytest.mark.asyncio
async def test_conflict_backoff_grows_linearly_and_stops_after_last_attempt(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("app.services.materializer.asyncio.sleep", fake_sleep)
    store = AlwaysConflictingStore(readable_row=None)
    materializer = SessionMaterializer(store, max_retries=2, retry_delay_ms=10)

    with pytest.raises(SessionStoreError):
        await materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields())

    assert delays == [0.01, 0.02]
    assert store.find_or_create_calls == 3


@pytest.mark.asyncio
async def test_sqlalchemy_store_is_idempotent(session_factory):
    materializer = SessionMaterializer(SqlAlchemySessionStore(session_factory))

    first = await materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields("sched_a"))
    second = await materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields("sched_b"))

    assert first.created is True
    assert second.created is False
    assert second.session.id == first.session.id
    assert second.session.session_uid == "sched_a"
    assert second.session.start_time == datetime(2025, 11, 17, 8, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_sqlalchemy_store_concurrent_materialize(session_factory):
    store = SqlAlchemySessionStore(session_factory)
    materializer = SessionMaterializer(store, retry_delay_ms=1)

    results = await asyncio.gather(
        *[
            materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields(f"sched_{i}"))
            for i in range(5)
        ]
    )

    assert sum(1 for r in results if r.created) == 1
    assert len({r.session.id for r in results}) == 1
    assert len({r.session.session_uid for r in results}) == 1

    stored = await store.find_by_key(SessionKey("abc-defg-hij", date(2025, 11, 17)))
    assert stored.id == results[0].session.id


@pytest.mark.asyncio
async def test_same_code_on_different_days_are_distinct(session_factory):
    materializer = SessionMaterializer(SqlAlchemySessionStore(session_factory))

    monday = await materializer.materialize("abc-defg-hij", date(2025, 11, 17), _insert_fields("sched_a"))
    tuesday = await materializer.materialize("abc-defg-hij", date(2025, 11, 18), _insert_fields("sched_b"))

    assert monday.created is True
    assert tuesday.created is True
    assert monday.session.id != tuesday.session.id
