# app/services/session_store.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.class_session import ClassSession


class SessionConflictError(RuntimeError):
    """
    Raised when an insert lost a race against another writer for the same
    (meet_code, session_date) key.
    """


@dataclass(frozen=True)
class SessionKey:
    meet_code: str
    session_date: date


class SessionStore(Protocol):
    """
    Persistence collaborator used by the materializer.
    """

    async def find_or_create(
        self, key: SessionKey, on_insert: dict[str, Any]
    ) -> tuple[ClassSession, bool]:
        ...

    async def find_by_key(self, key: SessionKey) -> ClassSession | None:
        ...


class SqlAlchemySessionStore:
    """
    Session store backed by the `class_sessions` table.

    Each call runs in its own AsyncSession/transaction so that concurrent
    callers only ever meet at the table's unique constraint.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _key_query(key: SessionKey):
        return select(ClassSession).where(
            ClassSession.meet_code == key.meet_code,
            ClassSession.session_date == key.session_date,
        )

    async def find_or_create(
        self, key: SessionKey, on_insert: dict[str, Any]
    ) -> tuple[ClassSession, bool]:
        """
        Return the session for `key`, inserting it with `on_insert` if absent.

        The boolean is True only when this call inserted the row. An existing
        row is returned untouched; `on_insert` never overwrites it.

        Raises
        ------
        SessionConflictError
            If the insert violated the unique constraint because another
            writer created the row in between.
        """
        async with self._session_factory() as db:
            result = await db.execute(self._key_query(key))
            existing = result.scalar_one_or_none()
            if existing is not None:
                return existing, False

            fields = {
                k: v
                for k, v in on_insert.items()
                if k not in ("meet_code", "session_date")
            }
            record = ClassSession(
                meet_code=key.meet_code,
                session_date=key.session_date,
                **fields,
            )
            db.add(record)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise SessionConflictError(
                    f"Session for meet_code={key.meet_code} date={key.session_date} "
                    "was created concurrently"
                ) from exc

            return record, True

    async def find_by_key(self, key: SessionKey) -> ClassSession | None:
        async with self._session_factory() as db:
            result = await db.execute(self._key_query(key))
            return result.scalar_one_or_none()
