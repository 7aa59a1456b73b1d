# app/services/materializer.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from app.models.class_session import ClassSession
from app.services.session_store import SessionConflictError, SessionKey, SessionStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY_MS = 10


class InvalidSessionKeyError(ValueError):
    """
    Raised for caller errors: empty meet code or unparseable session date.
    """


class SessionStoreError(RuntimeError):
    """
    Raised when a session can neither be created nor read back after the
    conflict retries are exhausted.
    """


@dataclass(frozen=True)
class MaterializeResult:
    session: ClassSession
    created: bool
    attempts: int


def sanitize_meet_code(meet_code: Any) -> str:
    if not isinstance(meet_code, str) or not meet_code.strip():
        raise InvalidSessionKeyError("meet_code is required to materialize a session")
    return meet_code.strip()


def normalize_session_date(value: Any) -> date:
    """
    Truncate a date, datetime or ISO-8601 string to its UTC calendar day.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        try:
            return normalize_session_date(datetime.fromisoformat(text))
        except ValueError as exc:
            raise InvalidSessionKeyError(f"Invalid session date received: {value!r}") from exc
    raise InvalidSessionKeyError(f"Invalid session date received: {value!r}")


class SessionMaterializer:
    """
    Persists one occurrence per (meet_code, session_date) exactly once.

    The store's find-or-create is retried on uniqueness conflicts; the retry
    resolves to reading the row the winning writer inserted.
    `created` is True only when this call's own insert succeeded.
    """

    def __init__(
        self,
        store: SessionStore,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
    ) -> None:
        self.store = store
        self.max_retries = max(max_retries, 0)
        self.retry_delay_ms = max(retry_delay_ms, 0)

    async def materialize(
        self,
        meet_code: str,
        day: date | datetime | str,
        insert_fields: dict[str, Any] | None = None,
    ) -> MaterializeResult:
        """
        Ensure a session exists for (meet_code, day).

        Raises
        ------
        InvalidSessionKeyError
            Empty meet code or unparseable date; nothing is retried.
        SessionStoreError
            Every attempt conflicted and the row still cannot be read back.
        """
        key = SessionKey(
            meet_code=sanitize_meet_code(meet_code),
            session_date=normalize_session_date(day),
        )
        insert_fields = dict(insert_fields or {})

        for attempt in range(1, self.max_retries + 2):
            try:
                session, created = await self.store.find_or_create(key, insert_fields)
            except SessionConflictError:
                logger.debug(
                    "Conflict materializing session %s/%s (attempt %d)",
                    key.meet_code,
                    key.session_date,
                    attempt,
                )
                if attempt <= self.max_retries:
                    await asyncio.sleep(self.retry_delay_ms * attempt / 1000)
                continue

            return MaterializeResult(session=session, created=created, attempts=attempt)

        existing = await self.store.find_by_key(key)
        if existing is not None:
            return MaterializeResult(
                session=existing,
                created=False,
                attempts=self.max_retries + 1,
            )

        raise SessionStoreError(
            f"Failed to materialize session {key.meet_code}/{key.session_date} "
            f"after {self.max_retries + 1} attempts"
        )
