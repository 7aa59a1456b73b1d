# app/core/clock.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """
    Time source used wherever a default window is derived from "now".
    """

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Return `value` as an aware UTC datetime. Naive values are taken as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
