# app/services/session_ids.py
from __future__ import annotations

import uuid
from typing import Protocol


class SessionIdGenerator(Protocol):
    """
    Source of opaque external identifiers for newly materialized sessions.
    The only contract is uniqueness.
    """

    def new_id(self) -> str:
        ...


class UuidSessionIdGenerator:
    def __init__(self, prefix: str = "sched") -> None:
        self.prefix = prefix

    def new_id(self) -> str:
        return f"{self.prefix}_{uuid.uuid4().hex}"
