# app/services/side_effects.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from app.services.materializer import MaterializeResult

logger = logging.getLogger(__name__)


class CredentialIssuer(Protocol):
    async def issue_for(self, session_id: int) -> Any:
        ...


class BaselineInitializer(Protocol):
    async def ensure_for(self, session_id: int) -> Any:
        ...


@dataclass
class SideEffectOutcome:
    triggered: bool = False
    issuance_failed: bool = False
    baseline_failed: bool = False

    @property
    def failures(self) -> int:
        return int(self.issuance_failed) + int(self.baseline_failed)


class SideEffectOrchestrator:
    """
    Runs the creation-only actions for a freshly materialized session.

    Nothing happens for sessions that already existed. Both actions are
    best-effort: a failure is logged, never rolls back the session and never
    prevents the other action from running.
    """

    def __init__(self, issuer: CredentialIssuer, baseline: BaselineInitializer) -> None:
        self.issuer = issuer
        self.baseline = baseline

    async def handle(self, result: MaterializeResult) -> SideEffectOutcome:
        outcome = SideEffectOutcome()
        if not result.created:
            return outcome

        outcome.triggered = True
        session_id = result.session.id

        try:
            await self.issuer.issue_for(session_id)
        except Exception:
            outcome.issuance_failed = True
            logger.exception("Token issuance failed for session %s", session_id)

        try:
            await self.baseline.ensure_for(session_id)
        except Exception:
            outcome.baseline_failed = True
            logger.exception("Baseline attendance failed for session %s", session_id)

        return outcome
