# app/services/schedule_engine.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, SystemClock, ensure_utc
from app.core.config import Settings
from app.schemas.schedule import EngineState, RunSummary
from app.services.attendance_baseline import AttendanceBaselineService
from app.services.attendance_tokens import AttendanceTokenService
from app.services.materializer import SessionMaterializer
from app.services.meeting_link import resolve_meet_code
from app.services.recurrence import expand
from app.services.session_ids import SessionIdGenerator, UuidSessionIdGenerator
from app.services.session_store import SqlAlchemySessionStore
from app.services.side_effects import SideEffectOrchestrator
from app.services.subject_repository import SubjectRepository, SubjectSource

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 5
DEFAULT_LOOKAHEAD_MINUTES = 60
SCHEDULER_JOB_ID = "schedule-engine-reconcile"


class ScheduleWindowError(ValueError):
    """
    Raised when an on-demand reconciliation is asked for an empty or
    inverted window.
    """


class SingleFlight:
    """
    Idle/Running guard owned by one engine instance.

    `try_enter` never waits: a caller that finds the guard Running simply
    does not run.
    """

    def __init__(self) -> None:
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def try_enter(self) -> bool:
        if self._running:
            return False
        self._running = True
        return True

    def leave(self) -> None:
        self._running = False


class ScheduleEngine:
    """
    Keeps class sessions materialized ahead of the present moment.

    Each pass expands every schedulable subject's recurrence rule over the
    window, materializes each occurrence exactly once and fires the
    creation-only side effects for sessions it actually inserted. Failures
    are isolated per subject and per occurrence.
    """

    def __init__(
        self,
        subjects: SubjectSource,
        materializer: SessionMaterializer,
        orchestrator: SideEffectOrchestrator,
        resolve_code: Callable[[str | None], str | None] = resolve_meet_code,
        clock: Clock | None = None,
        id_generator: SessionIdGenerator | None = None,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
        guard: SingleFlight | None = None,
    ) -> None:
        self.subjects = subjects
        self.materializer = materializer
        self.orchestrator = orchestrator
        self.resolve_code = resolve_code
        self.clock = clock or SystemClock()
        self.id_generator = id_generator or UuidSessionIdGenerator()
        self.interval_minutes = max(interval_minutes, 1)
        self.lookahead_minutes = lookahead_minutes
        self.guard = guard or SingleFlight()

        self._scheduler: AsyncIOScheduler | None = None
        self._last_run_summary: RunSummary | None = None

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _resolve_window(
        self,
        window_start: datetime | None,
        window_end: datetime | None,
    ) -> tuple[datetime, datetime]:
        start = ensure_utc(window_start) if window_start else self.clock.now()
        end = (
            ensure_utc(window_end)
            if window_end
            else start + timedelta(minutes=self.lookahead_minutes)
        )
        if end <= start:
            raise ScheduleWindowError("window_end must be after window_start")
        return start, end

    async def reconcile(
        self,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> RunSummary:
        """
        Run one reconciliation pass over [window_start, window_end].

        Defaults to [now, now + lookahead]. Raises ScheduleWindowError before
        touching the store when the window is empty or inverted.
        """
        start, end = self._resolve_window(window_start, window_end)

        subjects = await self.subjects.list_schedulable()

        processed = 0
        skipped = 0
        ensured = 0
        created = 0
        failed = 0
        side_effect_failures = 0
        claimed_codes: dict[str, int] = {}

        for subject in subjects:
            try:
                meet_code = self.resolve_code(subject.meeting_link or "")
            except Exception:
                logger.exception("Could not resolve meeting link of subject %s", subject.id)
                meet_code = None

            if not meet_code:
                skipped += 1
                continue

            owner = claimed_codes.setdefault(meet_code, subject.id)
            if owner != subject.id:
                logger.warning(
                    "Subject %s shares meet code %s with subject %s; skipping",
                    subject.id,
                    meet_code,
                    owner,
                )
                skipped += 1
                continue

            processed += 1

            for occurrence in expand(subject.rule, start, end, subject_id=subject.id):
                try:
                    result = await self.materializer.materialize(
                        meet_code,
                        occurrence.session_date,
                        {
                            "subject_id": subject.id,
                            "start_time": occurrence.start_time,
                            "end_time": occurrence.end_time,
                            "first_third_threshold": occurrence.first_third_threshold,
                            "status": "scheduled",
                            "session_uid": self.id_generator.new_id(),
                        },
                    )
                except Exception:
                    failed += 1
                    logger.exception(
                        "Schedule engine failed to materialize session for subject %s on %s",
                        subject.id,
                        occurrence.session_date,
                    )
                    continue

                ensured += 1
                if result.created:
                    created += 1
                outcome = await self.orchestrator.handle(result)
                side_effect_failures += outcome.failures

        summary = RunSummary(
            window_start=start,
            window_end=end,
            subjects_processed=processed,
            subjects_skipped=skipped,
            sessions_ensured=ensured,
            sessions_created=created,
            sessions_failed=failed,
            side_effect_failures=side_effect_failures,
            timestamp=self.clock.now(),
        )
        self._last_run_summary = summary

        if ensured or failed:
            logger.info(
                "Schedule engine ensured %d session(s) (created %d, failed %d) in window %s -> %s",
                ensured,
                created,
                failed,
                start.isoformat(),
                end.isoformat(),
            )
        return summary

    async def tick(self) -> RunSummary | None:
        """
        Timer entry point. Returns None without running when a previous pass
        is still in progress; never raises.
        """
        if not self.guard.try_enter():
            logger.debug("Schedule engine pass still running; skipping tick")
            return None
        try:
            return await self.reconcile()
        except Exception:
            logger.exception("Schedule engine run failed")
            return None
        finally:
            self.guard.leave()

    # ------------------------------------------------------------------
    # Timer control
    # ------------------------------------------------------------------

    @property
    def scheduler_active(self) -> bool:
        return self._scheduler is not None

    def start(
        self,
        interval_minutes: int | None = None,
        lookahead_minutes: int | None = None,
    ) -> EngineState:
        """
        Start the periodic timer. The first pass fires immediately.

        Must be called from a running event loop. Starting an already
        started engine is a no-op.
        """
        if self._scheduler is not None:
            logger.info("Schedule engine already running")
            return self.state()

        if interval_minutes is not None:
            self.interval_minutes = max(interval_minutes, 1)
        if lookahead_minutes is not None:
            self.lookahead_minutes = lookahead_minutes

        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self.tick,
            trigger="interval",
            minutes=self.interval_minutes,
            id=SCHEDULER_JOB_ID,
            next_run_time=datetime.now(tz=timezone.utc),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            "Schedule engine started (interval: %dm, lookahead: %dm)",
            self.interval_minutes,
            self.lookahead_minutes,
        )
        return self.state()

    def stop(self) -> EngineState:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Schedule engine stopped")
        return self.state()

    def state(self) -> EngineState:
        return EngineState(
            scheduler_active=self.scheduler_active,
            is_running=self.guard.running,
            interval_minutes=self.interval_minutes,
            lookahead_minutes=self.lookahead_minutes,
            last_run_summary=self._last_run_summary,
        )


def build_schedule_engine(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    clock: Clock | None = None,
) -> ScheduleEngine:
    """
    Wire the engine to the SQLAlchemy-backed collaborators using `settings`.
    """
    clock = clock or SystemClock()
    materializer = SessionMaterializer(
        SqlAlchemySessionStore(session_factory),
        max_retries=settings.SESSION_UPSERT_MAX_RETRIES,
        retry_delay_ms=settings.SESSION_UPSERT_RETRY_DELAY_MS,
    )
    orchestrator = SideEffectOrchestrator(
        issuer=AttendanceTokenService(
            session_factory,
            lead_minutes=settings.TOKEN_VALID_LEAD_MINUTES,
            grace_minutes=settings.TOKEN_GRACE_MINUTES,
            clock=clock,
        ),
        baseline=AttendanceBaselineService(session_factory),
    )
    return ScheduleEngine(
        subjects=SubjectRepository(session_factory),
        materializer=materializer,
        orchestrator=orchestrator,
        clock=clock,
        interval_minutes=settings.SCHEDULE_ENGINE_INTERVAL_MINUTES,
        lookahead_minutes=settings.SCHEDULE_ENGINE_LOOKAHEAD_MINUTES,
    )
