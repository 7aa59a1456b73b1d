# app/main.py
import logging

from fastapi import FastAPI

from app.api.routes import health, internal, schedule, subjects
from app.core.clock import Clock
from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.db.session import build_engine, build_session_factory, init_db
from app.services.schedule_engine import build_schedule_engine

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, clock: Clock | None = None) -> FastAPI:
    """
    Application factory for the class session calendar service.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend service that keeps concrete class sessions materialized ahead\n"
            "of time from each subject's weekly schedule, issuing check-in tokens and\n"
            "baseline attendance exactly once per newly created session."
        ),
        version="0.1.0",
    )

    db_engine = build_engine(settings)
    session_factory = build_session_factory(db_engine)

    app.state.settings = settings
    app.state.db_engine = db_engine
    app.state.session_factory = session_factory
    app.state.schedule_engine = build_schedule_engine(settings, session_factory, clock=clock)

    # Routers
    app.include_router(health.router)
    app.include_router(subjects.router)
    app.include_router(schedule.router)
    app.include_router(internal.router)

    @app.on_event("startup")
    async def on_startup() -> None:
        await init_db(db_engine)
        if settings.SCHEDULE_ENGINE_ENABLED:
            app.state.schedule_engine.start()
        else:
            logger.info("Schedule engine disabled (SCHEDULE_ENGINE_ENABLED=false)")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        app.state.schedule_engine.stop()
        await db_engine.dispose()

    return app


app = create_app()
