# app/db/session.py
import os
from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.core.config import Settings
from app.db.base import Base

# Import ORM models so that Base.metadata is aware of them
from app.models import (  # noqa: F401
    attendance_record,
    attendance_token,
    class_session,
    student,
    subject,
)

# Detect if we're running under pytest
IS_TEST = "PYTEST_CURRENT_TEST" in os.environ


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction start with BEGIN IMMEDIATE.

    SQLite only allows one writer; taking the write lock up front lets a
    second writer wait on the busy timeout instead of failing with
    "database is locked" when it tries to upgrade a read lock.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database URL.

    NullPool is used for SQLite and under pytest: every store operation opens
    its own connection, so concurrent writers meet at the database rather
    than sharing one connection.
    """
    is_sqlite = settings.DB_URL.startswith("sqlite")
    kwargs = {"poolclass": NullPool} if (IS_TEST or is_sqlite) else {}
    engine = create_async_engine(settings.DB_URL, echo=False, **kwargs)
    if is_sqlite:
        _use_immediate_transactions(engine)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create any missing tables for the current models.

    Safe to call from FastAPI startup; typically you'd eventually replace this
    with Alembic migrations.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_db(engine: AsyncEngine) -> None:
    """
    TEST-ONLY: drop and recreate every table for a clean slate.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async SQLAlchemy session.

    The session is automatically closed when the request is completed.
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        yield session
