# tests/conftest.py
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.db.session import build_engine, build_session_factory, reset_db
from app.main import create_app


@pytest.fixture
def settings(tmp_path) -> Settings:
    """
    Settings pointing at a throw-away SQLite database, timer disabled.
    """
    return Settings(
        APP_ENV="test",
        DB_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        INTERNAL_API_KEY=None,
        SCHEDULE_ENGINE_ENABLED=False,
        SESSION_UPSERT_RETRY_DELAY_MS=1,
    )


@pytest.fixture
def client(settings) -> TestClient:
    """
    TestClient built through the application factory; startup creates the schema.
    """
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def session_factory(settings):
    """
    Session factory on a freshly reset database, for service-level tests.
    """
    engine = build_engine(settings)
    await reset_db(engine)
    yield build_session_factory(engine)
    await engine.dispose()
