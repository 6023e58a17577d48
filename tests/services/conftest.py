"""Service test fixtures — async DB, repository, services, and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test session factory
    - db_manager patched so the readiness probe sees the test engine
    - The Anthropic client is replaced by an AsyncMock at the dependency seam

Design Decisions:
    - SQLite in-memory over StaticPool: one shared connection keeps the schema alive
"""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import survey_engine.infrastructure.database as db_module
from survey_engine.api.deps import get_anthropic_client
from survey_engine.db.base import Base
from survey_engine.infrastructure.database import DatabaseSessionManager, get_db
from survey_engine.infrastructure.survey_repository import SqlSurveyRepository
from survey_engine.main import app
from survey_engine.services.response_lifecycle import ResponseLifecycleService
from tests.factories import FrozenClock

@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def repository(test_db, clock):
    return SqlSurveyRepository(test_db, clock=clock)


@pytest.fixture
def lifecycle(repository, clock):
    return ResponseLifecycleService(repository, clock=clock)


@pytest.fixture
def mock_ai():
    client = AsyncMock()
    client.complete = AsyncMock(return_value="")
    return client


@pytest.fixture
async def client(test_engine, test_session_factory, mock_ai):
    """FastAPI test client with DB and AI dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_anthropic_client] = lambda: mock_ai

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
