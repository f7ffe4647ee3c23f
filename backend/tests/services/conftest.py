"""Service test fixtures — async DB, wired services and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Services talk to it through a real DatabaseSessionManager (error mapping included)
    - get_db / db_manager patched so routes and the job queue share the test engine
    - External clients (generative backend, notifier, page fetcher) are always fakes

Design Decisions:
    - SQLite in-memory: fast, no external dependency; the gateway falls back to
      lexeme matching where PostgreSQL would use its full-text index
    - db_manager built with __new__: skips pool configuration for SQLite
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from toolfinder.api import dependencies
from toolfinder.db.base import Base
from toolfinder.infrastructure.database import get_db, DatabaseSessionManager
from toolfinder.infrastructure.job_queue import DatabaseJobQueue
import toolfinder.infrastructure.database as db_module
import toolfinder.models  # noqa: F401
from toolfinder.main import app
from toolfinder.services.catalog_gateway import SqlCatalogGateway
from toolfinder.services.prompt_provider import DbPromptProvider
from toolfinder.services.resolution_funnel import ResolutionFunnel
from toolfinder.services.submission_orchestrator import SubmissionOrchestrator
from toolfinder.services.tool_extraction import ToolExtraction
from tests.services.mock_clients import FakeCompletion, FakeNotifier, FakePageFetcher

PROBLEMS_PAGE_URL = "https://toolfinder.test/problems"


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
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
def test_db_manager(test_engine, test_session_factory):
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = test_session_factory
    return manager


@pytest.fixture
def catalog(test_db_manager):
    return SqlCatalogGateway(test_db_manager.session)


@pytest.fixture
def prompts(test_db_manager):
    return DbPromptProvider(test_db_manager.session)


@pytest.fixture
def job_queue(test_db_manager):
    return DatabaseJobQueue(test_db_manager.session, lease_seconds=60, max_attempts=3)


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def fetcher():
    return FakePageFetcher(text="Locofy converts Figma designs into React code.")


@pytest.fixture
def funnel(catalog, completion, prompts):
    return ResolutionFunnel(catalog, completion, prompts)


@pytest.fixture
def extraction(catalog, completion, prompts, fetcher):
    return ToolExtraction(catalog, completion, prompts, fetcher)


@pytest.fixture
def orchestrator(funnel, extraction, catalog, notifier):
    return SubmissionOrchestrator(
        funnel, extraction, catalog, notifier, PROBLEMS_PAGE_URL,
        progress_delay=8.0, matching_timeout=25.0,
    )


@pytest.fixture
async def client(test_engine, test_session_factory, completion, notifier, fetcher):
    """FastAPI test client with DB and external clients overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_completion] = lambda: completion
    app.dependency_overrides[dependencies.get_notifier] = lambda: notifier
    app.dependency_overrides[dependencies.get_page_fetcher] = lambda: fetcher

    # Services resolve db_manager.session at request time
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
