"""Pytest configuration and fixtures for autoflow.

Each test gets its own on-disk SQLite database (aiosqlite) under tmp_path,
an execution engine that runs steps inline, AsyncMock collaborators, and a
controllable clock. API tests use an httpx client against a fresh app whose
DB dependencies point at the same database.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from autoflow.core.config import Settings
from autoflow.domain.entities import StepEntity, WorkflowEntity
from autoflow.infrastructure.persistence.database import (
    build_session_factory,
    create_schema,
    enable_sqlite_foreign_keys,
    get_db,
    get_db_transactional,
)
from autoflow.infrastructure.persistence.repositories import WorkflowRepository
from autoflow.infrastructure.services import WorkflowEngine, build_engine

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=UTC)
ORG_ID = "org-test"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class Collaborators:
    """AsyncMock stand-ins for every port the action handlers call."""

    def __init__(self) -> None:
        self.notifier = AsyncMock()
        self.mailer = AsyncMock()
        self.assigner = AsyncMock()
        self.entities = AsyncMock()
        self.generator = AsyncMock()
        self.generator.generate = AsyncMock(return_value="Thanks for reaching out!")


@pytest.fixture
async def session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    """Session factory over a fresh SQLite database with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'autoflow.db'}")
    enable_sqlite_foreign_keys(engine)
    await create_schema(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def collaborators() -> Collaborators:
    return Collaborators()


@pytest.fixture
def settings() -> Settings:
    return Settings(run_in_background=False)


@pytest.fixture
def engine(
    session_factory: async_sessionmaker[AsyncSession],
    collaborators: Collaborators,
    clock: FakeClock,
    settings: Settings,
) -> WorkflowEngine:
    """Engine that executes runs inline, so a run has finished or suspended when the call returns."""
    return build_engine(
        session_factory,
        settings=settings,
        notifier=collaborators.notifier,
        mailer=collaborators.mailer,
        assigner=collaborators.assigner,
        entities=collaborators.entities,
        generator=collaborators.generator,
        clock=clock,
    )


@pytest.fixture
def make_workflow(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[WorkflowEntity]]:
    """Insert a workflow directly through the repository (no definition validation)."""

    async def _make(
        steps: list[StepEntity],
        *,
        trigger_type: str = "lead_created",
        name: str = "Test workflow",
        is_active: bool = True,
        org_id: str = ORG_ID,
    ) -> WorkflowEntity:
        async with session_factory() as session:
            async with session.begin():
                return await WorkflowRepository(session).create_workflow(
                    org_id=org_id,
                    name=name,
                    trigger_type=trigger_type,
                    steps=tuple(steps),
                    is_active=is_active,
                )

    return _make


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], engine: WorkflowEngine
) -> AsyncClient:
    """Async HTTP client against a fresh app bound to the test database and engine."""
    from autoflow.main import create_app

    app = create_app()

    async def _get_db():
        async with session_factory() as session:
            yield session

    async def _get_db_transactional():
        async with session_factory() as session:
            async with session.begin():
                yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_db_transactional] = _get_db_transactional
    app.state.engine = engine

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def org_headers() -> dict[str, str]:
    return {"X-Org-ID": ORG_ID}
