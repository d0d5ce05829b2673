"""Pytest configuration and shared fixtures."""
from datetime import datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from canvasnotes.api.deps import get_token_validator
from canvasnotes.core.auth import TokenValidator, create_access_token
from canvasnotes.core.database import build_engine, create_db_and_tables, get_session
from canvasnotes.main import app
from canvasnotes.services.graph_service import GraphDataService
from canvasnotes.store.memory import InMemoryGraphStore
from canvasnotes.store.sql import SqlGraphStore

TEST_JWT_SECRET = "test-jwt-secret-for-canvas-notes-suite"
ALICE = "user-alice"
BOB = "user-bob"


class FakeClock:
    """Naive UTC clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return InMemoryGraphStore(clock=clock)


@pytest.fixture
def service(memory_store):
    return GraphDataService(memory_store, undo_policy="disabled")


@pytest.fixture
def grace_service(memory_store, clock):
    return GraphDataService(memory_store, undo_policy="grace_window", undo_grace_period_seconds=30, clock=clock)


@pytest_asyncio.fixture
async def engine():
    engine = build_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def sql_store(session_maker):
    async with session_maker() as session:
        yield SqlGraphStore(session)


def auth_headers(user_id: str) -> dict:
    token = create_access_token(user_id, TEST_JWT_SECRET)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def http_client(session_maker):
    """HTTP client bound to the app, backed by the in-memory SQLite engine."""

    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_token_validator] = lambda: TokenValidator(
        secret=TEST_JWT_SECRET, audience="authenticated"
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
