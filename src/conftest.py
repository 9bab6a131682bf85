import contextlib

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.guests.tests.inmemory_models import (
    InMemoryGuestRowsReadModel,
    InMemoryGuestRowsWriteModel,
    create_test_database,
    create_test_engine,
)
from src.main import app
from src.models.base import BaseModel

# Test database engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def sql_session():
    """A session on a fresh in-memory SQLite schema."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    test_session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with test_session_factory() as session:
        yield session

    await test_engine.dispose()


@pytest.fixture
def database():
    """In-memory guest tables without a change feed."""
    return create_test_database()


@pytest.fixture
def read_model(database):
    return InMemoryGuestRowsReadModel(database)


@pytest.fixture
def write_model(database):
    return InMemoryGuestRowsWriteModel(database)


@pytest_asyncio.fixture
async def engine(database, read_model, write_model):
    """A started engine over the in-memory models."""
    guest_engine = create_test_engine(database, read_model=read_model, write_model=write_model)
    await guest_engine.start()
    yield guest_engine
    await guest_engine.close()


@pytest.fixture
def client_factory():
    """Build an HTTP client with dependency overrides applied for its lifetime."""

    @contextlib.asynccontextmanager
    async def factory(overrides: dict | None = None):
        app.dependency_overrides.update(overrides or {})
        transport = ASGITransport(app=app)
        try:
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                yield ac
        finally:
            app.dependency_overrides.clear()

    return factory


@pytest_asyncio.fixture
async def client(client_factory):
    """A test client without overrides."""
    async with client_factory() as ac:
        yield ac
