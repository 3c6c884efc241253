"""Pytest configuration and fixtures for integration tests."""
import os

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTO_MIGRATE"] = "false"

from forge_server.main import app
from forge_server.database import enable_sqlite_foreign_keys, get_async_session
from forge_server.models import Base

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    """Session maker bound to the test engine, for driving the store directly."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def client(test_engine):
    """Create test client with overridden database."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_session():
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def project_id(client: AsyncClient) -> str:
    """An empty project created through the API."""
    response = await client.post("/v1/projects/", json={"id": "robot", "name": "Robot Arm"})
    assert response.status_code == 200
    return response.json()["id"]


@pytest.fixture
def make_node(client: AsyncClient, project_id: str):
    """Create a node in the test project and return its JSON."""

    async def _make(node_id: str, type: str = "task", **fields):
        response = await client.post(
            f"/v1/projects/{project_id}/nodes",
            json={"id": node_id, "type": type, "title": node_id.upper(), **fields},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _make
