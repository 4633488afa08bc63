"""Integration test fixtures with a real database."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from performance_engine.api.app import create_app
from performance_engine.api.dependencies import get_db_session
from performance_engine.database import create_schema
from performance_engine.repositories import SqlPerformanceRepository
from performance_engine.services import PerformanceService

from ..conftest import FrozenClock

# In-memory SQLite shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_engine() -> AsyncEngine:
    return create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@asynccontextmanager
async def serve_app(factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    """Run the app with request sessions drawn from ``factory``."""
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh test database engine with the schema applied."""
    engine = make_engine()
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for integration tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def sql_repository(db_session: AsyncSession) -> SqlPerformanceRepository:
    return SqlPerformanceRepository(db_session)


@pytest_asyncio.fixture
async def sql_service(sql_repository: SqlPerformanceRepository) -> PerformanceService:
    return PerformanceService(sql_repository, clock=FrozenClock())


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing against the test database."""
    async with serve_app(session_factory) as client:
        yield client


@pytest_asyncio.fixture
async def bare_client() -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over a database that has no tables."""
    engine = make_engine()
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with serve_app(factory) as client:
        yield client
    await engine.dispose()
