"""
Shared fixtures for the billing engine tests.

Each test gets a fresh in-memory SQLite schema. The API client reuses the
test's session, so a test can seed rows with factories and observe the
route's writes without committing.
"""

from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from timebill.db.session import get_db
from timebill.main import app
from timebill.models.base import Base
from tests.factories import MatterFactory, RoleRateFactory, UserFactory

MEMORY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(MEMORY_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Session configured like the application's factory.

    Yields:
        AsyncSession rolled back after the test
    """
    factory = async_sessionmaker(db_engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app in-process, using the test session."""

    async def use_test_session():
        yield db_session

    app.dependency_overrides[get_db] = use_test_session
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def test_matter(db_session: AsyncSession):
    return await MatterFactory.create(db_session)


@pytest_asyncio.fixture
async def test_attorney(db_session: AsyncSession):
    """Attorney billed through the role table at $350.00/hour."""
    await RoleRateFactory.create(db_session, role="Attorney", rate_cents=35000)
    return await UserFactory.create(
        db_session,
        name="Avery Attorney",
        email="avery@example.com",
        role="Attorney",
    )
