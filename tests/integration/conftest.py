"""Integration test fixtures.

These tests need a disposable PostgreSQL database named by
``TEST_DATABASE_URL``; they are skipped when it is not set.
"""

import os
import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from mindcare.core.database import create_session_factory
from mindcare.core.security import hash_password
from mindcare.models.db.base import Base
from mindcare.models.db.user import User, UserRole

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    if TEST_DATABASE_URL:
        return
    skip = pytest.mark.skip(reason="TEST_DATABASE_URL is not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh schema for each test."""
    engine = create_async_engine(str(TEST_DATABASE_URL), pool_pre_ping=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with create_session_factory(db_engine)() as session:
        yield session
        await session.rollback()


async def add_user(
    session: AsyncSession,
    name: str,
    role: UserRole,
    therapist_id: uuid.UUID | None = None,
) -> User:
    user = User(
        name=name,
        email=f"{name}-{uuid.uuid4().hex[:8]}@example.com",
        role=role,
        password_hash=hash_password("pw"),
        therapist_id=therapist_id,
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def therapist(db_session: AsyncSession) -> User:
    return await add_user(db_session, "dr_smith", UserRole.THERAPIST)


@pytest_asyncio.fixture
async def other_therapist(db_session: AsyncSession) -> User:
    return await add_user(db_session, "dr_jones", UserRole.THERAPIST)


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession, therapist: User) -> User:
    return await add_user(db_session, "alice", UserRole.PATIENT, therapist.id)
