"""
This file contains shared fixtures and configuration for the test suite.

Every test gets its own SQLite database file under ``tmp_path``, so tests never
touch the configured application database and never share state.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.db import create_app_engine, upgrade_db
from app.models import Task, User


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'task_store_test.db'}"


@pytest_asyncio.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """An engine on an empty database."""
    engine_ = create_app_engine(database_url)
    yield engine_
    await engine_.dispose()


@pytest_asyncio.fixture
async def migrated_engine(engine: AsyncEngine) -> AsyncEngine:
    """An engine on a database migrated to the latest revision."""
    await upgrade_db("head", engine=engine)
    return engine


@pytest.fixture
def session_maker(migrated_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=migrated_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session_:
        yield session_


@pytest_asyncio.fixture
async def user(session: AsyncSession) -> User:
    user_ = User(name="Ada Lovelace", email="ada@example.com")
    session.add(user_)
    await session.commit()
    await session.refresh(user_)
    return user_


@pytest.fixture
def make_task(session: AsyncSession):
    """Factory that persists a task and returns it refreshed from the database."""

    async def _make_task(user_id: int, title: str = "Write report", **fields) -> Task:
        task = Task(user_id=user_id, title=title, **fields)
        session.add(task)
        await session.commit()
        await session.refresh(task)
        return task

    return _make_task
