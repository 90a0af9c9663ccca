"""
Pytest configuration and fixtures.

Runs everything against an in-memory SQLite database through aiosqlite, so no
Postgres or Redis is needed.
"""

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("PAIR_LOCK_ENABLED", "false")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from friendzone.db.models import Base, User
from friendzone.knock.engine import KnockEngine
from friendzone.knock.events import RecordingNotifier


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(db, notifier):
    return KnockEngine(db, notifier=notifier, attempts=3, retry_delay=0)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(is_private: bool = False, first_name: str | None = None) -> int:
        counter["n"] += 1
        user = User(
            email=f"user{counter['n']}@example.com",
            first_name=first_name or f"User{counter['n']}",
            is_private=is_private,
        )
        db.add(user)
        await db.commit()
        return user.id

    return _make
