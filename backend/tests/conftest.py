"""
Pytest configuration and shared fixtures for backend tests.
"""

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Test configuration must be in place before settings are first imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("ANTHROPIC_API_KEY", "")
os.environ.setdefault("ENVIRONMENT", "testing")

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from infrastructure.database.models import Base, Keyword
from infrastructure.database.connection import get_db
from services.keyword_cache import keyword_cache


# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@asynccontextmanager
async def _reuse_session(session: AsyncSession):
    """Hand out the test session without closing it afterwards."""
    yield session


@pytest.fixture
def shared_session_factory(db_session: AsyncSession):
    """Session factory that always yields the test session."""
    return lambda: _reuse_session(db_session)


@pytest.fixture
def live_keyword_cache(shared_session_factory):
    """Point the process-wide keyword cache at the test database."""
    original = keyword_cache.session_factory
    keyword_cache.session_factory = shared_session_factory
    keyword_cache.clear()
    yield keyword_cache
    keyword_cache.clear()
    keyword_cache.session_factory = original


@pytest.fixture
async def keywords(db_session: AsyncSession) -> list[Keyword]:
    """A few active keywords plus one inactive."""
    records = [
        Keyword(keyword="Nike", target_url="https://www.nike.com", active=True),
        Keyword(keyword="Apple", target_url="https://www.apple.com", active=True),
        Keyword(keyword="Tesla", target_url="https://www.tesla.com", active=True),
        Keyword(keyword="Netflix", target_url="https://www.netflix.com", active=False),
    ]
    db_session.add_all(records)
    await db_session.commit()
    for record in records:
        await db_session.refresh(record)
    return records


@pytest.fixture
async def async_client(
    db_session: AsyncSession, live_keyword_cache
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
