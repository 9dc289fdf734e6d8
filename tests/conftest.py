"""pytest fixtures for studiogen tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- session_factory: Function-scoped SQLite (aiosqlite) database with all tables created
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory
- png_bytes: A small real PNG image
- settings: Test settings (validation skipped)
"""

import os
from io import BytesIO
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

import studiogen.models  # noqa: F401  (registers tables with SQLModel metadata)
from studiogen.core.config import Settings
from studiogen.core.database import setup_db_session
from studiogen.uow import create_uow_factory


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Provide a session factory bound to a fresh file database.

    Each test gets its own database file, so no truncation is needed.
    """
    db_url = f"sqlite+aiosqlite:///{tmp_path / 'studiogen.db'}"
    factory = setup_db_session(db_url)
    engine = factory.kw["bind"]

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield factory

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory."""
    return create_uow_factory(session_factory)


@pytest.fixture
def png_bytes() -> bytes:
    """64x48 PNG image."""
    buffer = BytesIO()
    Image.new("RGB", (64, 48), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        APP_ENV="test",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        API_BASE_URL="http://app.test",
        SUPABASE_URL="http://supabase.test",
        SUPABASE_SERVICE_KEY="service-key",
        POLL_INTERVAL_SECONDS=0,
    )
