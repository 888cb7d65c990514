"""Pytest configuration for all tests."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tablebase.domain.entities import OwnerIdentity, Requester
from tablebase.infrastructure.persistence.database import Base, enable_sqlite_foreign_keys
from tablebase.infrastructure.persistence.models import (  # noqa: F401
    TableColumnModel,
    TableRowModel,
    UserTableModel,
)

ALICE = OwnerIdentity.user("alice")
BOB = OwnerIdentity.user("bob")


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database with foreign keys enforced.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with overridden database dependency."""
    from tablebase.infrastructure.api.app import app
    from tablebase.infrastructure.persistence.database import get_db_session

    app.dependency_overrides[get_db_session] = lambda: db_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


@pytest.fixture
def alice() -> Requester:
    """An authenticated, non-admin user."""
    return Requester(identity=ALICE)


@pytest.fixture
def bob() -> Requester:
    """A second authenticated, non-admin user."""
    return Requester(identity=BOB)


@pytest.fixture
def admin() -> Requester:
    """A user holding the admin role."""
    return Requester(identity=OwnerIdentity.user("root"), is_admin=True)


@pytest.fixture
def anonymous() -> Requester:
    return Requester()


@pytest.fixture
def alice_headers() -> dict[str, str]:
    return {"X-User-Id": "alice"}


@pytest.fixture
def bob_headers() -> dict[str, str]:
    return {"X-User-Id": "bob"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-User-Id": "root", "X-User-Role": "admin"}
