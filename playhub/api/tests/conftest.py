"""
Test Configuration and Fixtures

Shared fixtures for PLAYHUB API tests.
Provides an isolated database, seeded principals of every role and
session headers for each of them.
"""

import os

# Cheap hashes in tests; must be set before settings are loaded
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from typing import AsyncGenerator, Callable, Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from playhub.api.access.rbac import Role
from playhub.api.auth.cache import PrincipalCache
from playhub.api.auth.passwords import hash_password
from playhub.api.auth.sessions import SessionStore
from playhub.api.db.models import AuditEntry, Base, Playlist, User
from playhub.api.db.seed import seed_roles
from playhub.api.db.session import get_db
from playhub.api.main import create_app


DEFAULT_PASSWORD = "Password123"


# ==================== Database Fixtures ====================


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests, with the fixed roles seeded."""
    async_session = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        await seed_roles(session)
        yield session
        await session.rollback()


# ==================== Application Fixtures ====================


@pytest.fixture(scope="function")
def principal_cache() -> PrincipalCache:
    return PrincipalCache()


@pytest.fixture(scope="function")
def app(db_session, principal_cache) -> FastAPI:
    """Create FastAPI app with test database."""
    test_app = create_app(principal_cache=principal_cache)

    async def override_get_db():
        yield db_session

    test_app.dependency_overrides[get_db] = override_get_db
    return test_app


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ==================== User Fixtures ====================


@pytest.fixture(scope="function")
def make_user(db_session, principal_cache) -> Callable:
    """Factory creating a user with the given role."""

    async def _make(
        username: str,
        role: Role = Role.REGULAR_USER,
        password: str = DEFAULT_PASSWORD,
        email: Optional[str] = None,
    ) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=hash_password(password),
            role_id=role.value,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        principal_cache.invalidate()
        return user

    return _make


@pytest_asyncio.fixture(scope="function")
async def admin_user(make_user) -> User:
    return await make_user("admin", Role.ADMINISTRATOR)


@pytest_asyncio.fixture(scope="function")
async def manager_user(make_user) -> User:
    return await make_user("manager", Role.MANAGEMENT)


@pytest_asyncio.fixture(scope="function")
async def regular_user(make_user) -> User:
    return await make_user("alice", Role.REGULAR_USER)


@pytest_asyncio.fixture(scope="function")
async def other_user(make_user) -> User:
    return await make_user("bob", Role.REGULAR_USER)


@pytest_asyncio.fixture(scope="function")
async def unregistered_user(make_user) -> User:
    return await make_user("guest", Role.UNREGISTERED)


# ==================== Session Fixtures ====================


@pytest.fixture(scope="function")
def open_session(db_session) -> Callable:
    """Factory returning bearer headers for a fresh session of a user."""

    async def _open(user: User) -> dict:
        token = await SessionStore(db_session).start(user.id)
        return {"Authorization": f"Bearer {token}"}

    return _open


@pytest_asyncio.fixture(scope="function")
async def admin_headers(open_session, admin_user) -> dict:
    return await open_session(admin_user)


@pytest_asyncio.fixture(scope="function")
async def manager_headers(open_session, manager_user) -> dict:
    return await open_session(manager_user)


@pytest_asyncio.fixture(scope="function")
async def user_headers(open_session, regular_user) -> dict:
    return await open_session(regular_user)


@pytest_asyncio.fixture(scope="function")
async def other_headers(open_session, other_user) -> dict:
    return await open_session(other_user)


@pytest_asyncio.fixture(scope="function")
async def unregistered_headers(open_session, unregistered_user) -> dict:
    return await open_session(unregistered_user)


# ==================== Content Fixtures ====================


@pytest.fixture(scope="function")
def make_playlist(db_session) -> Callable:
    """Factory creating a playlist directly in the database."""

    async def _make(owner: User, name: str = "Road Trip", is_public: bool = True) -> Playlist:
        playlist = Playlist(name=name, is_public=is_public, user_id=owner.id)
        db_session.add(playlist)
        await db_session.commit()
        await db_session.refresh(playlist)
        return playlist

    return _make


# ==================== Helpers ====================


class TestHelpers:
    """Helper methods for tests."""

    @staticmethod
    async def audit_actions(db: AsyncSession) -> list:
        """All recorded action codes in insertion order."""
        result = await db.execute(select(AuditEntry.action).order_by(AuditEntry.id))
        return list(result.scalars().all())

    @staticmethod
    async def audit_entries(db: AsyncSession, action: str) -> list:
        result = await db.execute(
            select(AuditEntry).where(AuditEntry.action == action).order_by(AuditEntry.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def assert_error(response, status_code: int, message_contains: str = None) -> None:
        """Assert the uniform {code, message} error body."""
        assert response.status_code == status_code
        body = response.json()
        assert body["code"] == status_code
        if message_contains:
            assert message_contains in body["message"]


@pytest.fixture(scope="function")
def helpers() -> TestHelpers:
    """Provide test helpers."""
    return TestHelpers()
