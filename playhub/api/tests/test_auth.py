"""
Authentication Tests

Login, logout, who-am-I, registration and session lifetime.
"""

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select, update

from playhub.api.auth.cache import PrincipalCache
from playhub.api.auth.sessions import token_digest
from playhub.api.config import settings
from playhub.api.db.models import AuthSession, User, utcnow
from playhub.api.db.session import get_db
from playhub.api.main import create_app


DEFAULT_PASSWORD = "Password123"


# ==================== Login ====================


@pytest.mark.asyncio
async def test_login_returns_token_and_user(async_client, regular_user, db_session, helpers):
    response = await async_client.post(
        "/api/auth", json={"username": "alice", "password": DEFAULT_PASSWORD}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["expires_in"] == settings.SESSION_TTL_HOURS * 3600
    assert data["user"]["username"] == "alice"
    assert data["user"]["role_id"] == 2
    assert data["user"]["role_name"] == "Regular User"
    assert settings.SESSION_COOKIE_NAME in response.cookies

    entries = await helpers.audit_entries(db_session, "USER_LOGIN")
    assert len(entries) == 1
    assert entries[0].user_id == regular_user.id
    assert entries[0].target_id == regular_user.id


@pytest.mark.asyncio
async def test_login_token_is_not_stored_in_plaintext(async_client, regular_user, db_session):
    response = await async_client.post(
        "/api/auth", json={"username": "alice", "password": DEFAULT_PASSWORD}
    )
    token = response.json()["token"]

    result = await db_session.execute(select(AuthSession.token_digest))
    digests = result.scalars().all()
    assert token not in digests
    assert token_digest(token) in digests


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(async_client, regular_user, helpers):
    wrong_password = await async_client.post(
        "/api/auth", json={"username": "alice", "password": "nope-nope"}
    )
    unknown_user = await async_client.post(
        "/api/auth", json={"username": "mallory", "password": DEFAULT_PASSWORD}
    )

    helpers.assert_error(wrong_password, 401)
    helpers.assert_error(unknown_user, 401)
    assert wrong_password.json() == unknown_user.json()
    assert wrong_password.json()["message"] == "Invalid username or password"


@pytest.mark.asyncio
async def test_login_username_is_case_sensitive(async_client, regular_user, helpers):
    response = await async_client.post(
        "/api/auth", json={"username": "Alice", "password": DEFAULT_PASSWORD}
    )
    helpers.assert_error(response, 401)


# ==================== Who am I ====================


@pytest.mark.asyncio
async def test_whoami_anonymous_returns_nulls(async_client):
    response = await async_client.get("/api/auth")

    assert response.status_code == 200
    assert response.json() == {
        "user_id": None,
        "username": None,
        "email": None,
        "role_id": None,
        "role_name": None,
    }


@pytest.mark.asyncio
async def test_whoami_with_bearer_token(async_client, user_headers, regular_user):
    response = await async_client.get("/api/auth", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["user_id"] == regular_user.id
    assert response.json()["username"] == "alice"


@pytest.mark.asyncio
async def test_whoami_with_session_cookie(async_client, regular_user):
    await async_client.post("/api/auth", json={"username": "alice", "password": DEFAULT_PASSWORD})

    # The client replays the cookie set by the login response
    response = await async_client.get("/api/auth")

    assert response.json()["username"] == "alice"


@pytest.mark.asyncio
async def test_garbage_token_is_anonymous(async_client, regular_user):
    response = await async_client.get(
        "/api/auth", headers={"Authorization": "Bearer not-a-real-token"}
    )
    assert response.json()["user_id"] is None


# ==================== Logout ====================


@pytest.mark.asyncio
async def test_logout_ends_session(async_client, user_headers, db_session, helpers):
    response = await async_client.delete("/api/auth", headers=user_headers)
    assert response.status_code == 200

    whoami = await async_client.get("/api/auth", headers=user_headers)
    assert whoami.json()["user_id"] is None

    assert await helpers.audit_actions(db_session) == ["USER_LOGOUT"]


@pytest.mark.asyncio
async def test_logout_is_idempotent(async_client, user_headers, db_session, helpers):
    first = await async_client.delete("/api/auth", headers=user_headers)
    second = await async_client.delete("/api/auth", headers=user_headers)
    anonymous = await async_client.delete("/api/auth")

    assert first.status_code == second.status_code == anonymous.status_code == 200
    # Only the logout that actually ended a session is audited
    assert await helpers.audit_actions(db_session) == ["USER_LOGOUT"]


# ==================== Session lifetime ====================


@pytest.mark.asyncio
async def test_expired_session_is_rejected(async_client, user_headers, db_session, helpers):
    await db_session.execute(
        update(AuthSession).values(expires_at=utcnow() - timedelta(seconds=1))
    )
    await db_session.commit()

    whoami = await async_client.get("/api/auth", headers=user_headers)
    assert whoami.json()["user_id"] is None

    response = await async_client.get("/api/users/1", headers=user_headers)
    helpers.assert_error(response, 401, "Authentication required")


@pytest.mark.asyncio
async def test_session_expiry_is_absolute(async_client, regular_user, db_session):
    response = await async_client.post(
        "/api/auth", json={"username": "alice", "password": DEFAULT_PASSWORD}
    )
    token = response.json()["token"]
    session = await db_session.get(AuthSession, token_digest(token))
    lifetime = session.expires_at - session.created_at

    # Using the session does not extend it
    await async_client.get("/api/auth", headers={"Authorization": f"Bearer {token}"})
    await db_session.refresh(session)

    assert lifetime == timedelta(hours=settings.SESSION_TTL_HOURS)
    assert session.expires_at - session.created_at == lifetime


@pytest.mark.asyncio
async def test_session_survives_app_restart(db_session, user_headers, regular_user):
    """A new app instance with an empty cache still resolves existing sessions."""
    restarted = create_app(principal_cache=PrincipalCache())

    async def override_get_db():
        yield db_session

    restarted.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=restarted)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/auth", headers=user_headers)

    assert response.json()["user_id"] == regular_user.id


# ==================== Registration ====================


@pytest.mark.asyncio
async def test_register_creates_regular_user(async_client, db_session, helpers):
    response = await async_client.post(
        "/api/auth/register",
        json={"username": "  carol ", "email": "Carol@Example.COM", "password": "secret1"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["username"] == "carol"
    assert data["email"] == "carol@example.com"
    assert data["role_id"] == 2

    entries = await helpers.audit_entries(db_session, "USER_CREATED")
    assert len(entries) == 1
    assert entries[0].target_id == data["user_id"]
    assert entries[0].user_id is None

    login = await async_client.post("/api/auth", json={"username": "carol", "password": "secret1"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_register_stores_salted_hash(async_client, db_session):
    for name in ("dave", "erin"):
        await async_client.post(
            "/api/auth/register",
            json={"username": name, "email": f"{name}@example.com", "password": "same-password"},
        )

    result = await db_session.execute(select(User.password_hash).order_by(User.id))
    hashes = result.scalars().all()
    assert "same-password" not in hashes
    assert hashes[0] != hashes[1]


@pytest.mark.asyncio
async def test_register_duplicate_username_conflicts(async_client, regular_user, helpers):
    response = await async_client.post(
        "/api/auth/register",
        json={"username": "alice", "email": "other@example.com", "password": "secret1"},
    )
    helpers.assert_error(response, 409, "Username already exists")


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(async_client, regular_user, helpers):
    response = await async_client.post(
        "/api/auth/register",
        json={"username": "alice2", "email": "alice@example.com", "password": "secret1"},
    )
    helpers.assert_error(response, 409, "Email already exists")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, fragment",
    [
        ({"username": "", "email": "x@example.com", "password": "secret1"}, "username"),
        ({"username": "a" * 17, "email": "x@example.com", "password": "secret1"}, "username"),
        ({"username": "xavier", "email": "not-an-email", "password": "secret1"}, "email"),
        ({"username": "xavier", "email": "xavier@nodot", "password": "secret1"}, "email"),
        ({"username": "xavier", "email": "xavier@@example.com", "password": "secret1"}, "email"),
        ({"username": "xavier", "email": "x@example.com", "password": "short"}, "password"),
    ],
)
async def test_register_validation(async_client, helpers, payload, fragment):
    response = await async_client.post("/api/auth/register", json=payload)
    helpers.assert_error(response, 400, fragment)
