"""
User Management Tests

Role gating, self-protection, profile updates and the principal cache
staying in step with role changes.
"""

import pytest
from sqlalchemy import select

from playhub.api.db.models import (
    AuthSession,
    Playlist,
    PlaylistClick,
    PlaylistFavorite,
    PlaylistLike,
    User,
)


DEFAULT_PASSWORD = "Password123"


# ==================== Listing / creation ====================


@pytest.mark.asyncio
async def test_list_users_requires_admin(async_client, user_headers, manager_headers, helpers):
    helpers.assert_error(await async_client.get("/api/users"), 401)
    helpers.assert_error(await async_client.get("/api/users", headers=user_headers), 403)
    helpers.assert_error(await async_client.get("/api/users", headers=manager_headers), 403)


@pytest.mark.asyncio
async def test_list_users_as_admin(async_client, admin_headers, regular_user):
    response = await async_client.get("/api/users", headers=admin_headers)

    assert response.status_code == 200
    usernames = [u["username"] for u in response.json()]
    assert usernames == ["admin", "alice"]
    assert response.json()[0]["role_name"] == "Administrator"


@pytest.mark.asyncio
async def test_admin_creates_user_with_role(async_client, admin_headers, admin_user, db_session, helpers):
    response = await async_client.post(
        "/api/users",
        json={"username": "mod", "email": "mod@example.com", "password": "secret1", "role_id": 1},
        headers=admin_headers,
    )

    assert response.status_code == 201
    assert response.json()["role_name"] == "Management"

    entries = await helpers.audit_entries(db_session, "USER_CREATED")
    assert entries[0].user_id == admin_user.id


@pytest.mark.asyncio
async def test_admin_create_rejects_unknown_role(async_client, admin_headers, helpers):
    response = await async_client.post(
        "/api/users",
        json={"username": "mod", "email": "mod@example.com", "password": "secret1", "role_id": 9},
        headers=admin_headers,
    )
    helpers.assert_error(response, 400, "Invalid role ID")


# ==================== Reading ====================


@pytest.mark.asyncio
async def test_get_user_owner_or_admin(
    async_client, regular_user, other_user, user_headers, admin_headers, helpers
):
    own = await async_client.get(f"/api/users/{regular_user.id}", headers=user_headers)
    assert own.status_code == 200
    assert own.json()["email"] == "alice@example.com"

    helpers.assert_error(
        await async_client.get(f"/api/users/{other_user.id}", headers=user_headers), 403
    )
    assert (await async_client.get(f"/api/users/{other_user.id}", headers=admin_headers)).status_code == 200


@pytest.mark.asyncio
async def test_get_missing_user_as_admin(async_client, admin_headers, helpers):
    helpers.assert_error(await async_client.get("/api/users/999", headers=admin_headers), 404)


# ==================== Updates ====================


@pytest.mark.asyncio
async def test_user_cannot_update_someone_else(async_client, other_user, user_headers, helpers):
    response = await async_client.put(
        f"/api/users/{other_user.id}", json={"username": "hacked"}, headers=user_headers
    )
    helpers.assert_error(response, 403)


@pytest.mark.asyncio
async def test_update_requires_fields(async_client, regular_user, user_headers, helpers):
    response = await async_client.put(f"/api/users/{regular_user.id}", json={}, headers=user_headers)
    helpers.assert_error(response, 400, "No fields to update")


@pytest.mark.asyncio
async def test_update_username_conflict(async_client, regular_user, other_user, user_headers, helpers):
    response = await async_client.put(
        f"/api/users/{regular_user.id}", json={"username": "bob"}, headers=user_headers
    )
    helpers.assert_error(response, 409, "Username already taken")


@pytest.mark.asyncio
async def test_update_username_visible_next_request(
    async_client, regular_user, user_headers, db_session, helpers
):
    response = await async_client.put(
        f"/api/users/{regular_user.id}", json={"username": "alicia"}, headers=user_headers
    )
    assert response.status_code == 200

    whoami = await async_client.get("/api/auth", headers=user_headers)
    assert whoami.json()["username"] == "alicia"
    assert await helpers.audit_actions(db_session) == ["USER_UPDATED"]


@pytest.mark.asyncio
async def test_password_change_requires_current_password(
    async_client, regular_user, user_headers, helpers
):
    url = f"/api/users/{regular_user.id}"

    missing = await async_client.put(url, json={"password": "brand-new"}, headers=user_headers)
    helpers.assert_error(missing, 400, "Current password is required")

    wrong = await async_client.put(
        url, json={"password": "brand-new", "current_password": "wrong"}, headers=user_headers
    )
    helpers.assert_error(wrong, 401, "Current password is incorrect")

    ok = await async_client.put(
        url,
        json={"password": "brand-new", "current_password": DEFAULT_PASSWORD},
        headers=user_headers,
    )
    assert ok.status_code == 200

    login = await async_client.post("/api/auth", json={"username": "alice", "password": "brand-new"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_admin_resets_password_without_current(
    async_client, regular_user, admin_headers
):
    response = await async_client.put(
        f"/api/users/{regular_user.id}", json={"password": "reset-by-admin"}, headers=admin_headers
    )
    assert response.status_code == 200

    login = await async_client.post(
        "/api/auth", json={"username": "alice", "password": "reset-by-admin"}
    )
    assert login.status_code == 200


# ==================== Self-protection ====================


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(async_client, admin_user, admin_headers, db_session, helpers):
    response = await async_client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)

    helpers.assert_error(response, 403, "cannot delete your own account")
    assert await db_session.get(User, admin_user.id) is not None
    assert await helpers.audit_actions(db_session) == []


@pytest.mark.asyncio
async def test_admin_cannot_change_own_role(async_client, admin_user, admin_headers, helpers):
    response = await async_client.put(
        f"/api/users/{admin_user.id}/role", json={"role_id": 2}, headers=admin_headers
    )
    helpers.assert_error(response, 403, "cannot change your own role")


@pytest.mark.asyncio
async def test_regular_user_cannot_change_roles(async_client, other_user, user_headers, helpers):
    response = await async_client.put(
        f"/api/users/{other_user.id}/role", json={"role_id": 0}, headers=user_headers
    )
    helpers.assert_error(response, 403)


# ==================== Role changes ====================


@pytest.mark.asyncio
async def test_role_change_applies_on_next_request(
    async_client, regular_user, admin_user, admin_headers, user_headers, db_session, helpers
):
    # Warm the cache with the old role
    before = await async_client.get("/api/auth", headers=user_headers)
    assert before.json()["role_id"] == 2

    response = await async_client.put(
        f"/api/users/{regular_user.id}/role", json={"role_id": 1}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json() == {
        "message": "User role updated successfully",
        "user_id": regular_user.id,
        "role_id": 1,
        "role_name": "Management",
    }

    after = await async_client.get("/api/auth", headers=user_headers)
    assert after.json()["role_id"] == 1

    # Same session, new permissions
    analytics = await async_client.get("/api/analytics", headers=user_headers)
    assert analytics.status_code == 200

    entries = await helpers.audit_entries(db_session, "USER_ROLE_CHANGED")
    assert [(e.target_id, e.user_id) for e in entries] == [(regular_user.id, admin_user.id)]


@pytest.mark.asyncio
async def test_demoted_user_loses_permissions(
    async_client, regular_user, admin_headers, user_headers, helpers
):
    await async_client.put(
        f"/api/users/{regular_user.id}/role", json={"role_id": 3}, headers=admin_headers
    )

    response = await async_client.post(
        "/api/playlists", json={"name": "Not allowed"}, headers=user_headers
    )
    helpers.assert_error(response, 403)


@pytest.mark.asyncio
async def test_role_change_rejects_unknown_role(async_client, regular_user, admin_headers, helpers):
    response = await async_client.put(
        f"/api/users/{regular_user.id}/role", json={"role_id": 4}, headers=admin_headers
    )
    helpers.assert_error(response, 400, "Invalid role ID")


# ==================== Deletion ====================


@pytest.mark.asyncio
async def test_admin_deletes_user(
    async_client, regular_user, admin_user, admin_headers, user_headers, db_session, helpers
):
    response = await async_client.delete(f"/api/users/{regular_user.id}", headers=admin_headers)
    assert response.status_code == 204

    # The deleted user's session is gone with the account
    whoami = await async_client.get("/api/auth", headers=user_headers)
    assert whoami.json()["user_id"] is None

    result = await db_session.execute(
        select(AuthSession).where(AuthSession.user_id == regular_user.id)
    )
    assert result.scalars().all() == []

    entries = await helpers.audit_entries(db_session, "USER_DELETED")
    assert [(e.target_id, e.user_id) for e in entries] == [(regular_user.id, admin_user.id)]


@pytest.mark.asyncio
async def test_deleting_user_removes_their_playlists_and_reactions(
    async_client, regular_user, other_user, admin_headers, make_playlist, db_session
):
    mine = await make_playlist(regular_user, name="Alice Mix")
    theirs = await make_playlist(other_user, name="Bob Mix")
    db_session.add_all([
        PlaylistLike(playlist_id=mine.playlist_id, user_id=other_user.id),
        PlaylistLike(playlist_id=theirs.playlist_id, user_id=regular_user.id),
        PlaylistFavorite(playlist_id=theirs.playlist_id, user_id=regular_user.id),
        PlaylistClick(playlist_id=theirs.playlist_id, user_id=regular_user.id),
    ])
    await db_session.commit()

    response = await async_client.delete(f"/api/users/{regular_user.id}", headers=admin_headers)
    assert response.status_code == 204

    playlists = await db_session.execute(select(Playlist.name))
    assert playlists.scalars().all() == ["Bob Mix"]
    likes = await db_session.execute(select(PlaylistLike.user_id))
    assert likes.scalars().all() == []
    favorites = await db_session.execute(select(PlaylistFavorite.user_id))
    assert favorites.scalars().all() == []
    clicks = await db_session.execute(select(PlaylistClick.playlist_id, PlaylistClick.user_id))
    assert clicks.all() == [(theirs.playlist_id, None)]


# ==================== Personal data ====================


@pytest.mark.asyncio
async def test_favorites_owner_only(
    async_client, regular_user, other_user, user_headers, make_playlist, db_session, helpers
):
    playlist = await make_playlist(other_user, name="Bob's Mix")
    db_session.add(PlaylistFavorite(playlist_id=playlist.playlist_id, user_id=regular_user.id))
    await db_session.commit()

    own = await async_client.get(f"/api/users/{regular_user.id}/favorites", headers=user_headers)
    assert own.status_code == 200
    assert [p["name"] for p in own.json()] == ["Bob's Mix"]
    assert own.json()[0]["owner_username"] == "bob"

    helpers.assert_error(
        await async_client.get(f"/api/users/{other_user.id}/favorites", headers=user_headers), 403
    )
    helpers.assert_error(await async_client.get(f"/api/users/{regular_user.id}/favorites"), 401)


@pytest.mark.asyncio
async def test_recommendations_fall_back_to_popular(
    async_client, regular_user, other_user, user_headers, make_playlist
):
    await make_playlist(other_user, name="Public Mix")
    await make_playlist(other_user, name="Hidden Mix", is_public=False)
    await make_playlist(regular_user, name="My Own Mix")

    response = await async_client.get(
        f"/api/users/{regular_user.id}/recommendations", headers=user_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["based_on_genres"] == []
    assert [p["name"] for p in data["recommendations"]] == ["Public Mix"]
