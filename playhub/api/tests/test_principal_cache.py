"""
Principal Cache Tests
"""

import asyncio

import pytest

from playhub.api.access.rbac import Role
from playhub.api.auth.cache import PrincipalCache
from playhub.api.db.models import User


@pytest.mark.asyncio
async def test_first_lookup_loads_snapshot(db_session, regular_user):
    cache = PrincipalCache()
    assert cache.is_stale

    principal = await cache.get(db_session, regular_user.id)

    assert principal.username == "alice"
    assert principal.role == Role.REGULAR_USER
    assert not cache.is_stale
    assert cache.reload_count == 1


@pytest.mark.asyncio
async def test_lookups_are_served_from_snapshot(db_session, regular_user, other_user):
    cache = PrincipalCache()

    await cache.get(db_session, regular_user.id)
    await cache.get(db_session, other_user.id)
    await cache.get_by_username(db_session, "bob")

    assert cache.reload_count == 1


@pytest.mark.asyncio
async def test_invalidate_picks_up_changes(db_session, regular_user):
    cache = PrincipalCache()
    await cache.get(db_session, regular_user.id)

    user = await db_session.get(User, regular_user.id)
    user.role_id = Role.MANAGEMENT.value
    await db_session.commit()

    # Stale until invalidated
    assert (await cache.get(db_session, regular_user.id)).role == Role.REGULAR_USER

    cache.invalidate()
    assert (await cache.get(db_session, regular_user.id)).role == Role.MANAGEMENT
    assert cache.reload_count == 2


@pytest.mark.asyncio
async def test_username_lookup_is_case_sensitive(db_session, regular_user):
    cache = PrincipalCache()

    assert (await cache.get_by_username(db_session, "alice")).id == regular_user.id
    assert await cache.get_by_username(db_session, "Alice") is None


@pytest.mark.asyncio
async def test_unknown_user(db_session, regular_user):
    cache = PrincipalCache()
    assert await cache.get(db_session, 999) is None


@pytest.mark.asyncio
async def test_concurrent_readers_share_one_reload(db_session, regular_user, other_user):
    cache = PrincipalCache()

    results = await asyncio.gather(
        *[cache.get(db_session, uid) for uid in (regular_user.id, other_user.id) * 5]
    )

    assert [p.username for p in results] == ["alice", "bob"] * 5
    assert cache.reload_count == 1


@pytest.mark.asyncio
async def test_principals_are_immutable(db_session, regular_user):
    cache = PrincipalCache()
    principal = await cache.get(db_session, regular_user.id)

    with pytest.raises(AttributeError):
        principal.role = Role.ADMINISTRATOR


@pytest.mark.asyncio
async def test_explicit_reload(db_session, regular_user):
    cache = PrincipalCache()

    await cache.reload_all(db_session)
    await cache.reload_all(db_session)

    assert cache.reload_count == 2
    assert not cache.is_stale
