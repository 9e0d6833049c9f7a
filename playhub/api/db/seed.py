"""
Default Data

Rows every installation starts with: the four fixed roles, the three
default accounts and the default genres. Each step only runs against an
empty table, so seeding is safe to repeat on every start.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.rbac import ROLE_NAMES, Role
from playhub.api.auth.passwords import hash_password
from playhub.api.config import settings
from playhub.api.db.models import Genre, RoleRecord, User


logger = logging.getLogger(__name__)


DEFAULT_GENRES = ["Rock", "EDM", "Hip-Hop", "Chill", "Workout", "Pop", "Jazz", "Classical"]


async def _is_empty(session: AsyncSession, model) -> bool:
    count = await session.scalar(select(func.count()).select_from(model))
    return not count


async def seed_roles(session: AsyncSession) -> None:
    """Insert the four fixed roles."""
    if not await _is_empty(session, RoleRecord):
        return

    session.add_all(RoleRecord(role_id=role.value, name=ROLE_NAMES[role]) for role in Role)
    await session.commit()
    logger.info("Seeded %d roles", len(Role))


async def seed_users(session: AsyncSession) -> None:
    """Create the default admin, user and manager accounts."""
    if not await _is_empty(session, User):
        return

    accounts = [
        ("admin", "admin@example.com", settings.ADMIN_PASSWORD, Role.ADMINISTRATOR),
        ("user", "user@example.com", settings.USER_PASSWORD, Role.REGULAR_USER),
        ("manager", "manager@example.com", settings.USER_PASSWORD, Role.MANAGEMENT),
    ]
    for username, email, password, role in accounts:
        session.add(
            User(
                username=username,
                email=email,
                password_hash=hash_password(password),
                role_id=role.value,
            )
        )
        # Flush one at a time so ids follow the list order
        await session.flush()

    await session.commit()
    logger.info("Seeded default accounts: %s", ", ".join(a[0] for a in accounts))


async def seed_genres(session: AsyncSession, owner_id: int = 1) -> None:
    if not await _is_empty(session, Genre):
        return

    session.add_all(Genre(name=name, user_id=owner_id) for name in DEFAULT_GENRES)
    await session.commit()
    logger.info("Seeded %d genres", len(DEFAULT_GENRES))


async def seed_defaults(session: AsyncSession) -> None:
    """Seed everything a fresh database needs."""
    await seed_roles(session)
    await seed_users(session)
    await seed_genres(session)
