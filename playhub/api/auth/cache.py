"""
Principal Cache

Process-wide snapshot of every user, keyed by id and by username.

The snapshot is replaced as a whole: ``reload_all`` builds new dicts
and swaps them in with a single assignment, so a concurrent reader sees
either the old or the new snapshot, never a mix. Any operation that
changes a user row calls ``invalidate()``; the next lookup reloads.
"""

import asyncio
import logging
from types import MappingProxyType
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.gate import Principal
from playhub.api.access.rbac import Role
from playhub.api.db.models import User


logger = logging.getLogger(__name__)


class _Snapshot:
    __slots__ = ("by_id", "by_username")

    def __init__(self, by_id: Mapping[int, Principal], by_username: Mapping[str, Principal]):
        self.by_id = by_id
        self.by_username = by_username


def principal_from_user(user: User) -> Principal:
    return Principal(
        id=user.id,
        username=user.username,
        email=user.email,
        role=Role(user.role_id),
        created_at=user.created_at,
    )


class PrincipalCache:
    """
    Injectable cache of all principals.

    Example:
        cache = PrincipalCache()
        principal = await cache.get(db, user_id)
        ...
        cache.invalidate()  # after changing any user
    """

    def __init__(self):
        self._snapshot: Optional[_Snapshot] = None
        self._stale = True
        self._lock = asyncio.Lock()
        self.reload_count = 0

    @property
    def is_stale(self) -> bool:
        return self._stale or self._snapshot is None

    def invalidate(self) -> None:
        """Mark the snapshot stale; the next lookup reloads it."""
        self._stale = True

    async def reload_all(self, db: AsyncSession) -> None:
        """Load every user and swap in the new snapshot."""
        async with self._lock:
            await self._load(db)

    async def _load(self, db: AsyncSession) -> None:
        # Clear the flag before reading so an invalidate() during the
        # load forces another reload.
        self._stale = False
        result = await db.execute(select(User))
        principals = [principal_from_user(u) for u in result.scalars().all()]

        self._snapshot = _Snapshot(
            by_id=MappingProxyType({p.id: p for p in principals}),
            by_username=MappingProxyType({p.username: p for p in principals}),
        )
        self.reload_count += 1
        logger.debug("Principal cache reloaded (%d users)", len(principals))

    async def _current(self, db: AsyncSession) -> _Snapshot:
        if self.is_stale:
            async with self._lock:
                # Another reader may have reloaded while we waited
                if self.is_stale:
                    await self._load(db)
        return self._snapshot

    async def get(self, db: AsyncSession, user_id: int) -> Optional[Principal]:
        snapshot = await self._current(db)
        return snapshot.by_id.get(user_id)

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[Principal]:
        """Case-sensitive exact match."""
        snapshot = await self._current(db)
        return snapshot.by_username.get(username)
