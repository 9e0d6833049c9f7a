"""
Session Store

Durable, server-side login sessions keyed by an opaque token.

The client holds a random URL-safe token; the database holds only its
SHA-256 digest, the bound user id and a fixed expiry (created_at +
SESSION_TTL_HOURS, never extended). Sessions survive process restarts
because they live in the database.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.config import settings
from playhub.api.db.models import AuthSession, utcnow


logger = logging.getLogger(__name__)


def token_digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def get_session_ttl_seconds() -> int:
    """Session lifetime in seconds (cookie max-age)."""
    return settings.SESSION_TTL_HOURS * 3600


class SessionStore:
    """Create, resolve and destroy sessions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def start(self, user_id: int) -> str:
        """
        Open a session for a user.

        Returns:
            The opaque token to hand to the client
        """
        token = secrets.token_urlsafe(32)
        now = utcnow()

        self.db.add(
            AuthSession(
                token_digest=token_digest(token),
                user_id=user_id,
                created_at=now,
                expires_at=now + timedelta(hours=settings.SESSION_TTL_HOURS),
            )
        )
        await self.db.commit()

        logger.info("Session started for user %s", user_id)
        return token

    async def resolve(self, token: Optional[str]) -> Optional[int]:
        """Return the user id bound to a live session, None otherwise."""
        if not token:
            return None

        result = await self.db.execute(
            select(AuthSession.user_id).where(
                AuthSession.token_digest == token_digest(token),
                AuthSession.expires_at > utcnow(),
            )
        )
        return result.scalar_one_or_none()

    async def end(self, token: Optional[str]) -> Optional[int]:
        """
        Destroy a session. Idempotent.

        Returns:
            The user id the session was bound to, if it existed
        """
        if not token:
            return None

        digest = token_digest(token)
        user_id = await self.db.scalar(
            select(AuthSession.user_id).where(AuthSession.token_digest == digest)
        )
        await self.db.execute(delete(AuthSession).where(AuthSession.token_digest == digest))
        await self.db.commit()
        return user_id

    async def end_all_for_user(self, user_id: int) -> None:
        """Destroy every session of a user (account deletion)."""
        await self.db.execute(delete(AuthSession).where(AuthSession.user_id == user_id))

    async def purge_expired(self) -> int:
        """Delete expired sessions; returns how many were removed."""
        result = await self.db.execute(
            delete(AuthSession).where(AuthSession.expires_at <= utcnow())
        )
        await self.db.commit()
        if result.rowcount:
            logger.info("Purged %d expired sessions", result.rowcount)
        return result.rowcount or 0
