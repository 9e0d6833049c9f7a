"""
PLAYHUB - Audit Logging System
==============================

Append-only trail of every state-changing action, and the
administrator-only read side over it.

Write path:
    A route commits its own change first, then calls
    ``AuditRecorder.record``. An entry therefore implies the action it
    describes happened. A failed audit write is logged and swallowed;
    it never rolls back or fails the primary operation.

Read path:
    ``AuditQuery`` lists entries newest first (timestamp DESC, id DESC),
    filters by action and actor, summarizes counts per action, and feeds
    the PDF export in ``playhub.api.access.report``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.config import settings
from playhub.api.db.models import AuditEntry, User


logger = logging.getLogger(__name__)


# ============================================================
# Audit Actions
# ============================================================


class AuditAction(str, Enum):
    """Closed set of auditable actions (version 1)."""

    # Users
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"
    USER_ROLE_CHANGED = "USER_ROLE_CHANGED"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"

    # Genres
    GENRE_CREATED = "GENRE_CREATED"
    GENRE_UPDATED = "GENRE_UPDATED"
    GENRE_DELETED = "GENRE_DELETED"

    # Playlists
    PLAYLIST_CREATED = "PLAYLIST_CREATED"
    PLAYLIST_UPDATED = "PLAYLIST_UPDATED"
    PLAYLIST_DELETED = "PLAYLIST_DELETED"
    PLAYLIST_PUBLISHED = "PLAYLIST_PUBLISHED"
    PLAYLIST_UNPUBLISHED = "PLAYLIST_UNPUBLISHED"

    # Songs
    SONG_ADDED = "SONG_ADDED"
    SONG_UPDATED = "SONG_UPDATED"
    SONG_REMOVED = "SONG_REMOVED"

    # Social
    PLAYLIST_LIKED = "PLAYLIST_LIKED"
    PLAYLIST_UNLIKED = "PLAYLIST_UNLIKED"
    PLAYLIST_FAVORITED = "PLAYLIST_FAVORITED"
    PLAYLIST_UNFAVORITED = "PLAYLIST_UNFAVORITED"


AUDIT_SCHEMA_VERSION = 1


AUDIT_MESSAGES: Dict[AuditAction, str] = {
    AuditAction.USER_CREATED: "User account created",
    AuditAction.USER_UPDATED: "User account updated",
    AuditAction.USER_DELETED: "User account deleted",
    AuditAction.USER_ROLE_CHANGED: "User role changed",
    AuditAction.USER_LOGIN: "User logged in",
    AuditAction.USER_LOGOUT: "User logged out",
    AuditAction.GENRE_CREATED: "Genre created",
    AuditAction.GENRE_UPDATED: "Genre updated",
    AuditAction.GENRE_DELETED: "Genre deleted",
    AuditAction.PLAYLIST_CREATED: "Playlist created",
    AuditAction.PLAYLIST_UPDATED: "Playlist updated",
    AuditAction.PLAYLIST_DELETED: "Playlist deleted",
    AuditAction.PLAYLIST_PUBLISHED: "Playlist published",
    AuditAction.PLAYLIST_UNPUBLISHED: "Playlist unpublished",
    AuditAction.SONG_ADDED: "Song added to playlist",
    AuditAction.SONG_UPDATED: "Song updated in playlist",
    AuditAction.SONG_REMOVED: "Song removed from playlist",
    AuditAction.PLAYLIST_LIKED: "Playlist liked",
    AuditAction.PLAYLIST_UNLIKED: "Playlist unliked",
    AuditAction.PLAYLIST_FAVORITED: "Playlist added to favorites",
    AuditAction.PLAYLIST_UNFAVORITED: "Playlist removed from favorites",
}


def format_audit_message(action: AuditAction, details: Optional[Dict[str, object]] = None) -> str:
    """Human-readable description of an action, with optional ``key: value`` details."""
    message = AUDIT_MESSAGES[action]
    if details:
        detail_str = ", ".join(f"{key}: {value}" for key, value in details.items())
        message += f" ({detail_str})"
    return message


def parse_action(value: str) -> Optional[AuditAction]:
    """Map a stored or user-supplied code back to the enum, None if unknown."""
    try:
        return AuditAction(value)
    except ValueError:
        return None


# ============================================================
# Recorder (write side)
# ============================================================


class AuditRecorder:
    """
    Appends entries to the audit log.

    Must be called after the primary operation has committed.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        action: AuditAction,
        target_id: Optional[int],
        actor_id: Optional[int],
    ) -> Optional[AuditEntry]:
        """
        Append one entry and commit it.

        Args:
            action: Action code; anything outside ``AuditAction`` is a bug
            target_id: Id of the affected entity, if any
            actor_id: Id of the acting principal, None for anonymous/system

        Returns:
            The stored entry, or None if the write failed

        Raises:
            TypeError: If ``action`` is not an ``AuditAction``
        """
        if not isinstance(action, AuditAction):
            raise TypeError(f"Unknown audit action: {action!r}")

        entry = AuditEntry(action=action.value, target_id=target_id, user_id=actor_id)

        try:
            self.db.add(entry)
            await self.db.commit()
        except SQLAlchemyError:
            logger.exception(
                "Audit write failed: action=%s target=%s actor=%s",
                action.value, target_id, actor_id,
            )
            await self.db.rollback()
            return None

        logger.debug(
            "AUDIT %s target=%s actor=%s id=%s",
            action.value, target_id, actor_id, entry.id,
        )
        return entry


# ============================================================
# Query (read side)
# ============================================================


@dataclass
class AuditLogView:
    """Audit entry enriched with the actor's current username."""

    id: int
    action: str
    target_id: Optional[int]
    timestamp: datetime
    user_id: Optional[int]
    username: Optional[str]

    @property
    def message(self) -> str:
        action = parse_action(self.action)
        return AUDIT_MESSAGES[action] if action else self.action

    @property
    def display_user(self) -> str:
        return self.username or "System"


def clamp_page_size(page_size: Optional[int]) -> int:
    """Clamp a requested page size into [1, AUDIT_MAX_PAGE_SIZE]."""
    if page_size is None:
        page_size = settings.AUDIT_PAGE_SIZE
    return min(max(1, page_size), settings.AUDIT_MAX_PAGE_SIZE)


class AuditQuery:
    """Read-only access to the audit log."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _ordered(query):
        # Timestamps can coincide; insertion order (id) breaks the tie.
        return query.order_by(desc(AuditEntry.timestamp), desc(AuditEntry.id))

    async def list_entries(
        self,
        action: Optional[AuditAction] = None,
        actor_id: Optional[int] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Tuple[List[AuditLogView], int]:
        """
        Get one page of entries, newest first.

        Returns:
            Tuple of (entries, total matching entries)
        """
        page = max(1, page)
        page_size = clamp_page_size(page_size)

        query = select(AuditEntry)
        if action is not None:
            query = query.where(AuditEntry.action == action.value)
        if actor_id is not None:
            query = query.where(AuditEntry.user_id == actor_id)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query) or 0

        query = self._ordered(query).limit(page_size).offset((page - 1) * page_size)
        result = await self.db.execute(query)
        entries = result.scalars().all()

        return await self._enrich(entries), total

    async def recent(self, limit: Optional[int] = None) -> List[AuditLogView]:
        """Most recent entries, same ordering as ``list_entries``."""
        limit = limit or settings.AUDIT_EXPORT_LIMIT
        result = await self.db.execute(self._ordered(select(AuditEntry)).limit(limit))
        return await self._enrich(result.scalars().all())

    async def get_entry(self, entry_id: int) -> Optional[AuditLogView]:
        entry = await self.db.get(AuditEntry, entry_id)
        if entry is None:
            return None
        views = await self._enrich([entry])
        return views[0]

    async def action_summary(self) -> List[Tuple[str, int]]:
        """Distinct actions with their occurrence counts, most frequent first."""
        count = func.count(AuditEntry.id).label("count")
        result = await self.db.execute(
            select(AuditEntry.action, count)
            .group_by(AuditEntry.action)
            .order_by(desc(count), AuditEntry.action)
        )
        return [(action, total) for action, total in result.all()]

    async def _enrich(self, entries: Iterable[AuditEntry]) -> List[AuditLogView]:
        entries = list(entries)
        actor_ids = {e.user_id for e in entries if e.user_id is not None}

        usernames: Dict[int, str] = {}
        if actor_ids:
            result = await self.db.execute(
                select(User.id, User.username).where(User.id.in_(actor_ids))
            )
            usernames = dict(result.all())

        return [
            AuditLogView(
                id=e.id,
                action=e.action,
                target_id=e.target_id,
                timestamp=e.timestamp,
                user_id=e.user_id,
                username=usernames.get(e.user_id) if e.user_id is not None else None,
            )
            for e in entries
        ]
