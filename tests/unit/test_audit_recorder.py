"""
Tests for the Audit Recorder
============================

The recorder runs against a mocked session: a failed write must be
logged and swallowed, never raised into the calling route.
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from playhub.api.access.audit import AuditAction, AuditRecorder
from playhub.api.db.models import AuditEntry


def make_session(commit_error=None):
    session = MagicMock()
    session.commit = AsyncMock(side_effect=commit_error)
    session.rollback = AsyncMock()
    return session


class TestAuditRecorder:

    @pytest.mark.asyncio
    async def test_records_entry(self):
        session = make_session()

        entry = await AuditRecorder(session).record(AuditAction.PLAYLIST_CREATED, 7, 3)

        assert isinstance(entry, AuditEntry)
        assert (entry.action, entry.target_id, entry.user_id) == ("PLAYLIST_CREATED", 7, 3)
        session.add.assert_called_once_with(entry)
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_anonymous_actor(self):
        entry = await AuditRecorder(make_session()).record(AuditAction.USER_CREATED, 9, None)
        assert entry.user_id is None

    @pytest.mark.asyncio
    async def test_failed_write_is_swallowed(self, caplog):
        session = make_session(OperationalError("INSERT", {}, Exception("database is locked")))

        with caplog.at_level(logging.ERROR, logger="playhub.api.access.audit"):
            entry = await AuditRecorder(session).record(AuditAction.GENRE_DELETED, 4, 1)

        assert entry is None
        session.rollback.assert_awaited_once()
        assert "Audit write failed" in caplog.text
        assert "GENRE_DELETED" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_action_is_a_bug(self):
        session = make_session()

        with pytest.raises(TypeError):
            await AuditRecorder(session).record("PLAYLIST_CLICKED", 1, 1)

        session.add.assert_not_called()
