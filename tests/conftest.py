"""
PLAYHUB Test Configuration
==========================

Fixtures shared by the unit tests, which exercise the access layer
without a database or an HTTP app.
"""

import os

# Cheap hashes in tests; must be set before settings are loaded
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone

import pytest

from playhub.api.access.audit import AuditLogView
from playhub.api.access.gate import Principal
from playhub.api.access.rbac import Role


@pytest.fixture
def make_principal():
    """Factory for principals of a given role."""

    def _make(role: Role, user_id: int = 1, username: str = "someone") -> Principal:
        return Principal(
            id=user_id,
            username=username,
            email=f"{username}@example.com",
            role=role,
        )

    return _make


@pytest.fixture
def admin(make_principal):
    return make_principal(Role.ADMINISTRATOR, user_id=1, username="admin")


@pytest.fixture
def regular(make_principal):
    return make_principal(Role.REGULAR_USER, user_id=2, username="alice")


@pytest.fixture
def audit_views():
    """Factory for audit rows, newest first, one second apart."""

    def _make(count: int):
        start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        return [
            AuditLogView(
                id=count - i,
                action="USER_LOGIN",
                target_id=count - i,
                timestamp=start - timedelta(seconds=i),
                user_id=1 if i % 2 else None,
                username="admin" if i % 2 else None,
            )
            for i in range(count)
        ]

    return _make
