"""
User Management Service

Administrator and self-service operations on user accounts. Every
method that changes a user row invalidates the principal cache, so the
change is visible to the very next request.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.gate import Principal
from playhub.api.access.rbac import Role, parse_role
from playhub.api.auth.cache import PrincipalCache
from playhub.api.auth.passwords import hash_password, verify_password
from playhub.api.auth.service import AuthService
from playhub.api.auth.sessions import SessionStore
from playhub.api.db.models import User
from playhub.api.errors import (
    AccessError,
    AccessFailure,
    BadRequestError,
    ConflictError,
    NotFoundError,
)
from playhub.api.playlists.service import PlaylistService
from playhub.api.users.schemas import UserCreateRequest, UserUpdateRequest


logger = logging.getLogger(__name__)


INVALID_ROLE_MESSAGE = (
    "Invalid role ID. Must be 0 (Admin), 1 (Management), 2 (Regular User), or 3 (Unregistered)"
)


class UserService:
    """User management service."""

    def __init__(self, db: AsyncSession, cache: PrincipalCache):
        self.db = db
        self.cache = cache

    async def list_users(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    async def get_or_404(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def create_user(self, data: UserCreateRequest) -> User:
        role = parse_role(data.role_id)
        if role is None:
            raise BadRequestError(INVALID_ROLE_MESSAGE)

        user = await AuthService(self.db).register(data.username, data.email, data.password, role)
        self.cache.invalidate()
        return user

    async def update_user(self, user: User, data: UserUpdateRequest, actor: Principal) -> None:
        """
        Apply a partial profile update.

        Raises:
            BadRequestError: Nothing to update, or missing current password
            ConflictError: Username or email taken by another user
            AccessError: Wrong current password (INVALID_CREDENTIALS)
        """
        fields = data.model_dump(exclude_unset=True, exclude={"current_password"})
        fields = {name: value for name, value in fields.items() if value is not None}
        if not fields:
            raise BadRequestError("No fields to update")

        if "username" in fields:
            await self._ensure_free(User.username, fields["username"], user.id, "Username already taken")
        if "email" in fields:
            await self._ensure_free(User.email, fields["email"], user.id, "Email already taken")

        if "password" in fields:
            if not actor.is_admin:
                if not data.current_password:
                    raise BadRequestError("Current password is required")
                if not verify_password(data.current_password, user.password_hash):
                    raise AccessError(
                        AccessFailure.INVALID_CREDENTIALS, "Current password is incorrect"
                    )
            user.password_hash = hash_password(fields.pop("password"))

        for name, value in fields.items():
            setattr(user, name, value)

        await self.db.commit()
        self.cache.invalidate()
        logger.info("User %s updated by user %s", user.id, actor.id)

    async def delete_user(self, user: User) -> None:
        """Delete an account with its sessions, playlists, likes and favorites."""
        user_id = user.id
        try:
            await SessionStore(self.db).end_all_for_user(user_id)
            await PlaylistService(self.db).delete_owned_by(user_id)
            await self.db.delete(user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        self.cache.invalidate()
        logger.info("User %s deleted", user_id)

    async def change_role(self, user: User, role_id: int) -> Role:
        role = parse_role(role_id)
        if role is None:
            raise BadRequestError(INVALID_ROLE_MESSAGE)

        user.role_id = role.value
        await self.db.commit()
        self.cache.invalidate()
        logger.info("User %s role changed to %s", user.id, role.name)
        return role

    async def _ensure_free(self, column, value: str, user_id: int, message: str) -> None:
        taken = await self.db.scalar(
            select(User.id).where(column == value, User.id != user_id)
        )
        if taken is not None:
            raise ConflictError(message)
