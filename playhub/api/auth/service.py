"""
Authentication Service

Business logic for registration, credential checks and sessions.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.gate import Principal
from playhub.api.access.rbac import Role
from playhub.api.auth.cache import principal_from_user
from playhub.api.auth.passwords import burn_verification, hash_password, verify_password
from playhub.api.auth.sessions import SessionStore
from playhub.api.db.models import User
from playhub.api.errors import ConflictError


logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service with password and session management."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.sessions = SessionStore(db)

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        role: Role = Role.REGULAR_USER,
    ) -> User:
        """
        Create a user account.

        Args:
            username: Already normalized username
            email: Already normalized email
            password: Plain text password, hashed before storage
            role: Role of the new account

        Returns:
            Created user

        Raises:
            ConflictError: If the username or email is taken
        """
        if await self.get_user_by_username(username):
            raise ConflictError("Username already exists")
        if await self.get_user_by_email(email):
            raise ConflictError("Email already exists")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role_id=role.value,
        )

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            raise ConflictError("Username or email already exists")
        await self.db.refresh(user)

        logger.info("User registered: %s (id=%s, role=%s)", user.username, user.id, role.name)
        return user

    async def authenticate(self, username: str, password: str) -> Optional[Principal]:
        """
        Check a username/password pair.

        The two failure causes are logged separately but both return
        None, so callers cannot tell them apart.

        Returns:
            The principal if the credentials match, None otherwise
        """
        user = await self.get_user_by_username(username)

        if user is None:
            burn_verification()
            logger.warning("Login failed: unknown username %r", username)
            return None

        if not verify_password(password, user.password_hash):
            logger.warning("Login failed: bad password for user id=%s", user.id)
            return None

        return principal_from_user(user)

    async def start_session(self, principal: Principal) -> str:
        """Open a session and return its token."""
        return await self.sessions.start(principal.id)

    async def end_session(self, token: Optional[str]) -> Optional[int]:
        return await self.sessions.end(token)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by exact (case-sensitive) username."""
        result = await self.db.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        result = await self.db.execute(
            select(User).where(User.email == email)
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return await self.db.get(User, user_id)
