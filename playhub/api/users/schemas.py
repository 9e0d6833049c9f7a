"""
User Management Schemas
"""

from typing import Optional

from pydantic import BaseModel

from playhub.api.access.rbac import Role
from playhub.api.auth.schemas import Email, Password, Username


class UserCreateRequest(BaseModel):
    """Administrator-created account; any role may be assigned."""

    username: Username
    email: Email
    password: Password
    role_id: int = Role.REGULAR_USER.value


class UserUpdateRequest(BaseModel):
    """
    Partial profile update.

    ``current_password`` is required when a non-administrator changes
    their own password.
    """

    username: Optional[Username] = None
    email: Optional[Email] = None
    password: Optional[Password] = None
    current_password: Optional[str] = None


class RoleChangeRequest(BaseModel):
    # Validated against the role model in the service, not here, so an
    # out-of-range id yields a 400 with the list of valid roles.
    role_id: int


class RoleChangeResponse(BaseModel):
    message: str = "User role updated successfully"
    user_id: int
    role_id: int
    role_name: str
