"""
Authentication Schemas

Pydantic models for auth and account request/response validation.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from playhub.api.access.gate import Principal
from playhub.api.access.rbac import ROLE_NAMES, Role


USERNAME_MAX_LENGTH = 16
PASSWORD_MIN_LENGTH = 6


def normalize_username(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Username cannot be empty")
    if len(value) > USERNAME_MAX_LENGTH:
        raise ValueError(f"Username must be at most {USERNAME_MAX_LENGTH} characters")
    return value


def check_password(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    return value


Username = Annotated[str, AfterValidator(normalize_username)]
Email = Annotated[EmailStr, AfterValidator(str.lower)]
Password = Annotated[str, AfterValidator(check_password)]


class UserRegisterRequest(BaseModel):
    """Self-service registration request."""

    username: Username
    email: Email
    password: Password


class UserLoginRequest(BaseModel):
    """Login request; credentials are compared as given."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User data response."""

    user_id: int
    username: str
    email: str
    role_id: int
    role_name: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_principal(cls, principal: Principal) -> "UserResponse":
        return cls(
            user_id=principal.id,
            username=principal.username,
            email=principal.email,
            role_id=principal.role.value,
            role_name=principal.role.label,
            created_at=principal.created_at,
        )

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            user_id=user.id,
            username=user.username,
            email=user.email,
            role_id=user.role_id,
            role_name=ROLE_NAMES[Role(user.role_id)],
            created_at=user.created_at,
        )


class AuthResponse(BaseModel):
    """Login response with the session token and user."""

    token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserResponse


class WhoAmIResponse(BaseModel):
    """Current principal; every field is null for anonymous visitors."""

    user_id: Optional[int] = None
    username: Optional[str] = None
    email: Optional[str] = None
    role_id: Optional[int] = None
    role_name: Optional[str] = None


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
    success: bool = True
