"""
Authentication Routes

Login, logout, who-am-I and self-service registration.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.audit import AuditAction, AuditRecorder
from playhub.api.access.gate import Principal
from playhub.api.auth.cache import PrincipalCache
from playhub.api.auth.schemas import (
    AuthResponse,
    MessageResponse,
    UserLoginRequest,
    UserRegisterRequest,
    UserResponse,
    WhoAmIResponse,
)
from playhub.api.auth.service import AuthService
from playhub.api.auth.sessions import get_session_ttl_seconds
from playhub.api.config import settings
from playhub.api.db.session import get_db
from playhub.api.dependencies import (
    get_audit_recorder,
    get_optional_principal,
    get_principal_cache,
    get_session_token,
)
from playhub.api.errors import AccessError, AccessFailure


router = APIRouter()


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """Dependency to get auth service."""
    return AuthService(db)


@router.post(
    "",
    response_model=AuthResponse,
    summary="Login and open a session",
)
async def login(
    data: UserLoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> AuthResponse:
    """
    Authenticate with username and password.

    The session token is returned in the body and also set as an
    HttpOnly cookie; either can be presented on later requests.
    """
    principal = await auth_service.authenticate(data.username, data.password)
    if principal is None:
        raise AccessError(AccessFailure.INVALID_CREDENTIALS)

    token = await auth_service.start_session(principal)
    expires_in = get_session_ttl_seconds()

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=expires_in,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )

    await audit.record(AuditAction.USER_LOGIN, principal.id, principal.id)

    return AuthResponse(
        token=token,
        expires_in=expires_in,
        user=UserResponse.from_principal(principal),
    )


@router.delete(
    "",
    response_model=MessageResponse,
    summary="Logout",
)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> MessageResponse:
    """Destroy the current session. Succeeds even without one."""
    user_id = await auth_service.end_session(token)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)

    if user_id is not None:
        await audit.record(AuditAction.USER_LOGOUT, user_id, user_id)

    return MessageResponse(message="Logged out")


@router.get(
    "",
    response_model=WhoAmIResponse,
    summary="Get the current principal",
)
async def whoami(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> WhoAmIResponse:
    if principal is None:
        return WhoAmIResponse()

    return WhoAmIResponse(
        user_id=principal.id,
        username=principal.username,
        email=principal.email,
        role_id=principal.role.value,
        role_name=principal.role.label,
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    data: UserRegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    cache: PrincipalCache = Depends(get_principal_cache),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> UserResponse:
    """
    Register a Regular User account.

    - **username**: 1-16 characters, unique
    - **email**: Valid email address, unique
    - **password**: Minimum 6 characters
    """
    user = await auth_service.register(data.username, data.email, data.password)
    cache.invalidate()
    response = UserResponse.from_user(user)

    await audit.record(AuditAction.USER_CREATED, user.id, None)
    return response
