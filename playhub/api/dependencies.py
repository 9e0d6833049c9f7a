"""
FastAPI Dependencies

Request-scoped wiring between the HTTP layer and the access layer:
session token -> principal -> gate decision.
"""

from typing import AbstractSet, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.audit import AuditRecorder
from playhub.api.access.gate import Principal, check_authenticated, check_role
from playhub.api.access.rbac import Role
from playhub.api.auth.cache import PrincipalCache
from playhub.api.auth.sessions import SessionStore
from playhub.api.config import settings
from playhub.api.db.session import get_db


bearer = HTTPBearer(auto_error=False)


def get_principal_cache(request: Request) -> PrincipalCache:
    """The application's principal cache (created in ``create_app``)."""
    return request.app.state.principal_cache


def get_audit_recorder(db: AsyncSession = Depends(get_db)) -> AuditRecorder:
    return AuditRecorder(db)


async def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Optional[str]:
    """Session token from ``Authorization: Bearer`` or the session cookie."""
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_optional_principal(
    token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db),
    cache: PrincipalCache = Depends(get_principal_cache),
) -> Optional[Principal]:
    """
    Resolve the acting principal, None when anonymous.

    The session only stores the user id; role and username come from the
    principal cache on every request, so administrator changes apply to
    the very next request.
    """
    user_id = await SessionStore(db).resolve(token)
    if user_id is None:
        return None
    return await cache.get(db, user_id)


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """
    Require an authenticated principal.

    Raises:
        AccessError: AUTHENTICATION_REQUIRED when anonymous
    """
    return check_authenticated(principal).unwrap()


def require_roles(allowed_roles: AbstractSet[Role]):
    """
    Dependency factory gating a route on a role set.

    Usage:
        @router.get("/stats")
        async def stats(principal: Principal = Depends(require_roles(ANALYTICS_READERS))):
            ...
    """

    async def dependency(
        principal: Optional[Principal] = Depends(get_optional_principal),
    ) -> Principal:
        return check_role(principal, allowed_roles).unwrap()

    return dependency
