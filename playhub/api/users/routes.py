"""
User Routes

API endpoints for account management, personal favorites and
recommendations.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.audit import AuditAction, AuditRecorder
from playhub.api.access.gate import Principal, check_not_self, check_owner_or_role
from playhub.api.access.rbac import ADMIN_ONLY
from playhub.api.auth.cache import PrincipalCache
from playhub.api.auth.schemas import MessageResponse, UserResponse
from playhub.api.db.session import get_db
from playhub.api.dependencies import (
    get_audit_recorder,
    get_current_principal,
    get_principal_cache,
    require_roles,
)
from playhub.api.playlists.schemas import PlaylistSummary, RecommendationsResponse
from playhub.api.playlists.service import PlaylistService
from playhub.api.users.schemas import (
    RoleChangeRequest,
    RoleChangeResponse,
    UserCreateRequest,
    UserUpdateRequest,
)
from playhub.api.users.service import UserService


router = APIRouter()


def get_user_service(
    db: AsyncSession = Depends(get_db),
    cache: PrincipalCache = Depends(get_principal_cache),
) -> UserService:
    """Dependency to get user service."""
    return UserService(db, cache)


@router.get(
    "",
    response_model=List[UserResponse],
    summary="List all users",
)
async def list_users(
    admin: Principal = Depends(require_roles(ADMIN_ONLY)),
    service: UserService = Depends(get_user_service),
) -> List[UserResponse]:
    return [UserResponse.from_user(u) for u in await service.list_users()]


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
async def create_user(
    data: UserCreateRequest,
    admin: Principal = Depends(require_roles(ADMIN_ONLY)),
    service: UserService = Depends(get_user_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> UserResponse:
    """Create an account with any role (administrator only)."""
    user = await service.create_user(data)
    response = UserResponse.from_user(user)

    await audit.record(AuditAction.USER_CREATED, user.id, admin.id)
    return response


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user",
)
async def get_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    check_owner_or_role(principal, user_id, message="You can only view your own profile").unwrap()
    return UserResponse.from_user(await service.get_or_404(user_id))


@router.put(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Update a user",
)
async def update_user(
    user_id: int,
    data: UserUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> MessageResponse:
    """
    Update username, email or password.

    Non-administrators may only update themselves and must supply
    ``current_password`` to change their password.
    """
    check_owner_or_role(principal, user_id, message="You can only update your own profile").unwrap()

    user = await service.get_or_404(user_id)
    await service.update_user(user, data, principal)
    await audit.record(AuditAction.USER_UPDATED, user_id, principal.id)

    return MessageResponse(message="User updated successfully")


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a user",
)
async def delete_user(
    user_id: int,
    admin: Principal = Depends(require_roles(ADMIN_ONLY)),
    service: UserService = Depends(get_user_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> None:
    check_not_self(admin, user_id, "You cannot delete your own account").unwrap()

    user = await service.get_or_404(user_id)
    await service.delete_user(user)
    await audit.record(AuditAction.USER_DELETED, user_id, admin.id)


@router.put(
    "/{user_id}/role",
    response_model=RoleChangeResponse,
    summary="Change a user's role",
)
async def change_role(
    user_id: int,
    data: RoleChangeRequest,
    admin: Principal = Depends(require_roles(ADMIN_ONLY)),
    service: UserService = Depends(get_user_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> RoleChangeResponse:
    """The new role applies from the user's next request; no re-login needed."""
    check_not_self(admin, user_id, "You cannot change your own role").unwrap()

    user = await service.get_or_404(user_id)
    role = await service.change_role(user, data.role_id)
    await audit.record(AuditAction.USER_ROLE_CHANGED, user_id, admin.id)

    return RoleChangeResponse(user_id=user_id, role_id=role.value, role_name=role.label)


@router.get(
    "/{user_id}/favorites",
    response_model=List[PlaylistSummary],
    summary="Get a user's favorite playlists",
)
async def get_favorites(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> List[PlaylistSummary]:
    check_owner_or_role(principal, user_id, message="You can only view your own favorites").unwrap()
    return await PlaylistService(db).favorites_of(user_id)


@router.get(
    "/{user_id}/recommendations",
    response_model=RecommendationsResponse,
    summary="Get personalized recommendations",
)
async def get_recommendations(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> RecommendationsResponse:
    check_owner_or_role(
        principal, user_id, message="You can only view your own recommendations"
    ).unwrap()

    genres, playlists = await PlaylistService(db).recommendations_for(user_id)
    return RecommendationsResponse(based_on_genres=genres, recommendations=playlists)
