"""
Genre Routes

Public genre listing; moderation by Administrators and Management.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.audit import AuditAction, AuditRecorder
from playhub.api.access.gate import Principal
from playhub.api.access.rbac import GENRE_MODERATORS
from playhub.api.db.session import get_db
from playhub.api.dependencies import get_audit_recorder, require_roles
from playhub.api.genres.schemas import GenreDetailResponse, GenreRequest, GenreResponse
from playhub.api.genres.service import GenreService


router = APIRouter()


def get_genre_service(db: AsyncSession = Depends(get_db)) -> GenreService:
    """Dependency to get genre service."""
    return GenreService(db)


@router.get(
    "",
    response_model=List[GenreResponse],
    summary="List genres",
)
async def list_genres(
    service: GenreService = Depends(get_genre_service),
) -> List[GenreResponse]:
    return await service.list_genres()


@router.get(
    "/{genre_id}",
    response_model=GenreDetailResponse,
    summary="Get a genre",
)
async def get_genre(
    genre_id: int,
    service: GenreService = Depends(get_genre_service),
) -> GenreDetailResponse:
    return await service.detail(await service.get_or_404(genre_id))


@router.post(
    "",
    response_model=GenreDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a genre",
)
async def create_genre(
    data: GenreRequest,
    principal: Principal = Depends(require_roles(GENRE_MODERATORS)),
    service: GenreService = Depends(get_genre_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> GenreDetailResponse:
    genre = await service.create(data.name, principal.id)
    response = await service.detail(genre)

    await audit.record(AuditAction.GENRE_CREATED, response.genre_id, principal.id)
    return response


@router.put(
    "/{genre_id}",
    response_model=GenreDetailResponse,
    summary="Rename a genre",
)
async def update_genre(
    genre_id: int,
    data: GenreRequest,
    principal: Principal = Depends(require_roles(GENRE_MODERATORS)),
    service: GenreService = Depends(get_genre_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> GenreDetailResponse:
    genre = await service.rename(await service.get_or_404(genre_id), data.name)
    response = await service.detail(genre)

    await audit.record(AuditAction.GENRE_UPDATED, genre_id, principal.id)
    return response


@router.delete(
    "/{genre_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a genre",
)
async def delete_genre(
    genre_id: int,
    principal: Principal = Depends(require_roles(GENRE_MODERATORS)),
    service: GenreService = Depends(get_genre_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> None:
    """Fails with 409 while any playlist still uses the genre."""
    await service.delete(await service.get_or_404(genre_id))
    await audit.record(AuditAction.GENRE_DELETED, genre_id, principal.id)
