"""
Playlist Routes

API endpoints for playlists, their songs, likes, favorites and clicks.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.audit import AuditAction, AuditRecorder
from playhub.api.access.gate import Principal, check_owner_or_role
from playhub.api.access.rbac import PLAYLIST_AUTHORS, SOCIAL_ROLES
from playhub.api.auth.schemas import MessageResponse
from playhub.api.db.models import Playlist
from playhub.api.db.session import get_db
from playhub.api.dependencies import (
    get_audit_recorder,
    get_current_principal,
    get_optional_principal,
    require_roles,
)
from playhub.api.playlists.schemas import (
    ClickStatsResponse,
    FavoriteStatusResponse,
    LikeCountResponse,
    ListPagination,
    PlaylistCreateRequest,
    PlaylistCreatedResponse,
    PlaylistDetail,
    PlaylistListResponse,
    PlaylistUpdateRequest,
    SongAddedResponse,
    SongCreateRequest,
    SongListResponse,
    SongResponse,
    SongUpdateRequest,
)
from playhub.api.playlists.service import DEFAULT_PAGE_SIZE, PlaylistService


router = APIRouter()


def get_playlist_service(db: AsyncSession = Depends(get_db)) -> PlaylistService:
    """Dependency to get playlist service."""
    return PlaylistService(db)


def ensure_visible(playlist: Playlist, principal: Optional[Principal]) -> None:
    """Private playlists are only visible to their owner and administrators."""
    if not playlist.is_public:
        check_owner_or_role(principal, playlist.user_id, message="This playlist is private").unwrap()


def ensure_owner(playlist: Playlist, principal: Principal) -> None:
    check_owner_or_role(
        principal, playlist.user_id, message="You can only modify your own playlists"
    ).unwrap()


# ==================== Playlists ====================


@router.get(
    "",
    response_model=PlaylistListResponse,
    summary="List playlists",
)
async def list_playlists(
    genre: Optional[int] = None,
    user_id: Optional[int] = None,
    q: Optional[str] = None,
    is_public: Optional[bool] = None,
    sort: Literal["created_at", "name", "likes"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PlaylistService = Depends(get_playlist_service),
) -> PlaylistListResponse:
    """
    List playlists with filtering, sorting and pagination.

    Anonymous and Unregistered visitors only see public playlists.
    """
    playlists, total, limit, offset = await service.list_playlists(
        principal,
        genre_id=genre,
        user_id=user_id,
        q=q,
        is_public=is_public,
        sort=sort,
        order=order,
        limit=limit,
        offset=offset,
    )
    return PlaylistListResponse(
        data=playlists,
        pagination=ListPagination(total=total, limit=limit, offset=offset),
    )


@router.post(
    "",
    response_model=PlaylistCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a playlist",
)
async def create_playlist(
    data: PlaylistCreateRequest,
    principal: Principal = Depends(require_roles(PLAYLIST_AUTHORS)),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> PlaylistCreatedResponse:
    playlist = await service.create(principal, data)
    response = PlaylistCreatedResponse(
        playlist_id=playlist.playlist_id,
        name=playlist.name,
        is_public=playlist.is_public,
    )

    await audit.record(AuditAction.PLAYLIST_CREATED, playlist.playlist_id, principal.id)
    return response


@router.get(
    "/{playlist_id}",
    response_model=PlaylistDetail,
    summary="Get a playlist",
)
async def get_playlist(
    playlist_id: int,
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PlaylistService = Depends(get_playlist_service),
) -> PlaylistDetail:
    playlist = await service.get_or_404(playlist_id)
    ensure_visible(playlist, principal)
    return await service.detail(playlist, principal)


@router.put(
    "/{playlist_id}",
    response_model=MessageResponse,
    summary="Update a playlist",
)
async def update_playlist(
    playlist_id: int,
    data: PlaylistUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> MessageResponse:
    """
    Update a playlist (owner or administrator).

    Flipping ``is_public`` is additionally recorded as a publish or
    unpublish.
    """
    playlist = await service.get_or_404(playlist_id)
    ensure_owner(playlist, principal)

    flipped = await service.update(playlist, data)

    if flipped is True:
        await audit.record(AuditAction.PLAYLIST_PUBLISHED, playlist_id, principal.id)
    elif flipped is False:
        await audit.record(AuditAction.PLAYLIST_UNPUBLISHED, playlist_id, principal.id)
    await audit.record(AuditAction.PLAYLIST_UPDATED, playlist_id, principal.id)

    return MessageResponse(message="Playlist updated successfully")


@router.delete(
    "/{playlist_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a playlist",
)
async def delete_playlist(
    playlist_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> None:
    playlist = await service.get_or_404(playlist_id)
    ensure_owner(playlist, principal)

    await service.delete(playlist)
    await audit.record(AuditAction.PLAYLIST_DELETED, playlist_id, principal.id)


# ==================== Songs ====================


@router.get(
    "/{playlist_id}/songs",
    response_model=SongListResponse,
    summary="List songs in a playlist",
)
async def list_songs(
    playlist_id: int,
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PlaylistService = Depends(get_playlist_service),
) -> SongListResponse:
    """Anonymous and Unregistered visitors only get the first few songs."""
    playlist = await service.get_or_404(playlist_id)
    ensure_visible(playlist, principal)

    songs, total, limited = await service.list_songs(playlist, principal)
    return SongListResponse(
        songs=[SongResponse.model_validate(s) for s in songs],
        total=total,
        limited=limited,
    )


@router.post(
    "/{playlist_id}/songs",
    response_model=SongAddedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a song to a playlist",
)
async def add_song(
    playlist_id: int,
    data: SongCreateRequest,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> SongAddedResponse:
    playlist = await service.get_or_404(playlist_id)
    ensure_owner(playlist, principal)

    song = await service.add_song(playlist, data)
    song_id = song.song_id

    await audit.record(AuditAction.SONG_ADDED, song_id, principal.id)
    return SongAddedResponse(song_id=song_id)


@router.get(
    "/{playlist_id}/songs/{song_id}",
    response_model=SongResponse,
    summary="Get a song in a playlist",
)
async def get_song(
    playlist_id: int,
    song_id: int,
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PlaylistService = Depends(get_playlist_service),
) -> SongResponse:
    playlist = await service.get_or_404(playlist_id)
    ensure_visible(playlist, principal)
    return SongResponse.model_validate(await service.get_song(playlist, song_id))


@router.put(
    "/{playlist_id}/songs/{song_id}",
    response_model=SongResponse,
    summary="Update a song in a playlist",
)
async def update_song(
    playlist_id: int,
    song_id: int,
    data: SongUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> SongResponse:
    playlist = await service.get_or_404(playlist_id)
    ensure_owner(playlist, principal)

    song = await service.update_song(playlist, song_id, data)
    response = SongResponse.model_validate(song)

    await audit.record(AuditAction.SONG_UPDATED, response.song_id, principal.id)
    return response


@router.delete(
    "/{playlist_id}/songs/{song_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a song from a playlist",
)
async def remove_song(
    playlist_id: int,
    song_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> None:
    playlist = await service.get_or_404(playlist_id)
    ensure_owner(playlist, principal)

    await service.remove_song(playlist, song_id)
    await audit.record(AuditAction.SONG_REMOVED, song_id, principal.id)


# ==================== Likes ====================


@router.get(
    "/{playlist_id}/likes",
    response_model=LikeCountResponse,
    summary="Get like count",
)
async def get_likes(
    playlist_id: int,
    service: PlaylistService = Depends(get_playlist_service),
) -> LikeCountResponse:
    await service.get_or_404(playlist_id)
    return LikeCountResponse(playlist_id=playlist_id, likes_count=await service.like_count(playlist_id))


@router.post(
    "/{playlist_id}/likes",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Like a playlist",
)
async def like_playlist(
    playlist_id: int,
    principal: Principal = Depends(require_roles(SOCIAL_ROLES)),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> MessageResponse:
    playlist = await service.get_or_404(playlist_id)
    ensure_visible(playlist, principal)

    await service.like(playlist_id, principal.id)
    await audit.record(AuditAction.PLAYLIST_LIKED, playlist_id, principal.id)

    return MessageResponse(message="Playlist liked")


@router.delete(
    "/{playlist_id}/likes",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Unlike a playlist",
)
async def unlike_playlist(
    playlist_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> None:
    await service.get_or_404(playlist_id)

    await service.unlike(playlist_id, principal.id)
    await audit.record(AuditAction.PLAYLIST_UNLIKED, playlist_id, principal.id)


# ==================== Favorites ====================


@router.get(
    "/{playlist_id}/favorites",
    response_model=FavoriteStatusResponse,
    summary="Check favorite status",
)
async def favorite_status(
    playlist_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
) -> FavoriteStatusResponse:
    await service.get_or_404(playlist_id)

    favorite = await service.favorite_status(playlist_id, principal.id)
    return FavoriteStatusResponse(
        playlist_id=playlist_id,
        is_favorited=favorite is not None,
        added_at=favorite.added_at if favorite else None,
    )


@router.post(
    "/{playlist_id}/favorites",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a playlist to favorites",
)
async def add_favorite(
    playlist_id: int,
    principal: Principal = Depends(require_roles(SOCIAL_ROLES)),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> MessageResponse:
    playlist = await service.get_or_404(playlist_id)
    ensure_visible(playlist, principal)

    await service.add_favorite(playlist_id, principal.id)
    await audit.record(AuditAction.PLAYLIST_FAVORITED, playlist_id, principal.id)

    return MessageResponse(message="Playlist added to favorites")


@router.delete(
    "/{playlist_id}/favorites",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a playlist from favorites",
)
async def remove_favorite(
    playlist_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> None:
    await service.get_or_404(playlist_id)

    await service.remove_favorite(playlist_id, principal.id)
    await audit.record(AuditAction.PLAYLIST_UNFAVORITED, playlist_id, principal.id)


# ==================== Clicks ====================


@router.post(
    "/{playlist_id}/clicks",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a playlist view",
)
async def record_click(
    playlist_id: int,
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: PlaylistService = Depends(get_playlist_service),
) -> MessageResponse:
    """Open to anonymous visitors. Views are analytics, not audited actions."""
    await service.get_or_404(playlist_id)
    await service.record_click(playlist_id, principal.id if principal else None)
    return MessageResponse(message="Click recorded")


@router.get(
    "/{playlist_id}/clicks",
    response_model=ClickStatsResponse,
    summary="Get click statistics",
)
async def click_stats(
    playlist_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PlaylistService = Depends(get_playlist_service),
) -> ClickStatsResponse:
    playlist = await service.get_or_404(playlist_id)
    check_owner_or_role(
        principal, playlist.user_id, message="You can only view stats for your own playlists"
    ).unwrap()

    total, per_day = await service.click_stats(playlist_id)
    return ClickStatsResponse(playlist_id=playlist_id, total_clicks=total, clicks_per_day=per_day)
