"""
Analytics Service

Aggregate counts over users, content and interactions.
"""

from datetime import timedelta
from typing import Dict, List

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.rbac import Role
from playhub.api.db.models import (
    Genre,
    Playlist,
    PlaylistClick,
    PlaylistFavorite,
    PlaylistLike,
    Song,
    User,
    utcnow,
)
from playhub.api.analytics.schemas import (
    AnalyticsResponse,
    GenreStats,
    InteractionStats,
    PlaylistStats,
    PopularPlaylist,
    RecentActivity,
    SongStats,
    TopCreator,
    UserStats,
)
from playhub.api.playlists.schemas import Platform
from playhub.api.playlists.service import likes_count_column


TOP_LIMIT = 5
RECENT_DAYS = 7


class AnalyticsService:
    """Dashboard statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def overview(self) -> AnalyticsResponse:
        return AnalyticsResponse(
            users=await self.user_stats(),
            playlists=await self.playlist_stats(),
            songs=await self.song_stats(),
            genres=GenreStats(total_genres=await self._count(Genre)),
            interactions=InteractionStats(
                total_likes=await self._count(PlaylistLike),
                total_favorites=await self._count(PlaylistFavorite),
                total_clicks=await self._count(PlaylistClick),
            ),
            recent_activity=await self.recent_activity(),
            top_creators=await self.top_creators(),
            popular_playlists=await self.popular_playlists(),
        )

    async def user_stats(self) -> UserStats:
        result = await self.db.execute(
            select(User.role_id, func.count()).group_by(User.role_id)
        )
        per_role: Dict[int, int] = dict(result.all())
        return UserStats(
            total_users=sum(per_role.values()),
            admin_count=per_role.get(Role.ADMINISTRATOR.value, 0),
            management_count=per_role.get(Role.MANAGEMENT.value, 0),
            regular_user_count=per_role.get(Role.REGULAR_USER.value, 0),
            unregistered_count=per_role.get(Role.UNREGISTERED.value, 0),
        )

    async def playlist_stats(self) -> PlaylistStats:
        result = await self.db.execute(
            select(Playlist.is_public, func.count()).group_by(Playlist.is_public)
        )
        by_visibility = {bool(k): v for k, v in result.all()}
        public = by_visibility.get(True, 0)
        private = by_visibility.get(False, 0)
        return PlaylistStats(
            total_playlists=public + private,
            public_playlists=public,
            private_playlists=private,
        )

    async def song_stats(self) -> SongStats:
        result = await self.db.execute(
            select(Song.platform, func.count()).group_by(Song.platform)
        )
        per_platform = dict(result.all())
        return SongStats(
            total_songs=sum(per_platform.values()),
            youtube_songs=per_platform.get(Platform.YOUTUBE.value, 0),
            spotify_songs=per_platform.get(Platform.SPOTIFY.value, 0),
        )

    async def recent_activity(self) -> RecentActivity:
        since = utcnow() - timedelta(days=RECENT_DAYS)
        return RecentActivity(
            new_playlists_week=await self._count(Playlist, Playlist.created_at > since),
            new_likes_week=await self._count(PlaylistLike, PlaylistLike.liked_at > since),
            clicks_week=await self._count(PlaylistClick, PlaylistClick.clicked_at > since),
        )

    async def top_creators(self) -> List[TopCreator]:
        """Users with the most public playlists."""
        playlist_count = func.count(Playlist.playlist_id).label("playlist_count")
        total_likes = func.coalesce(func.sum(likes_count_column()), 0).label("total_likes")
        result = await self.db.execute(
            select(Playlist.user_id, playlist_count, total_likes)
            .where(Playlist.is_public.is_(True))
            .group_by(Playlist.user_id)
            .order_by(desc(playlist_count), Playlist.user_id)
            .limit(TOP_LIMIT)
        )
        rows = result.all()
        usernames = await self._usernames([r.user_id for r in rows])
        return [
            TopCreator(
                user_id=r.user_id,
                username=usernames.get(r.user_id),
                playlist_count=r.playlist_count,
                total_likes=r.total_likes,
            )
            for r in rows
        ]

    async def popular_playlists(self) -> List[PopularPlaylist]:
        """Most liked public playlists."""
        likes = likes_count_column().label("likes_count")
        clicks = (
            select(func.count())
            .where(PlaylistClick.playlist_id == Playlist.playlist_id)
            .correlate(Playlist)
            .scalar_subquery()
            .label("clicks_count")
        )
        result = await self.db.execute(
            select(Playlist.playlist_id, Playlist.name, Playlist.user_id, likes, clicks)
            .where(Playlist.is_public.is_(True))
            .order_by(desc(likes), Playlist.playlist_id)
            .limit(TOP_LIMIT)
        )
        rows = result.all()
        usernames = await self._usernames([r.user_id for r in rows])
        return [
            PopularPlaylist(
                playlist_id=r.playlist_id,
                name=r.name,
                creator=usernames.get(r.user_id),
                likes_count=r.likes_count,
                clicks_count=r.clicks_count,
            )
            for r in rows
        ]

    async def _count(self, model, *conditions) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(model).where(*conditions)
        ) or 0

    async def _usernames(self, user_ids) -> Dict[int, str]:
        if not user_ids:
            return {}
        result = await self.db.execute(
            select(User.id, User.username).where(User.id.in_(list(user_ids)))
        )
        return dict(result.all())
