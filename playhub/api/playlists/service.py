"""
Playlist Service

Business logic for playlists, their songs, likes, favorites and clicks.
Authorization is decided by the routes through the gate; methods here
assume the caller is allowed to act.
"""

import logging
from collections import defaultdict
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import asc, delete, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.access.gate import Principal, is_public_only
from playhub.api.config import settings
from playhub.api.db.models import (
    Genre,
    Playlist,
    PlaylistClick,
    PlaylistFavorite,
    PlaylistGenre,
    PlaylistLike,
    PlaylistSong,
    Song,
    User,
    utcnow,
)
from playhub.api.errors import BadRequestError, ConflictError, NotFoundError
from playhub.api.playlists.schemas import (
    DailyClicks,
    GenreAffinity,
    GenreRef,
    PlaylistCreateRequest,
    PlaylistDetail,
    PlaylistSummary,
    PlaylistUpdateRequest,
    SongCreateRequest,
    SongUpdateRequest,
    detect_platform,
)


logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
RECOMMENDATION_LIMIT = 10
CLICK_STATS_DAYS = 30

SORT_FIELDS = ("created_at", "name", "likes")


def likes_count_column():
    return (
        select(func.count())
        .where(PlaylistLike.playlist_id == Playlist.playlist_id)
        .correlate(Playlist)
        .scalar_subquery()
    )


class PlaylistService:
    """Playlist service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Playlists ====================

    async def get_or_404(self, playlist_id: int) -> Playlist:
        playlist = await self.db.get(Playlist, playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist not found")
        return playlist

    async def list_playlists(
        self,
        principal: Optional[Principal],
        genre_id: Optional[int] = None,
        user_id: Optional[int] = None,
        q: Optional[str] = None,
        is_public: Optional[bool] = None,
        sort: str = "created_at",
        order: str = "desc",
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Tuple[List[PlaylistSummary], int, int, int]:
        """
        Filtered, sorted page of playlists.

        Anonymous and Unregistered visitors only ever see public
        playlists, whatever ``is_public`` asks for. Other non-admin
        users see public playlists plus their own private ones.

        Returns:
            Tuple of (playlists, total, limit, offset)
        """
        limit = min(max(1, limit), MAX_PAGE_SIZE)
        offset = max(0, offset)

        conditions = []
        if is_public_only(principal):
            conditions.append(Playlist.is_public.is_(True))
        else:
            if not principal.is_admin:
                conditions.append(
                    or_(Playlist.is_public.is_(True), Playlist.user_id == principal.id)
                )
            if is_public is not None:
                conditions.append(Playlist.is_public.is_(is_public))

        if genre_id is not None:
            conditions.append(
                Playlist.playlist_id.in_(
                    select(PlaylistGenre.playlist_id).where(PlaylistGenre.genre_id == genre_id)
                )
            )
        if user_id is not None:
            conditions.append(Playlist.user_id == user_id)
        if q:
            pattern = f"%{q}%"
            conditions.append(or_(Playlist.name.ilike(pattern), Playlist.description.ilike(pattern)))

        total = await self.db.scalar(
            select(func.count()).select_from(Playlist).where(*conditions)
        ) or 0

        direction = asc if order == "asc" else desc
        if sort == "likes":
            sort_column = likes_count_column()
        elif sort == "name":
            sort_column = Playlist.name
        else:
            sort_column = Playlist.created_at

        result = await self.db.execute(
            select(Playlist)
            .where(*conditions)
            .order_by(direction(sort_column), desc(Playlist.playlist_id))
            .limit(limit)
            .offset(offset)
        )
        playlists = result.scalars().all()

        return await self.summarize(playlists), total, limit, offset

    async def create(self, owner: Principal, data: PlaylistCreateRequest) -> Playlist:
        await self._check_genres(data.genre_ids)

        playlist = Playlist(
            name=data.name,
            description=data.description,
            is_public=data.is_public,
            user_id=owner.id,
        )
        self.db.add(playlist)
        await self.db.flush()

        self._add_genres(playlist.playlist_id, data.genre_ids)
        await self.db.commit()
        await self.db.refresh(playlist)

        logger.info("Playlist %s created by user %s", playlist.playlist_id, owner.id)
        return playlist

    async def detail(self, playlist: Playlist, viewer: Optional[Principal]) -> PlaylistDetail:
        summary = (await self.summarize([playlist]))[0]

        result = await self.db.execute(
            select(Genre.genre_id, Genre.name)
            .join(PlaylistGenre, PlaylistGenre.genre_id == Genre.genre_id)
            .where(PlaylistGenre.playlist_id == playlist.playlist_id)
            .order_by(Genre.name)
        )
        genres = [GenreRef(genre_id=gid, name=name) for gid, name in result.all()]

        user_liked = user_favorited = False
        if viewer is not None:
            user_liked = await self._has_like(playlist.playlist_id, viewer.id)
            user_favorited = await self._favorite_row(playlist.playlist_id, viewer.id) is not None

        return PlaylistDetail(
            **summary.model_dump(exclude={"genres"}),
            genres=genres,
            user_liked=user_liked,
            user_favorited=user_favorited,
        )

    async def update(self, playlist: Playlist, data: PlaylistUpdateRequest) -> Optional[bool]:
        """
        Apply a partial update.

        Returns:
            The new visibility if it flipped, None otherwise
        """
        fields = data.model_dump(exclude_unset=True)
        genre_ids = fields.pop("genre_ids", None)

        if "name" in fields and fields["name"] is None:
            raise BadRequestError("Playlist name cannot be empty")
        if "is_public" in fields and fields["is_public"] is None:
            raise BadRequestError("Visibility (is_public) must be true or false")

        flipped = None
        if "is_public" in fields and fields["is_public"] != playlist.is_public:
            flipped = fields["is_public"]

        for name, value in fields.items():
            setattr(playlist, name, value)

        if genre_ids is not None:
            await self._check_genres(genre_ids)
            await self.db.execute(
                delete(PlaylistGenre).where(PlaylistGenre.playlist_id == playlist.playlist_id)
            )
            self._add_genres(playlist.playlist_id, genre_ids)

        playlist.updated_at = utcnow()
        await self.db.commit()
        return flipped

    async def delete(self, playlist: Playlist) -> None:
        """Delete a playlist and every row that depends on it, atomically."""
        playlist_id = playlist.playlist_id
        try:
            await self._purge([playlist_id])
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Playlist %s deleted", playlist_id)

    async def delete_owned_by(self, user_id: int) -> None:
        """
        Remove a user's playlists, likes and favorites without committing.

        Clicks the user made on other playlists are kept as anonymous ones.
        """
        result = await self.db.execute(select(Playlist.playlist_id).where(Playlist.user_id == user_id))
        await self._purge(result.scalars().all())

        await self.db.execute(delete(PlaylistLike).where(PlaylistLike.user_id == user_id))
        await self.db.execute(delete(PlaylistFavorite).where(PlaylistFavorite.user_id == user_id))
        await self.db.execute(
            update(PlaylistClick).where(PlaylistClick.user_id == user_id).values(user_id=None)
        )

    async def summarize(self, playlists: Sequence[Playlist]) -> List[PlaylistSummary]:
        """Attach counts, genre names and owner usernames in a fixed number of queries."""
        if not playlists:
            return []

        ids = [p.playlist_id for p in playlists]
        likes = await self._counts(PlaylistLike, ids)
        songs = await self._counts(PlaylistSong, ids)

        genres: Dict[int, List[str]] = defaultdict(list)
        result = await self.db.execute(
            select(PlaylistGenre.playlist_id, Genre.name)
            .join(Genre, Genre.genre_id == PlaylistGenre.genre_id)
            .where(PlaylistGenre.playlist_id.in_(ids))
            .order_by(Genre.name)
        )
        for playlist_id, name in result.all():
            genres[playlist_id].append(name)

        usernames = await self._usernames({p.user_id for p in playlists})

        return [
            PlaylistSummary(
                playlist_id=p.playlist_id,
                name=p.name,
                description=p.description,
                is_public=p.is_public,
                image_path=p.image_path,
                user_id=p.user_id,
                owner_username=usernames.get(p.user_id),
                created_at=p.created_at,
                updated_at=p.updated_at,
                likes_count=likes.get(p.playlist_id, 0),
                songs_count=songs.get(p.playlist_id, 0),
                genres=genres.get(p.playlist_id, []),
            )
            for p in playlists
        ]

    # ==================== Songs ====================

    async def list_songs(
        self, playlist: Playlist, viewer: Optional[Principal]
    ) -> Tuple[List[Song], int, bool]:
        """
        Songs of a playlist, newest first.

        Returns:
            Tuple of (songs, total in playlist, whether the list was cut short)
        """
        limited = is_public_only(viewer)

        query = (
            select(Song)
            .join(PlaylistSong, PlaylistSong.song_id == Song.song_id)
            .where(PlaylistSong.playlist_id == playlist.playlist_id)
            .order_by(desc(Song.added_at), desc(Song.song_id))
        )
        if limited:
            query = query.limit(settings.UNREGISTERED_SONG_LIMIT)

        result = await self.db.execute(query)
        total = (await self._counts(PlaylistSong, [playlist.playlist_id])).get(playlist.playlist_id, 0)
        return list(result.scalars().all()), total, limited

    async def add_song(self, playlist: Playlist, data: SongCreateRequest) -> Song:
        """
        Link a song to a playlist, reusing the song row if the URL is known.

        Raises:
            ConflictError: If a song with that URL is already in the playlist
        """
        if await self._url_in_playlist(playlist.playlist_id, data.url):
            raise ConflictError("Song already in playlist")

        song = await self.db.scalar(
            select(Song).where(Song.url == data.url).order_by(Song.song_id).limit(1)
        )
        if song is None:
            song = Song(
                title=data.title,
                artist=data.artist,
                url=data.url,
                platform=detect_platform(data.url).value,
                duration=data.duration,
                image_path=data.image_path,
            )
            self.db.add(song)
            await self.db.flush()

        self.db.add(PlaylistSong(playlist_id=playlist.playlist_id, song_id=song.song_id))
        playlist.updated_at = utcnow()
        await self.db.commit()
        return song

    async def get_song(self, playlist: Playlist, song_id: int) -> Song:
        if await self._song_link(playlist.playlist_id, song_id) is None:
            raise NotFoundError("Song not found in playlist")
        return await self.db.get(Song, song_id)

    async def update_song(self, playlist: Playlist, song_id: int, data: SongUpdateRequest) -> Song:
        """
        Edit a song as seen from one playlist.

        A song row also linked from other playlists is copied and the
        copy edited, so other owners keep the original.

        Returns:
            The edited song, whose id differs from ``song_id`` if copied
        """
        song = await self.get_song(playlist, song_id)

        fields = data.model_dump(exclude_unset=True)
        for required in ("title", "artist", "url"):
            if required in fields and fields[required] is None:
                raise BadRequestError(f"Song {required} cannot be empty")
        if "url" in fields and fields["url"] != song.url:
            if await self._url_in_playlist(playlist.playlist_id, fields["url"]):
                raise ConflictError("Song already in playlist")

        if fields and await self._linked_elsewhere(song.song_id, playlist.playlist_id):
            song = await self._copy_song(playlist.playlist_id, song)

        for name, value in fields.items():
            setattr(song, name, value)
        if "url" in fields:
            song.platform = detect_platform(song.url).value

        await self.db.commit()
        return song

    async def remove_song(self, playlist: Playlist, song_id: int) -> None:
        link = await self._song_link(playlist.playlist_id, song_id)
        if link is None:
            raise NotFoundError("Song not found in playlist")

        await self.db.delete(link)
        playlist.updated_at = utcnow()
        await self.db.commit()

    # ==================== Likes / favorites ====================

    async def like_count(self, playlist_id: int) -> int:
        return (await self._counts(PlaylistLike, [playlist_id])).get(playlist_id, 0)

    async def like(self, playlist_id: int, user_id: int) -> None:
        if await self._has_like(playlist_id, user_id):
            raise ConflictError("You already liked this playlist")
        self.db.add(PlaylistLike(playlist_id=playlist_id, user_id=user_id))
        await self.db.commit()

    async def unlike(self, playlist_id: int, user_id: int) -> None:
        result = await self.db.execute(
            delete(PlaylistLike).where(
                PlaylistLike.playlist_id == playlist_id, PlaylistLike.user_id == user_id
            )
        )
        if not result.rowcount:
            raise NotFoundError("You have not liked this playlist")
        await self.db.commit()

    async def favorite_status(self, playlist_id: int, user_id: int) -> Optional[PlaylistFavorite]:
        return await self._favorite_row(playlist_id, user_id)

    async def add_favorite(self, playlist_id: int, user_id: int) -> None:
        if await self._favorite_row(playlist_id, user_id) is not None:
            raise ConflictError("Playlist already in favorites")
        self.db.add(PlaylistFavorite(playlist_id=playlist_id, user_id=user_id))
        await self.db.commit()

    async def remove_favorite(self, playlist_id: int, user_id: int) -> None:
        result = await self.db.execute(
            delete(PlaylistFavorite).where(
                PlaylistFavorite.playlist_id == playlist_id, PlaylistFavorite.user_id == user_id
            )
        )
        if not result.rowcount:
            raise NotFoundError("Playlist not in favorites")
        await self.db.commit()

    async def favorites_of(self, user_id: int) -> List[PlaylistSummary]:
        """A user's favorite playlists, most recently added first."""
        result = await self.db.execute(
            select(Playlist)
            .join(PlaylistFavorite, PlaylistFavorite.playlist_id == Playlist.playlist_id)
            .where(PlaylistFavorite.user_id == user_id)
            .order_by(desc(PlaylistFavorite.added_at))
        )
        return await self.summarize(result.scalars().all())

    async def recommendations_for(self, user_id: int) -> Tuple[List[GenreAffinity], List[PlaylistSummary]]:
        """
        Public playlists by other users in the genres this user likes.

        Falls back to the most liked public playlists when the user has
        not liked anything yet.
        """
        count = func.count().label("count")
        result = await self.db.execute(
            select(Genre.genre_id, Genre.name, count)
            .select_from(PlaylistLike)
            .join(PlaylistGenre, PlaylistGenre.playlist_id == PlaylistLike.playlist_id)
            .join(Genre, Genre.genre_id == PlaylistGenre.genre_id)
            .where(PlaylistLike.user_id == user_id)
            .group_by(Genre.genre_id, Genre.name)
            .order_by(desc(count), Genre.name)
        )
        affinities = [
            GenreAffinity(genre_id=gid, name=name, count=total) for gid, name, total in result.all()
        ]

        query = select(Playlist).where(Playlist.is_public.is_(True), Playlist.user_id != user_id)
        if affinities:
            query = query.where(
                Playlist.playlist_id.in_(
                    select(PlaylistGenre.playlist_id).where(
                        PlaylistGenre.genre_id.in_([a.genre_id for a in affinities])
                    )
                ),
                Playlist.playlist_id.not_in(
                    select(PlaylistLike.playlist_id).where(PlaylistLike.user_id == user_id)
                ),
            )

        result = await self.db.execute(
            query.order_by(desc(likes_count_column()), desc(Playlist.playlist_id))
            .limit(RECOMMENDATION_LIMIT)
        )
        return affinities, await self.summarize(result.scalars().all())

    # ==================== Clicks ====================

    async def record_click(self, playlist_id: int, user_id: Optional[int]) -> None:
        self.db.add(PlaylistClick(playlist_id=playlist_id, user_id=user_id))
        await self.db.commit()

    async def click_stats(self, playlist_id: int) -> Tuple[int, List[DailyClicks]]:
        """Total clicks and per-day counts over the last 30 days, newest day first."""
        total = await self.db.scalar(
            select(func.count()).where(PlaylistClick.playlist_id == playlist_id)
        ) or 0

        cutoff = utcnow() - timedelta(days=CLICK_STATS_DAYS)
        day = func.date(PlaylistClick.clicked_at).label("day")
        result = await self.db.execute(
            select(day, func.count())
            .where(PlaylistClick.playlist_id == playlist_id, PlaylistClick.clicked_at >= cutoff)
            .group_by(day)
            .order_by(desc(day))
        )
        per_day = [DailyClicks(date=str(d), count=c) for d, c in result.all()]
        return total, per_day

    # ==================== Helpers ====================

    async def _counts(self, model, playlist_ids: Iterable[int]) -> Dict[int, int]:
        result = await self.db.execute(
            select(model.playlist_id, func.count())
            .where(model.playlist_id.in_(list(playlist_ids)))
            .group_by(model.playlist_id)
        )
        return dict(result.all())

    async def _usernames(self, user_ids: Iterable[int]) -> Dict[int, str]:
        result = await self.db.execute(
            select(User.id, User.username).where(User.id.in_(list(user_ids)))
        )
        return dict(result.all())

    async def _has_like(self, playlist_id: int, user_id: int) -> bool:
        return await self.db.get(PlaylistLike, (playlist_id, user_id)) is not None

    async def _favorite_row(self, playlist_id: int, user_id: int) -> Optional[PlaylistFavorite]:
        return await self.db.get(PlaylistFavorite, (playlist_id, user_id))

    async def _song_link(self, playlist_id: int, song_id: int) -> Optional[PlaylistSong]:
        return await self.db.get(PlaylistSong, (playlist_id, song_id))

    async def _url_in_playlist(self, playlist_id: int, url: str) -> bool:
        found = await self.db.scalar(
            select(PlaylistSong.song_id)
            .join(Song, Song.song_id == PlaylistSong.song_id)
            .where(PlaylistSong.playlist_id == playlist_id, Song.url == url)
            .limit(1)
        )
        return found is not None

    async def _linked_elsewhere(self, song_id: int, playlist_id: int) -> bool:
        found = await self.db.scalar(
            select(PlaylistSong.playlist_id)
            .where(PlaylistSong.song_id == song_id, PlaylistSong.playlist_id != playlist_id)
            .limit(1)
        )
        return found is not None

    async def _copy_song(self, playlist_id: int, song: Song) -> Song:
        """Give one playlist its own copy of a shared song row."""
        copy = Song(
            title=song.title,
            artist=song.artist,
            duration=song.duration,
            platform=song.platform,
            url=song.url,
            image_path=song.image_path,
            added_at=song.added_at,
        )
        self.db.add(copy)
        await self.db.flush()

        await self.db.delete(await self._song_link(playlist_id, song.song_id))
        self.db.add(PlaylistSong(playlist_id=playlist_id, song_id=copy.song_id))
        logger.info("Song %s copied to %s for playlist %s", song.song_id, copy.song_id, playlist_id)
        return copy

    async def _purge(self, playlist_ids: Sequence[int]) -> None:
        if not playlist_ids:
            return
        for model in (PlaylistSong, PlaylistGenre, PlaylistLike, PlaylistFavorite, PlaylistClick):
            await self.db.execute(delete(model).where(model.playlist_id.in_(playlist_ids)))
        await self.db.execute(delete(Playlist).where(Playlist.playlist_id.in_(playlist_ids)))

    async def _check_genres(self, genre_ids: Sequence[int]) -> None:
        if not genre_ids:
            return
        result = await self.db.execute(
            select(Genre.genre_id).where(Genre.genre_id.in_(set(genre_ids)))
        )
        missing = set(genre_ids) - set(result.scalars().all())
        if missing:
            raise BadRequestError(f"Unknown genre id(s): {', '.join(map(str, sorted(missing)))}")

    def _add_genres(self, playlist_id: int, genre_ids: Sequence[int]) -> None:
        for genre_id in dict.fromkeys(genre_ids):
            self.db.add(PlaylistGenre(playlist_id=playlist_id, genre_id=genre_id))
