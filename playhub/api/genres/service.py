"""
Genre Service

Genres are shared tags; names are unique ignoring case.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from playhub.api.db.models import Genre, PlaylistGenre, User
from playhub.api.errors import ConflictError, NotFoundError
from playhub.api.genres.schemas import GenreDetailResponse, GenreResponse


logger = logging.getLogger(__name__)


class GenreService:
    """Genre service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_genres(self) -> List[GenreResponse]:
        result = await self.db.execute(select(Genre).order_by(Genre.name))
        genres = result.scalars().all()
        usernames = await self._usernames({g.user_id for g in genres})
        return [self._to_response(g, usernames) for g in genres]

    async def get_or_404(self, genre_id: int) -> Genre:
        genre = await self.db.get(Genre, genre_id)
        if genre is None:
            raise NotFoundError("Genre not found")
        return genre

    async def detail(self, genre: Genre) -> GenreDetailResponse:
        usernames = await self._usernames({genre.user_id})
        return GenreDetailResponse(
            **self._to_response(genre, usernames).model_dump(),
            playlist_count=await self.playlist_count(genre.genre_id),
        )

    async def create(self, name: str, owner_id: int) -> Genre:
        await self._ensure_unique(name)

        genre = Genre(name=name, user_id=owner_id)
        self.db.add(genre)
        await self.db.commit()
        await self.db.refresh(genre)

        logger.info("Genre %r created by user %s", name, owner_id)
        return genre

    async def rename(self, genre: Genre, name: str) -> Genre:
        await self._ensure_unique(name, exclude_id=genre.genre_id)
        genre.name = name
        await self.db.commit()
        return genre

    async def delete(self, genre: Genre) -> None:
        """
        Delete an unused genre.

        Raises:
            ConflictError: If playlists still use the genre
        """
        in_use = await self.playlist_count(genre.genre_id)
        if in_use:
            raise ConflictError(
                f"Cannot delete genre. It is used by {in_use} playlist(s). "
                "Remove genre from playlists first."
            )

        await self.db.delete(genre)
        await self.db.commit()

    async def playlist_count(self, genre_id: int) -> int:
        return await self.db.scalar(
            select(func.count()).where(PlaylistGenre.genre_id == genre_id)
        ) or 0

    async def _ensure_unique(self, name: str, exclude_id: Optional[int] = None) -> None:
        query = select(Genre.genre_id).where(func.lower(Genre.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Genre.genre_id != exclude_id)
        if await self.db.scalar(query) is not None:
            raise ConflictError("Genre already exists")

    async def _usernames(self, user_ids) -> Dict[int, str]:
        result = await self.db.execute(
            select(User.id, User.username).where(User.id.in_(list(user_ids)))
        )
        return dict(result.all())

    @staticmethod
    def _to_response(genre: Genre, usernames: Dict[int, str]) -> GenreResponse:
        return GenreResponse(
            genre_id=genre.genre_id,
            name=genre.name,
            user_id=genre.user_id,
            created_by=usernames.get(genre.user_id),
            created_at=genre.created_at,
        )
