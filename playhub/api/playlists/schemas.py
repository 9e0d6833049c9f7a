"""
Playlist Schemas

Pydantic models for playlists, their songs and social interactions.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, Field


NAME_MAX_LENGTH = 255
URL_MAX_LENGTH = 500


class Platform(str, Enum):
    """Media platforms songs can be linked from."""

    YOUTUBE = "youtube"
    SPOTIFY = "spotify"


PLATFORM_PATTERNS = {
    Platform.YOUTUBE: (
        re.compile(r"^https?://(www\.)?youtube\.com/watch\?v=[\w-]+"),
        re.compile(r"^https?://youtu\.be/[\w-]+"),
        re.compile(r"^https?://(www\.)?youtube\.com/embed/[\w-]+"),
    ),
    Platform.SPOTIFY: (
        re.compile(r"^https?://open\.spotify\.com/track/\w+"),
        re.compile(r"^https?://open\.spotify\.com/intl-\w+/track/\w+"),
    ),
}


def detect_platform(url: str) -> Optional[Platform]:
    """Platform a song URL belongs to, None if it is not a supported link."""
    for platform, patterns in PLATFORM_PATTERNS.items():
        if any(pattern.match(url) for pattern in patterns):
            return platform
    return None


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError(f"must be at most {NAME_MAX_LENGTH} characters")
    return value


def _song_url(value: str) -> str:
    value = value.strip()
    if len(value) > URL_MAX_LENGTH:
        raise ValueError(f"must be at most {URL_MAX_LENGTH} characters")
    if detect_platform(value) is None:
        raise ValueError("Only YouTube and Spotify links are allowed")
    return value


Text = Annotated[str, AfterValidator(_required_text)]
SongUrl = Annotated[str, AfterValidator(_song_url)]


# ==================== Requests ====================


class PlaylistCreateRequest(BaseModel):
    name: Text
    description: Optional[str] = None
    is_public: bool = True
    genre_ids: List[int] = Field(default_factory=list)


class PlaylistUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    name: Optional[Text] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None
    image_path: Optional[str] = None
    genre_ids: Optional[List[int]] = None


class SongCreateRequest(BaseModel):
    title: Text
    artist: Text
    url: SongUrl
    duration: Optional[float] = Field(None, ge=0)  # seconds
    image_path: Optional[str] = None


class SongUpdateRequest(BaseModel):
    title: Optional[Text] = None
    artist: Optional[Text] = None
    url: Optional[SongUrl] = None
    duration: Optional[float] = Field(None, ge=0)
    image_path: Optional[str] = None


# ==================== Responses ====================


class GenreRef(BaseModel):
    genre_id: int
    name: str


class PlaylistBase(BaseModel):
    playlist_id: int
    name: str
    description: Optional[str]
    is_public: bool
    image_path: Optional[str]
    user_id: int
    owner_username: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    likes_count: int = 0
    songs_count: int = 0


class PlaylistSummary(PlaylistBase):
    """Playlist as it appears in lists."""

    genres: List[str] = Field(default_factory=list)


class PlaylistDetail(PlaylistBase):
    """Single playlist, with the viewer's own like/favorite state."""

    genres: List[GenreRef] = Field(default_factory=list)
    user_liked: bool = False
    user_favorited: bool = False


class ListPagination(BaseModel):
    total: int
    limit: int
    offset: int


class PlaylistListResponse(BaseModel):
    data: List[PlaylistSummary]
    pagination: ListPagination


class PlaylistCreatedResponse(BaseModel):
    message: str = "Playlist created successfully"
    playlist_id: int
    name: str
    is_public: bool


class SongResponse(BaseModel):
    song_id: int
    title: str
    artist: str
    duration: Optional[float]
    platform: str
    url: str
    image_path: Optional[str]
    added_at: Optional[datetime]

    class Config:
        from_attributes = True


class SongListResponse(BaseModel):
    songs: List[SongResponse]
    total: int
    limited: bool


class SongAddedResponse(BaseModel):
    message: str = "Song added to playlist"
    song_id: int


class LikeCountResponse(BaseModel):
    playlist_id: int
    likes_count: int


class FavoriteStatusResponse(BaseModel):
    playlist_id: int
    is_favorited: bool
    added_at: Optional[datetime] = None


class DailyClicks(BaseModel):
    date: str
    count: int


class ClickStatsResponse(BaseModel):
    playlist_id: int
    total_clicks: int
    clicks_per_day: List[DailyClicks]


class GenreAffinity(BaseModel):
    genre_id: int
    name: str
    count: int


class RecommendationsResponse(BaseModel):
    based_on_genres: List[GenreAffinity]
    recommendations: List[PlaylistSummary]
