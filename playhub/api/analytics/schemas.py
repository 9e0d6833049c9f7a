"""
Analytics Schemas
"""

from typing import List, Optional

from pydantic import BaseModel


class UserStats(BaseModel):
    total_users: int
    admin_count: int
    management_count: int
    regular_user_count: int
    unregistered_count: int


class PlaylistStats(BaseModel):
    total_playlists: int
    public_playlists: int
    private_playlists: int


class SongStats(BaseModel):
    total_songs: int
    youtube_songs: int
    spotify_songs: int


class GenreStats(BaseModel):
    total_genres: int


class InteractionStats(BaseModel):
    total_likes: int
    total_favorites: int
    total_clicks: int


class RecentActivity(BaseModel):
    new_playlists_week: int
    new_likes_week: int
    clicks_week: int


class TopCreator(BaseModel):
    user_id: int
    username: Optional[str]
    playlist_count: int
    total_likes: int


class PopularPlaylist(BaseModel):
    playlist_id: int
    name: str
    creator: Optional[str]
    likes_count: int
    clicks_count: int


class AnalyticsResponse(BaseModel):
    users: UserStats
    playlists: PlaylistStats
    songs: SongStats
    genres: GenreStats
    interactions: InteractionStats
    recent_activity: RecentActivity
    top_creators: List[TopCreator]
    popular_playlists: List[PopularPlaylist]
