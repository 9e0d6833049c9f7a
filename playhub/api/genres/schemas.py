"""
Genre Schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from playhub.api.playlists.schemas import Text


class GenreRequest(BaseModel):
    name: Text


class GenreResponse(BaseModel):
    genre_id: int
    name: str
    user_id: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class GenreDetailResponse(GenreResponse):
    playlist_count: int = 0
