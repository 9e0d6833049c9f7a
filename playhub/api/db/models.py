"""
SQLAlchemy ORM Models

Database models for the PLAYHUB platform.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


# ==================== Identity ====================


class RoleRecord(Base):
    """Role lookup table; holds exactly the four fixed roles."""

    __tablename__ = "roles"

    role_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Role {self.role_id} {self.name}>"


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(16), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("roles.role_id"), nullable=False, default=2
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"


class AuthSession(Base):
    """
    Server-side login session.

    Only a SHA-256 digest of the client token is stored; the token
    itself never touches the database.
    """

    __tablename__ = "auth_sessions"

    token_digest: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )


# ==================== Audit ====================


class AuditEntry(Base):
    """
    Append-only audit trail entry.

    No code path updates or deletes rows of this table. ``user_id`` is
    deliberately not a foreign key: entries outlive the users they name.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    target_id: Mapped[Optional[int]] = mapped_column(Integer)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    user_id: Mapped[Optional[int]] = mapped_column(Integer, index=True)

    __table_args__ = (
        Index("ix_audit_log_timestamp_id", "timestamp", "id"),
    )

    def __repr__(self) -> str:
        return f"<AuditEntry {self.id} {self.action} target={self.target_id}>"


# ==================== Content ====================


class Genre(Base):
    """Genre a playlist can be tagged with."""

    __tablename__ = "genres"

    genre_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    def __repr__(self) -> str:
        return f"<Genre {self.name}>"


class Playlist(Base):
    """Playlist owned by a user."""

    __tablename__ = "playlists"

    playlist_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    image_path: Mapped[Optional[str]] = mapped_column(String(500))
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Playlist {self.playlist_id} {self.name}>"


class Song(Base):
    """Song hosted on an external platform (YouTube or Spotify)."""

    __tablename__ = "songs"

    song_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    artist: Mapped[str] = mapped_column(String(255), nullable=False)
    duration: Mapped[Optional[float]] = mapped_column(Float)  # seconds
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    image_path: Mapped[Optional[str]] = mapped_column(String(500))
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


class PlaylistSong(Base):
    __tablename__ = "playlist_songs"

    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("playlists.playlist_id"), primary_key=True
    )
    song_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("songs.song_id"), primary_key=True
    )


class PlaylistGenre(Base):
    __tablename__ = "playlist_genres"

    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("playlists.playlist_id"), primary_key=True
    )
    genre_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("genres.genre_id"), primary_key=True
    )


class PlaylistLike(Base):
    __tablename__ = "playlist_likes"

    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("playlists.playlist_id"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    liked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


class PlaylistFavorite(Base):
    __tablename__ = "playlist_favorites"

    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("playlists.playlist_id"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


class PlaylistClick(Base):
    """Playlist view event; ``user_id`` is null for anonymous visitors."""

    __tablename__ = "playlist_clicks"

    click_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("playlists.playlist_id"), nullable=False, index=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(Integer)
    clicked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
