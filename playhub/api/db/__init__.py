"""Database module."""

from playhub.api.db.session import get_db, init_db, close_db
from playhub.api.db.models import Base, User, AuthSession, AuditEntry, Playlist, Genre

__all__ = ["get_db", "init_db", "close_db", "Base", "User", "AuthSession", "AuditEntry", "Playlist", "Genre"]
