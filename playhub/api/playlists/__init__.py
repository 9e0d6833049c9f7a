"""Playlists module."""
