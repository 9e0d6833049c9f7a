"""Genres module."""
