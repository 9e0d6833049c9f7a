"""PLAYHUB API package."""
