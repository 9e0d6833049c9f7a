"""Audit log module."""
