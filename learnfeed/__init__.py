"""Personalized feed ranking, daily packs, and adaptive skill progression."""

__version__ = "0.1.0"
