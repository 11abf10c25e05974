"""
Database models for the link shortener.

Both tables live in the same store. Click events reference short URLs by code
only (no foreign key), so they survive tombstoning of their URL.
"""

from .url import ShortURL
from .click import ClickEvent

__all__ = ["ShortURL", "ClickEvent"]
