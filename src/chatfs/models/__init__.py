"""SQLModel database models for chatfs."""

from chatfs.models.entries import Entry, EntryBase, EntryType
from chatfs.models.shares import Share, ShareBase
from chatfs.models.users import User, UserBase

__all__ = [
    "Entry",
    "EntryBase",
    "EntryType",
    "Share",
    "ShareBase",
    "User",
    "UserBase",
]
