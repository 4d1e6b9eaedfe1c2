"""SQL-backed collaborators: entries, shares, users."""

from chatfs.stores.entries import EntryStore
from chatfs.stores.shares import ShareStore
from chatfs.stores.users import UserDirectory

__all__ = [
    "EntryStore",
    "ShareStore",
    "UserDirectory",
]
