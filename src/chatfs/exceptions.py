"""Custom exception hierarchy for the chatfs engine."""


class ChatFsError(Exception):
    """Base exception for all chatfs errors."""


class EntryNotFoundError(ChatFsError):
    """Raised when an entry id does not resolve to a stored entry."""


class ShareNotFoundError(ChatFsError):
    """Raised when a share id or link token does not resolve to a share."""


class StaleSelectionError(ChatFsError):
    """Raised when a selection index no longer addresses the current scope."""


class StorageError(ChatFsError):
    """Raised on storage backend failures (DB connection, constraint, etc.)."""
