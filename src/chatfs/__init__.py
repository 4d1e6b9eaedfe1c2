"""chatfs: a chat-driven personal file manager engine.

Browse directories, files and labels, share them by link or per user,
and search, one stateless command at a time.
"""

__version__ = "0.1.0"

from chatfs._chatfs_async import ChatFsAsync
from chatfs.commands import Command, CommandType, Upload, parse_callback, parse_text
from chatfs.config import ChatFsConfig
from chatfs.context import TurnContext
from chatfs.dispatcher import Dispatcher, Outcome
from chatfs.exceptions import (
    ChatFsError,
    EntryNotFoundError,
    ShareNotFoundError,
    StaleSelectionError,
    StorageError,
)
from chatfs.models import Entry, EntryType, Share, User
from chatfs.scope import ScopeResolver
from chatfs.session import InputWait, Mode, Session
from chatfs.stores import EntryStore, ShareStore, UserDirectory
from chatfs.transport import (
    ActionLayout,
    Attachment,
    Button,
    Dialog,
    RecordingTransport,
    Response,
    Transport,
)
from chatfs.views import ViewComposer, ViewKind, page_window

__all__ = [
    "ActionLayout",
    "Attachment",
    "Button",
    "ChatFsAsync",
    "ChatFsConfig",
    "ChatFsError",
    "Command",
    "CommandType",
    "Dialog",
    "Dispatcher",
    "Entry",
    "EntryNotFoundError",
    "EntryStore",
    "EntryType",
    "InputWait",
    "Mode",
    "Outcome",
    "RecordingTransport",
    "Response",
    "ScopeResolver",
    "Session",
    "Share",
    "ShareNotFoundError",
    "ShareStore",
    "StaleSelectionError",
    "StorageError",
    "Transport",
    "TurnContext",
    "Upload",
    "User",
    "UserDirectory",
    "ViewComposer",
    "ViewKind",
    "__version__",
    "page_window",
]
