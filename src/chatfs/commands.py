"""Command kinds, the callback wire encoding, and inbound parsing.

Every action rendered into a keyboard carries a payload of the form
``"<name>.<parameter>"`` where ``<name>`` is :attr:`CommandType.value`.
Inbound payloads are mapped back to a kind by prefix match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from chatfs.models.entries import EntryType
from chatfs.session import InputWait

if TYPE_CHECKING:
    from chatfs.session import Session

logger = logging.getLogger(__name__)

SHARED_LINK_PREFIX = "shared-"


class CommandType(Enum):
    """Closed set of user intents."""

    BACK_TO_SEARCH = "backToSearch"
    CANCEL_SEARCH = "cancelSearch"
    CANCEL_SHARE = "cancelShare"
    CHANGE_RO = "changeRo"
    CONTEXT_HELP = "contextHelp"
    DO_SEARCH = "doSearch"
    DROP_DIR = "dropDir"
    DROP_FILE = "dropFile"
    DROP_GLOB_LINK = "dropGlobLink"
    DROP_LABEL = "dropLabel"
    DROP_SHARE = "dropShare"
    EDIT_LABEL = "editLabel"
    FORWARD = "forward"
    GEAR = "gear"
    GRANT_ACCESS = "grantAccess"
    JOIN_PUBLIC_SHARE = "joinPublicShare"
    MAKE_GLOB_LINK = "makeGlobLink"
    MK_DIR = "mkDir"
    MK_GRANT = "mkGrant"
    MK_LABEL = "mkLabel"
    OPEN_DIR = "openDir"
    OPEN_FILE = "openFile"
    OPEN_LABEL = "openLabel"
    OPEN_PARENT = "openParent"
    OPEN_SEARCHED_DIR = "openSearchedDir"
    OPEN_SEARCHED_FILE = "openSearchedFile"
    OPEN_SEARCHED_LABEL = "openSearchedLabel"
    RENAME_DIR = "renameDir"
    RENAME_FILE = "renameFile"
    RESET_TO_ROOT = "resetToRoot"
    REWIND = "rewind"
    SHARE = "share"
    UPLOAD_FILE = "uploadFile"

    @property
    def is_callback(self) -> bool:
        """True for kinds that can arrive as a keyboard action."""
        return self not in _MESSAGE_ONLY

    @property
    def is_selection_op(self) -> bool:
        """True for kinds whose parameter is an index into the scope."""
        return self in _SELECTION_OPS

    @property
    def takes_input(self) -> bool:
        """True for kinds that consume free text."""
        return self in _TEXT_INPUT

    def mnemonic(self, param: int | str | None = None) -> str:
        """Wire payload for this kind, optionally carrying *param*."""
        prefix = self.value + "."
        return prefix if param is None else f"{prefix}{param}"

    def matches(self, payload: str | None) -> bool:
        return (payload or "").startswith(self.mnemonic())


_SELECTION_OPS = frozenset({
    CommandType.CHANGE_RO,
    CommandType.DROP_SHARE,
    CommandType.OPEN_DIR,
    CommandType.OPEN_FILE,
    CommandType.OPEN_LABEL,
    CommandType.OPEN_SEARCHED_DIR,
    CommandType.OPEN_SEARCHED_FILE,
    CommandType.OPEN_SEARCHED_LABEL,
})

_TEXT_INPUT = frozenset({
    CommandType.DO_SEARCH,
    CommandType.EDIT_LABEL,
    CommandType.JOIN_PUBLIC_SHARE,
    CommandType.MK_DIR,
    CommandType.MK_LABEL,
    CommandType.RENAME_DIR,
    CommandType.RENAME_FILE,
})

_MESSAGE_ONLY = frozenset({
    CommandType.DO_SEARCH,
    CommandType.GRANT_ACCESS,
    CommandType.JOIN_PUBLIC_SHARE,
    CommandType.UPLOAD_FILE,
})


@dataclass(frozen=True, slots=True)
class Upload:
    """Descriptor of inbound content: an uploaded file or a shared contact.

    For contacts ``owner`` is the contact's chat id and ``ref`` is unset.
    """

    owner: int
    name: str
    ref: str | None = None
    mime_type: str | None = None


@dataclass(frozen=True, slots=True)
class Command:
    """Immutable value describing one user intent."""

    type: CommandType
    element_idx: int | None = None
    input: str | None = None
    file: Upload | None = None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_callback(payload: str | None) -> Command | None:
    """Map a keyboard payload back to a :class:`Command`.

    Returns ``None`` for payloads no kind recognizes, or for selection
    payloads whose index is not an integer.
    """
    for kind in CommandType:
        if not kind.is_callback or not kind.matches(payload):
            continue
        assert payload is not None
        param = payload[len(kind.mnemonic()):]
        if not kind.is_selection_op:
            return Command(kind)
        try:
            return Command(kind, element_idx=int(param))
        except ValueError:
            logger.warning("Malformed selection payload %r", payload)
            return None
    logger.debug("Unrecognized callback payload %r", payload)
    return None


def parse_text(
    text: str,
    session: Session,
    subject_type: EntryType | None = None,
) -> Command:
    """Interpret a free-text message in the light of the pending input wait.

    Slash commands win over pending waits; anything unclaimed is a search.
    """
    text = text.strip()
    if text.startswith("/start"):
        arg = text[len("/start"):].strip()
        if arg.startswith(SHARED_LINK_PREFIX):
            return Command(CommandType.JOIN_PUBLIC_SHARE, input=arg[len(SHARED_LINK_PREFIX):])
        return Command(CommandType.RESET_TO_ROOT)
    if text == "/reset":
        return Command(CommandType.RESET_TO_ROOT)
    if text == "/help":
        return Command(CommandType.CONTEXT_HELP)

    wait = session.input_wait
    if wait is InputWait.WAIT_DIR:
        return Command(CommandType.MK_DIR, input=text)
    if wait is InputWait.WAIT_LABEL:
        return Command(CommandType.MK_LABEL, input=text)
    if wait is InputWait.WAIT_RENAME:
        if subject_type is EntryType.LABEL:
            return Command(CommandType.EDIT_LABEL, input=text)
        if subject_type is EntryType.FILE:
            return Command(CommandType.RENAME_FILE, input=text)
        return Command(CommandType.RENAME_DIR, input=text)
    return Command(CommandType.DO_SEARCH, input=text)


def upload_command(upload: Upload) -> Command:
    return Command(CommandType.UPLOAD_FILE, file=upload)


def contact_command(contact: Upload, session: Session) -> Command | None:
    """A shared contact is a grant target only while one is awaited."""
    if session.input_wait is not InputWait.WAIT_FILE_GRANT:
        return None
    return Command(CommandType.GRANT_ACCESS, file=contact)
