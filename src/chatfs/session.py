"""Session — per-user navigation and mode state owned by one turn."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum


class Mode(Enum):
    """Mutually exclusive interaction modes."""

    BROWSING = "browsing"
    SEARCHING = "searching"
    SHARING = "sharing"
    GEARING = "gearing"


class InputWait(Enum):
    """Kind of free-text (or contact) reply the user is expected to send."""

    NONE = "none"
    WAIT_DIR = "waitDir"
    WAIT_LABEL = "waitLabel"
    WAIT_FILE_GRANT = "waitFileGrant"
    WAIT_RENAME = "waitRename"


@dataclass
class Session:
    """Mutable navigation state of a single user.

    A turn works on a :meth:`copy` and the directory persists it once the
    turn completes, so a failed turn leaves the stored state untouched.

    Attributes:
        id: Chat user id.
        root_id: Id of the user's root directory entry.
        subject_id: Current navigation position.
        search_dir_id: Directory the active search was rooted at.
        query: Active search query.
        view_offset: Pagination cursor, never negative.
        mode: Active interaction mode.
        input_wait: Pending free-text expectation.
        lang: Preferred language code.
    """

    id: int
    root_id: str
    subject_id: str
    search_dir_id: str | None = None
    query: str | None = None
    view_offset: int = 0
    mode: Mode = Mode.BROWSING
    input_wait: InputWait = InputWait.NONE
    lang: str | None = None
    name: str = ""

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    @property
    def browsing(self) -> bool:
        return self.mode is Mode.BROWSING

    @property
    def searching(self) -> bool:
        return self.mode is Mode.SEARCHING

    @property
    def sharing(self) -> bool:
        return self.mode is Mode.SHARING

    @property
    def gearing(self) -> bool:
        return self.mode is Mode.GEARING

    @property
    def on_top(self) -> bool:
        """True while the subject is the user's root."""
        return self.subject_id == self.root_id

    def reset_state(self) -> None:
        """Drop back to browsing; the subject is left as is."""
        self.mode = Mode.BROWSING

    def reset_input_wait(self) -> None:
        self.input_wait = InputWait.NONE

    def set_searching(self, query: str | None, search_dir_id: str) -> None:
        """Enter search mode rooted at *search_dir_id* from the first page."""
        self.mode = Mode.SEARCHING
        self.query = query
        self.search_dir_id = search_dir_id
        self.view_offset = 0

    def set_sharing(self) -> None:
        self.mode = Mode.SHARING

    def set_gearing(self) -> None:
        self.mode = Mode.GEARING

    def expect(self, wait: InputWait) -> None:
        self.input_wait = wait

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def move_to(self, entry_id: str, *, keep_offset: bool = False) -> None:
        """Point the session at *entry_id*, rewinding pagination unless told not to."""
        self.subject_id = entry_id
        if not keep_offset:
            self.view_offset = 0

    def shift_offset(self, delta: int, upper: int | None = None) -> None:
        """Move the pagination cursor by *delta*, never below zero.

        When *upper* is given the cursor is also capped at it.
        """
        offset = self.view_offset + delta
        if upper is not None:
            offset = min(offset, upper)
        self.view_offset = max(0, offset)

    def copy(self) -> Session:
        return dataclasses.replace(self)
