"""ViewComposer — renders a view kind into a body and an action layout."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from chatfs.commands import CommandType
from chatfs.models.entries import EntryType, sort_key
from chatfs.text import Text, escape_md
from chatfs.transport import ActionLayout, Attachment, Button, Response

if TYPE_CHECKING:
    from chatfs.context import TurnContext
    from chatfs.models.entries import EntryBase
    from chatfs.scope import ScopeResolver
    from chatfs.session import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

LINK_MARK = "\U0001f517"
PEOPLE_MARK = "\U0001f465"

_ICONS = {
    EntryType.DIR: "\U0001f4c1",
    EntryType.FILE: "\U0001f4c4",
    EntryType.LABEL: "\U0001f4dd",
}

_OPEN = {
    EntryType.DIR: CommandType.OPEN_DIR,
    EntryType.FILE: CommandType.OPEN_FILE,
    EntryType.LABEL: CommandType.OPEN_LABEL,
}

_OPEN_SEARCHED = {
    EntryType.DIR: CommandType.OPEN_SEARCHED_DIR,
    EntryType.FILE: CommandType.OPEN_SEARCHED_FILE,
    EntryType.LABEL: CommandType.OPEN_SEARCHED_LABEL,
}


class ViewKind(Enum):
    """The rendering selected for a turn's response."""

    NONE = "none"
    SUBJECT_SHARES = "subjectShares"
    GEAR_SUBJECT = "gearSubject"
    VIEW_DIR = "viewDir"
    VIEW_FILE = "viewFile"
    VIEW_LABEL = "viewLabel"
    VIEW_SEARCHED_DIR = "viewSearchedDir"
    VIEW_SEARCHED_FILE = "viewSearchedFile"
    VIEW_SEARCHED_LABEL = "viewSearchedLabel"
    SEARCH_RESULTS = "searchResults"


def plain_view(entry: EntryBase) -> ViewKind:
    """Browsing view matching the type of *entry*."""
    if entry.is_dir:
        return ViewKind.VIEW_DIR
    if entry.is_label:
        return ViewKind.VIEW_LABEL
    return ViewKind.VIEW_FILE


def searched_view(entry: EntryBase) -> ViewKind:
    """Search-mode view matching the type of *entry*."""
    if entry.is_dir:
        return ViewKind.VIEW_SEARCHED_DIR
    if entry.is_label:
        return ViewKind.VIEW_SEARCHED_LABEL
    return ViewKind.VIEW_SEARCHED_FILE


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def page_window(
    scope: Sequence[T],
    offset: int,
    size: int,
    *,
    key: Callable[[T], Any] = sort_key,
    include: Callable[[T], bool] | None = None,
) -> list[tuple[int, T]]:
    """One page of *scope* in display order, paired with address indices.

    Items passing *include* are sorted by *key* and sliced to
    ``[offset, offset + size)``.  Each item is returned with its position
    in the unsorted *scope*, which is the index a selection command must
    carry to resolve back to it.
    """
    position = {id(item): i for i, item in enumerate(scope)}
    shown = sorted((e for e in scope if include is None or include(e)), key=key)
    return [(position[id(e)], e) for e in shown[max(0, offset):offset + size]]


def last_page_start(count: int, size: int) -> int:
    """Offset of the last page of *count* items."""
    return ((count - 1) // size) * size if count > 0 else 0


def not_label(entry: EntryBase) -> bool:
    return not entry.is_label


class ViewComposer:
    """Renders view kinds for one turn.

    Consults the scope resolver again so that every index it encodes is a
    position in the list the next command is resolved against.
    """

    def __init__(self, ctx: TurnContext, scope: ScopeResolver) -> None:
        self._ctx = ctx
        self._scope = scope
        self._views: dict[ViewKind, Callable[..., Any]] = {
            ViewKind.GEAR_SUBJECT: self._gear_subject,
            ViewKind.SEARCH_RESULTS: self._search_results,
            ViewKind.SUBJECT_SHARES: self._subject_shares,
            ViewKind.VIEW_DIR: self._view_dir,
            ViewKind.VIEW_FILE: self._view_file,
            ViewKind.VIEW_LABEL: self._view_label,
            ViewKind.VIEW_SEARCHED_DIR: self._view_searched_dir,
            ViewKind.VIEW_SEARCHED_FILE: self._view_searched_file,
            ViewKind.VIEW_SEARCHED_LABEL: self._view_searched_label,
        }

    async def compose(
        self,
        subject: EntryBase,
        parent: EntryBase,
        kind: ViewKind,
        session: Session,
    ) -> Response:
        """Render *kind* for *subject*; ``ViewKind.NONE`` has no rendering."""
        view = self._views.get(kind)
        if view is None:
            raise ValueError(f"Nothing to render for view kind {kind.value!r}")
        response = Response(body="", layout=ActionLayout())
        await view(response, subject, parent, session)
        logger.debug("Composed %s for %s", kind.value, subject.path)
        return response

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _v(self, key: Text, session: Session, *args: object) -> str:
        return self._ctx.config.strings.v(key, session.lang or self._ctx.config.default_lang, *args)

    def _b(
        self,
        kind: CommandType,
        session: Session,
        param: int | None = None,
        *,
        caption: str | None = None,
    ) -> Button:
        """Button for *kind*, captioned from the string table by default."""
        if caption is None:
            caption = self._v(Text(kind.value), session)
        return Button(caption, kind.mnemonic(param))

    @staticmethod
    def _entry_button(entry: EntryBase, idx: int, *, foreign: bool = False) -> Button:
        icon = PEOPLE_MARK if foreign else _ICONS[entry.type]
        return Button(f"{icon} {entry.name}", _OPEN[entry.type].mnemonic(idx))

    @staticmethod
    def _searched_button(entry: EntryBase, idx: int, skip: int) -> Button:
        caption = entry.path[skip:].lstrip("/") or entry.name
        return Button(f"{_ICONS[entry.type]} {caption}", _OPEN_SEARCHED[entry.type].mnemonic(idx))

    def _labels_block(self, scope: Sequence[EntryBase]) -> str:
        labels = sorted((e for e in scope if e.is_label), key=lambda e: e.name)
        return "".join(f"\n```\n{escape_md(label.name)}```\n" for label in labels)

    def _listing(
        self,
        response: Response,
        subject: EntryBase,
        scope: Sequence[EntryBase],
        session: Session,
    ) -> None:
        """Labels inline in the body, one page of dirs and files as buttons.

        Entries shared in from elsewhere are marked as such.
        """
        labels = self._labels_block(scope)
        if labels:
            response.body += labels
        elif not scope:
            response.body += "\n_" + escape_md(self._v(Text.NO_CONTENT, session)) + "_"

        page = self._ctx.config.page_size
        for idx, entry in page_window(scope, session.view_offset, page, include=not_label):
            foreign = entry.parent_id != subject.id
            response.layout.new_line().button(self._entry_button(entry, idx, foreign=foreign))
        self._pager(response, sum(1 for e in scope if not e.is_label), session)

    def _pager(self, response: Response, count: int, session: Session) -> None:
        page = self._ctx.config.page_size
        back = session.view_offset > 0
        more = count > session.view_offset + page
        if not back and not more:
            return
        response.layout.new_line()
        if back:
            response.layout.button(self._b(CommandType.REWIND, session))
        if more:
            response.layout.button(self._b(CommandType.FORWARD, session))

    def _searched_header(self, session: Session, parent: EntryBase) -> str:
        text = self._v(Text.SEARCHED, session, session.query or "", parent.path or "/")
        return "_" + escape_md(text) + "_\n"

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def _gear_subject(self, response, subject, parent, session) -> None:
        scope = await self._scope.labels(subject)
        response.body = escape_md(self._v(Text.GEARING, session, subject.path or "/"))

        kbd = response.layout
        if not session.on_top:
            kbd.button(
                self._b(CommandType.SHARE, session),
                self._b(CommandType.RENAME_DIR, session),
                self._b(CommandType.DROP_DIR, session),
            )
        kbd.button(self._b(CommandType.CANCEL_SHARE, session))

        for idx, label in enumerate(scope):
            kbd.new_line().button(self._entry_button(label, idx))

    async def _search_results(self, response, subject, parent, session) -> None:
        scope = await self._scope.search(session)
        response.body = escape_md(
            self._v(Text.SEARCHED, session, session.query or "", subject.path or "/")
        )
        response.layout.button(self._b(CommandType.CANCEL_SEARCH, session))

        if not scope:
            response.body += "\n_" + escape_md(self._v(Text.NO_RESULTS, session)) + "_"
            return

        response.body += "\n_" + escape_md(self._v(Text.RESULTS_FOUND, session, len(scope))) + "_"
        skip = len(subject.path or "/")
        page = self._ctx.config.page_size
        for idx, entry in page_window(scope, session.view_offset, page):
            response.layout.new_line().button(self._searched_button(entry, idx, skip))
        self._pager(response, len(scope), session)

    async def _subject_shares(self, response, subject, parent, session) -> None:
        ctx = self._ctx
        scope = await self._scope.shares(subject) if subject.shared else []
        glob = next((s for s in scope if s.is_global), None)
        personal = [(i, s) for i, s in enumerate(scope) if not s.is_global]

        access = Text.DIR_ACCESS if subject.is_dir else Text.FILE_ACCESS
        link = ctx.config.share_link(glob.id) if glob is not None else self._v(Text.NO_GLOBAL_LINK, session)
        response.body = (
            self._v(access, session, "*" + escape_md(subject.path or "/") + "*")
            + "\n\n"
            + f"{LINK_MARK}: _{escape_md(link)}_\n"
        )
        if not personal:
            response.body += f"{PEOPLE_MARK}: _" + escape_md(self._v(Text.NO_PERSONAL_GRANTS, session)) + "_"

        kbd = response.layout
        kbd.button(
            self._b(CommandType.DROP_GLOB_LINK if glob is not None else CommandType.MAKE_GLOB_LINK, session),
            self._b(CommandType.MK_GRANT, session),
            self._b(CommandType.CANCEL_SHARE, session),
        )
        for idx, share in personal:
            mode = Text.SHARE_RW if share.read_write else Text.SHARE_RO
            kbd.new_line().button(
                self._b(CommandType.CHANGE_RO, session, idx, caption=self._v(mode, session, share.name)),
                self._b(CommandType.DROP_SHARE, session, idx),
            )

    async def _view_dir(self, response, subject, parent, session) -> None:
        scope = await self._scope.children(subject, session)
        response.body = escape_md(subject.path) or "/"

        kbd = response.layout
        if not session.on_top:
            kbd.button(self._b(CommandType.OPEN_PARENT, session))
        kbd.button(
            self._b(CommandType.MK_LABEL, session),
            self._b(CommandType.MK_DIR, session),
            self._b(CommandType.GEAR, session),
        )
        self._listing(response, subject, scope, session)

    async def _view_file(self, response, subject, parent, session) -> None:
        response.attachment = Attachment(subject.content_ref, subject.name, subject.mime_type)
        response.body = escape_md(subject.path) or "/"
        response.layout.button(
            self._b(CommandType.OPEN_PARENT, session),
            self._b(CommandType.SHARE, session),
            self._b(CommandType.RENAME_FILE, session),
            self._b(CommandType.DROP_FILE, session),
        )

    async def _view_label(self, response, subject, parent, session) -> None:
        response.body = "*" + (escape_md(parent.path) or "/") + "*\n\n" + escape_md(subject.name)
        response.layout.button(
            self._b(CommandType.OPEN_PARENT, session),
            self._b(CommandType.EDIT_LABEL, session),
            self._b(CommandType.DROP_LABEL, session),
        )

    async def _view_searched_dir(self, response, subject, parent, session) -> None:
        scope = await self._scope.children(subject, session)
        response.body = self._searched_header(session, parent) + escape_md(subject.name)

        response.layout.button(
            self._b(CommandType.BACK_TO_SEARCH, session),
            self._b(CommandType.MK_LABEL, session),
            self._b(CommandType.MK_DIR, session),
            self._b(CommandType.GEAR, session),
        )
        self._listing(response, subject, scope, session)

    async def _view_searched_file(self, response, subject, parent, session) -> None:
        response.attachment = Attachment(subject.content_ref, subject.name, subject.mime_type)
        response.body = self._searched_header(session, parent) + escape_md(subject.name)
        response.layout.button(
            self._b(CommandType.BACK_TO_SEARCH, session),
            self._b(CommandType.SHARE, session),
            self._b(CommandType.RENAME_FILE, session),
            self._b(CommandType.DROP_FILE, session),
        )

    async def _view_searched_label(self, response, subject, parent, session) -> None:
        response.body = self._searched_header(session, parent) + "```\n" + escape_md(subject.name) + "\n```"
        response.layout.button(
            self._b(CommandType.BACK_TO_SEARCH, session),
            self._b(CommandType.EDIT_LABEL, session),
            self._b(CommandType.DROP_LABEL, session),
        )
