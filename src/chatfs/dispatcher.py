"""Dispatcher — the per-turn state machine over command kinds.

``Dispatcher.run`` consumes a command and a session, mutates the session
copy and the stores, selects a view kind, and finishes the turn with
exactly one transport call: a prompt dialog or a rendered response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from chatfs.commands import CommandType
from chatfs.exceptions import EntryNotFoundError, ShareNotFoundError, StaleSelectionError
from chatfs.models.entries import EntryType
from chatfs.models.shares import GLOBAL
from chatfs.scope import ScopeResolver
from chatfs.session import InputWait
from chatfs.text import Text
from chatfs.transport import Dialog
from chatfs.views import ViewComposer, ViewKind, last_page_start, plain_view, searched_view

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chatfs.commands import Command
    from chatfs.context import TurnContext
    from chatfs.models.entries import EntryBase
    from chatfs.session import Session
    from chatfs.transport import Response

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    """What a turn produced.

    Attributes:
        session: The mutated session copy, to be persisted by the caller.
        kind: Selected view kind; ``NONE`` when a dialog was sent instead.
        subject: Entry the view was rendered for.
        parent: Parent of *subject* (the subject itself at a root).
        dialog: Prompt sent instead of a view, if any.
        response: Rendered view sent to the transport, if any.
    """

    session: Session
    kind: ViewKind
    subject: EntryBase
    parent: EntryBase
    dialog: Dialog | None = None
    response: Response | None = None


@dataclass
class _Turn:
    """Working state of one dispatch."""

    command: Command
    session: Session
    subject: EntryBase
    parent: EntryBase
    kind: ViewKind = ViewKind.NONE
    dialog: Dialog | None = None

    def go(self, subject: EntryBase, parent: EntryBase, *, keep_offset: bool = False) -> None:
        """Navigate to *subject*."""
        self.subject = subject
        self.parent = parent
        self.session.move_to(subject.id, keep_offset=keep_offset)

    def ask(self, prompt: Text, wait: InputWait, *args: object) -> None:
        """Request free text instead of rendering a view."""
        self.dialog = Dialog(prompt, args)
        self.session.expect(wait)
        self.kind = ViewKind.NONE


class Dispatcher:
    """Turns (command, session) into store mutations and a view kind."""

    def __init__(self, ctx: TurnContext) -> None:
        self._ctx = ctx
        self._scope = ScopeResolver(ctx)
        self._composer = ViewComposer(ctx, self._scope)
        self._handlers: dict[CommandType, Callable[[_Turn], Awaitable[None]]] = {
            CommandType.BACK_TO_SEARCH: self._back_to_search,
            CommandType.CANCEL_SEARCH: self._cancel_mode,
            CommandType.CANCEL_SHARE: self._cancel_mode,
            CommandType.CHANGE_RO: self._change_ro,
            CommandType.CONTEXT_HELP: self._context_help,
            CommandType.DO_SEARCH: self._do_search,
            CommandType.DROP_DIR: self._drop_entry,
            CommandType.DROP_FILE: self._drop_entry,
            CommandType.DROP_LABEL: self._drop_entry,
            CommandType.DROP_GLOB_LINK: self._drop_glob_link,
            CommandType.DROP_SHARE: self._drop_share,
            CommandType.EDIT_LABEL: self._rename,
            CommandType.RENAME_DIR: self._rename,
            CommandType.RENAME_FILE: self._rename,
            CommandType.FORWARD: self._page,
            CommandType.REWIND: self._page,
            CommandType.GEAR: self._gear,
            CommandType.GRANT_ACCESS: self._grant_access,
            CommandType.JOIN_PUBLIC_SHARE: self._join_public_share,
            CommandType.MAKE_GLOB_LINK: self._make_glob_link,
            CommandType.MK_DIR: self._mk_dir,
            CommandType.MK_GRANT: self._mk_grant,
            CommandType.MK_LABEL: self._mk_label,
            CommandType.OPEN_DIR: self._open_child,
            CommandType.OPEN_FILE: self._open_child,
            CommandType.OPEN_LABEL: self._open_child,
            CommandType.OPEN_PARENT: self._open_parent,
            CommandType.OPEN_SEARCHED_DIR: self._open_searched,
            CommandType.OPEN_SEARCHED_FILE: self._open_searched,
            CommandType.OPEN_SEARCHED_LABEL: self._open_searched,
            CommandType.RESET_TO_ROOT: self._reset_to_root,
            CommandType.SHARE: self._share,
            CommandType.UPLOAD_FILE: self._upload_file,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(self, command: Command, session: Session) -> Outcome:
        """Dispatch *command* and deliver the result through the transport."""
        outcome = await self.dispatch(command, session)
        ctx = self._ctx
        if outcome.dialog is not None:
            await ctx.transport.render_dialog(outcome.dialog, outcome.session)
        else:
            outcome.response = await self._composer.compose(
                outcome.subject, outcome.parent, outcome.kind, outcome.session
            )
            await ctx.transport.send_response(outcome.response, outcome.session)
        return outcome

    async def dispatch(self, command: Command, session: Session) -> Outcome:
        """Apply *command* to a copy of *session* and pick the view kind.

        Unresolvable subjects and stale selections degrade to a browsing
        view instead of failing the turn.  Store faults propagate.
        """
        session = session.copy()
        logger.debug("Dispatching %s for user %s", command.type.value, session.id)

        try:
            turn = await self._start(command, session)
        except EntryNotFoundError as e:
            logger.warning("Lost position of user %s: %s", session.id, e)
            turn = await self._root_turn(command, session)
        if command.type is not CommandType.CONTEXT_HELP:
            session.reset_input_wait()

        try:
            await self._handlers[command.type](turn)
        except (StaleSelectionError, ShareNotFoundError) as e:
            logger.warning("Stale selection from user %s: %s", session.id, e)
            session.reset_state()
            turn.kind = plain_view(turn.subject)
            turn.dialog = None
        except EntryNotFoundError as e:
            logger.warning("Lost position of user %s: %s", session.id, e)
            turn = await self._root_turn(command, session)
            turn.kind = ViewKind.VIEW_DIR

        if turn.dialog is None and turn.kind is ViewKind.NONE:
            turn.kind = plain_view(turn.subject)
        logger.debug("Turn of user %s ends in %s", session.id, turn.kind.value)
        return Outcome(
            session=session,
            kind=turn.kind,
            subject=turn.subject,
            parent=turn.parent,
            dialog=turn.dialog,
        )

    async def _start(self, command: Command, session: Session) -> _Turn:
        ctx = self._ctx
        subject = await ctx.entries.get(ctx.db, session.subject_id)
        if subject is None:
            logger.warning(
                "Subject %s of user %s is gone, falling back to root",
                session.subject_id,
                session.id,
            )
            return await self._root_turn(command, session)
        parent = await self._parent_of(subject, session)
        return _Turn(command, session, subject, parent)

    async def _root_turn(self, command: Command, session: Session) -> _Turn:
        """A turn positioned at the user's root in browsing mode."""
        session.reset_state()
        root = await self._root(session)
        return _Turn(command, session, root, root)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _root(self, session: Session) -> EntryBase:
        ctx = self._ctx
        root = await ctx.entries.get(ctx.db, session.root_id)
        if root is None:
            root = await ctx.entries.find_root(ctx.db, session.id)
            session.root_id = root.id
        session.move_to(root.id)
        return root

    async def _parent_of(self, entry: EntryBase, session: Session) -> EntryBase:
        """Navigational parent of *entry* as seen by *session*'s user.

        The top of a subtree shared with the user leads back to the user's
        own root rather than into the owner's tree.
        """
        ctx = self._ctx
        if entry.parent_id is None:
            return entry
        if entry.owner_id != session.id and await ctx.shares.exists_for(ctx.db, entry.id, session.id):
            root = await ctx.entries.get(ctx.db, session.root_id)
            if root is not None:
                return root
        parent = await ctx.entries.get(ctx.db, entry.parent_id)
        if parent is None:
            raise EntryNotFoundError(f"Parent of {entry.path} not found: {entry.parent_id}")
        return parent

    async def _sync_shared_flag(self, entry: EntryBase) -> None:
        """Make ``entry.shared`` agree with whether any share references it."""
        ctx = self._ctx
        shared = await ctx.shares.any_exist_for(ctx.db, entry.id)
        if entry.shared != shared:
            entry.shared = shared
            await ctx.entries.update_meta(ctx.db, entry)

    def _home(self, turn: _Turn) -> tuple[EntryBase, bool]:
        """Directory new content goes into, and whether it is the subject."""
        if turn.subject.is_dir:
            return turn.subject, True
        return turn.parent, False

    async def _may_write(self, turn: _Turn, entry: EntryBase) -> bool:
        """True when the turn's user may change *entry* or what it contains."""
        ctx = self._ctx
        if await ctx.shares.check_permission(ctx.db, entry, turn.session.id, "write"):
            return True
        logger.warning("User %s has no write access to %s", turn.session.id, entry.path)
        return False

    @staticmethod
    def _owner_only(turn: _Turn) -> bool:
        """Shares are managed by the owner; anyone else gets the plain view."""
        if turn.subject.owner_id == turn.session.id:
            return True
        logger.warning("User %s may not manage shares of %s", turn.session.id, turn.subject.path)
        turn.session.reset_state()
        turn.kind = plain_view(turn.subject)
        return False

    @staticmethod
    def _require_sharing(turn: _Turn) -> None:
        if not turn.session.sharing:
            raise StaleSelectionError("Share picked outside of sharing mode")

    async def _pageable_count(self, turn: _Turn) -> int:
        if turn.session.searching and turn.subject.id == turn.session.search_dir_id:
            return len(await self._scope.search(turn.session))
        return sum(1 for e in await self._scope.children(turn.subject, turn.session) if not e.is_label)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def _open_child(self, turn: _Turn) -> None:
        session = turn.session
        if session.sharing:
            raise StaleSelectionError("Entry picked while managing shares")
        if session.searching:
            # a searched directory lists its plain children
            session.reset_state()
        child = await self._scope.by_index(turn.command.element_idx, turn.subject, session)
        session.reset_state()
        turn.go(child, turn.subject)
        turn.kind = plain_view(child)

    async def _open_searched(self, turn: _Turn) -> None:
        if not turn.session.searching:
            raise StaleSelectionError("Search result picked outside of search mode")
        hit = await self._scope.by_index(turn.command.element_idx, turn.subject, turn.session)
        # a file or label keeps the results page to return to
        turn.go(hit, await self._parent_of(hit, turn.session), keep_offset=not hit.is_dir)
        turn.kind = searched_view(hit)

    async def _open_parent(self, turn: _Turn) -> None:
        turn.session.reset_state()
        parent = turn.parent
        turn.go(parent, await self._parent_of(parent, turn.session))
        turn.kind = ViewKind.VIEW_DIR

    async def _reset_to_root(self, turn: _Turn) -> None:
        turn.session.reset_state()
        root = await self._root(turn.session)
        turn.go(root, root)
        turn.kind = ViewKind.VIEW_DIR

    async def _page(self, turn: _Turn) -> None:
        session = turn.session
        page = self._ctx.config.page_size
        delta = -page if turn.command.type is CommandType.REWIND else page
        upper = None
        if self._ctx.config.clamp_offset:
            upper = last_page_start(await self._pageable_count(turn), page)
        session.shift_offset(delta, upper)

        if not session.searching:
            turn.kind = ViewKind.VIEW_DIR
        elif turn.subject.id == session.search_dir_id:
            turn.kind = ViewKind.SEARCH_RESULTS
        else:
            turn.kind = ViewKind.VIEW_SEARCHED_DIR

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    async def _cancel_mode(self, turn: _Turn) -> None:
        turn.session.reset_state()
        turn.kind = plain_view(turn.subject)

    async def _gear(self, turn: _Turn) -> None:
        turn.session.set_gearing()
        turn.kind = ViewKind.GEAR_SUBJECT

    async def _share(self, turn: _Turn) -> None:
        if not self._owner_only(turn):
            return
        turn.session.reset_state()
        turn.session.set_sharing()
        turn.kind = ViewKind.SUBJECT_SHARES

    async def _do_search(self, turn: _Turn) -> None:
        session = turn.session
        session.reset_state()
        if not turn.subject.is_dir:
            root = await self._root(session)
            turn.go(root, root)
        session.set_searching(turn.command.input, turn.subject.id)
        turn.kind = ViewKind.SEARCH_RESULTS

    async def _back_to_search(self, turn: _Turn) -> None:
        ctx = self._ctx
        session = turn.session
        search_dir = await ctx.entries.get(ctx.db, session.search_dir_id)
        if search_dir is None:
            search_dir = await self._root(session)
        turn.go(search_dir, await self._parent_of(search_dir, session), keep_offset=True)
        if not session.searching:
            session.set_searching(session.query, search_dir.id)
        turn.kind = ViewKind.SEARCH_RESULTS

    async def _context_help(self, turn: _Turn) -> None:
        session, subject = turn.session, turn.subject
        if session.searching:
            prompt = Text.SEARCHED_HELP
        elif session.sharing:
            prompt = Text.SHARE_DIR_HELP if subject.is_dir else Text.SHARE_FILE_HELP
        elif session.gearing and not session.on_top:
            prompt = Text.GEAR_HELP
        elif subject.is_label:
            prompt = Text.LABEL_HELP
        elif subject.is_file:
            prompt = Text.FILE_HELP
        elif session.on_top:
            prompt = Text.ROOT_HELP
        else:
            prompt = Text.LS_HELP
        turn.dialog = Dialog(prompt, expects_reply=False, escaped=False)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def _mk_dir(self, turn: _Turn) -> None:
        ctx = self._ctx
        name = (turn.command.input or "").strip()
        if not name:
            turn.ask(Text.TYPE_FOLDER, InputWait.WAIT_DIR)
            return

        turn.session.reset_state()
        home, is_subject = self._home(turn)
        if not is_subject:
            turn.go(home, await self._parent_of(home, turn.session))
        turn.kind = ViewKind.VIEW_DIR
        if not await self._may_write(turn, home):
            return
        if not await ctx.entries.name_available(ctx.db, name, home.id):
            logger.debug("mkDir %r rejected: name taken in %s", name, home.path)
            return
        created = await ctx.entries.create(
            ctx.db,
            ctx.entries.model(name=name, owner_id=home.owner_id, type=EntryType.DIR),
            parent=home,
        )
        turn.go(created, home)

    async def _mk_label(self, turn: _Turn) -> None:
        ctx = self._ctx
        text = (turn.command.input or "").strip()
        if not text:
            turn.ask(Text.TYPE_LABEL, InputWait.WAIT_LABEL)
            return

        turn.session.reset_state()
        home, is_subject = self._home(turn)
        if not is_subject:
            turn.go(home, await self._parent_of(home, turn.session))
        turn.kind = ViewKind.VIEW_DIR
        if not await self._may_write(turn, home):
            return
        if not await ctx.entries.name_available(ctx.db, text, home.id):
            logger.debug("mkLabel rejected: text taken in %s", home.path)
            return
        await ctx.entries.create(
            ctx.db,
            ctx.entries.model(name=text, owner_id=home.owner_id, type=EntryType.LABEL),
            parent=home,
        )

    async def _rename(self, turn: _Turn) -> None:
        ctx = self._ctx
        subject = turn.subject
        name = (turn.command.input or "").strip()
        if not name:
            turn.ask(Text.TYPE_RENAME, InputWait.WAIT_RENAME, subject.name)
            return

        turn.session.reset_state()
        turn.kind = plain_view(subject)
        if subject.is_root or name == subject.name:
            return
        if not await self._may_write(turn, subject):
            return
        if not await ctx.entries.name_available(ctx.db, name, subject.parent_id):
            logger.debug("Rename of %s to %r rejected: name taken", subject.path, name)
            return
        stored_parent = await ctx.entries.require(ctx.db, subject.parent_id)
        old_path = subject.path
        subject.rename(name, stored_parent.path)
        await ctx.entries.update_meta(ctx.db, subject, old_path=old_path)

    async def _drop_entry(self, turn: _Turn) -> None:
        ctx = self._ctx
        session = turn.session
        session.reset_state()
        turn.kind = ViewKind.VIEW_DIR
        if turn.subject.is_root:
            return
        if not await self._may_write(turn, turn.subject):
            turn.kind = plain_view(turn.subject)
            return
        parent = turn.parent
        await ctx.entries.delete(ctx.db, turn.subject)
        turn.go(parent, await self._parent_of(parent, session))

    async def _upload_file(self, turn: _Turn) -> None:
        ctx = self._ctx
        upload = turn.command.file
        turn.session.reset_state()
        home, is_subject = self._home(turn)
        if not is_subject:
            turn.go(home, await self._parent_of(home, turn.session))
        turn.kind = ViewKind.VIEW_DIR
        if not await self._may_write(turn, home):
            return
        if upload is None or not await ctx.entries.name_available(ctx.db, upload.name, home.id):
            logger.debug("Upload into %s rejected", home.path)
            return
        await ctx.entries.create(
            ctx.db,
            ctx.entries.model(
                name=upload.name,
                owner_id=home.owner_id,
                type=EntryType.FILE,
                content_ref=upload.ref,
                mime_type=upload.mime_type,
            ),
            parent=home,
        )

    # ------------------------------------------------------------------
    # Shares
    # ------------------------------------------------------------------

    async def _make_glob_link(self, turn: _Turn) -> None:
        if not self._owner_only(turn):
            return
        ctx = self._ctx
        subject = turn.subject
        turn.session.set_sharing()
        turn.kind = ViewKind.SUBJECT_SHARES
        await ctx.shares.create(
            ctx.db,
            subject.owner_id,
            subject.id,
            GLOBAL,
            name=subject.name,
            from_name=turn.session.name,
        )
        await self._sync_shared_flag(subject)

    async def _drop_glob_link(self, turn: _Turn) -> None:
        if not self._owner_only(turn):
            return
        ctx = self._ctx
        turn.session.set_sharing()
        turn.kind = ViewKind.SUBJECT_SHARES
        await ctx.shares.drop_global(ctx.db, turn.subject.id)
        await self._sync_shared_flag(turn.subject)

    async def _drop_share(self, turn: _Turn) -> None:
        if not self._owner_only(turn):
            return
        ctx = self._ctx
        turn.kind = ViewKind.SUBJECT_SHARES
        self._require_sharing(turn)
        share = await self._scope.by_index(turn.command.element_idx, turn.subject, turn.session)
        await ctx.shares.delete(ctx.db, share.id)
        await self._sync_shared_flag(turn.subject)

    async def _change_ro(self, turn: _Turn) -> None:
        if not self._owner_only(turn):
            return
        ctx = self._ctx
        turn.kind = ViewKind.SUBJECT_SHARES
        self._require_sharing(turn)
        share = await self._scope.by_index(turn.command.element_idx, turn.subject, turn.session)
        await ctx.shares.change_read_write(ctx.db, share.id)

    async def _mk_grant(self, turn: _Turn) -> None:
        if not self._owner_only(turn):
            return
        subject = turn.subject
        prompt = Text.SEND_CONTACT_DIR if subject.is_dir else Text.SEND_CONTACT_FILE
        turn.ask(prompt, InputWait.WAIT_FILE_GRANT, subject.name)

    async def _grant_access(self, turn: _Turn) -> None:
        if not self._owner_only(turn):
            return
        ctx = self._ctx
        session, subject = turn.session, turn.subject
        contact = turn.command.file
        session.set_sharing()
        turn.kind = ViewKind.SUBJECT_SHARES
        if contact is None or contact.owner in (session.id, subject.owner_id):
            logger.debug("Grant on %s rejected: no contact or self-share", subject.path)
            return

        target = await ctx.users.resolve(ctx.db, contact.owner, name=contact.name, lang=session.lang)
        if await ctx.shares.exists_for(ctx.db, subject.id, target.id):
            logger.debug("Grant on %s rejected: %s already has access", subject.path, target.id)
            return
        await ctx.shares.create(
            ctx.db,
            subject.owner_id,
            subject.id,
            target.id,
            name=contact.name,
            from_name=session.name,
            lang=target.lang or ctx.config.default_lang,
        )
        await self._sync_shared_flag(subject)

    async def _join_public_share(self, turn: _Turn) -> None:
        ctx = self._ctx
        session = turn.session
        session.reset_state()
        share = await ctx.shares.get_by_token(ctx.db, turn.command.input)
        entry = None
        if share is None or not share.is_active():
            logger.warning("User %s used unknown or expired link %r", session.id, turn.command.input)
        elif share.owner_id == session.id:
            logger.warning("User %s tried to join own link %s", session.id, share.id)
        else:
            entry = await ctx.shares.apply_link(
                ctx.db, share, session.id, user_name=session.name, lang=session.lang
            )

        if entry is None:
            root = await self._root(session)
            turn.go(root, root)
        else:
            turn.go(entry, await self._parent_of(entry, session))
        turn.kind = plain_view(turn.subject)

