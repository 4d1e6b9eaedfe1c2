"""ScopeResolver — the ordered list a selection index addresses."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from chatfs.exceptions import StaleSelectionError
from chatfs.models.entries import EntryType, sort_key

if TYPE_CHECKING:
    from chatfs.context import TurnContext
    from chatfs.models.entries import EntryBase
    from chatfs.models.shares import ShareBase
    from chatfs.session import Session

logger = logging.getLogger(__name__)


class ScopeResolver:
    """Produces the addressable items for a (subject, mode) pair.

    The same subject, mode and store state always yield the same list, so
    an index rendered into a button in one turn resolves to the same item
    in the next.
    """

    def __init__(self, ctx: TurnContext) -> None:
        self._ctx = ctx

    async def scope(self, subject: EntryBase, session: Session) -> list[Any]:
        """Items addressable by index under the session's active mode.

        - sharing: every share of *subject*, by display name
        - searching: search hits under ``search_dir_id``, directories first
        - gearing: label children of *subject*
        - browsing: every child of *subject*, directories first; at the
          user's root, entries other users shared with them join the list
        """
        if session.sharing:
            return await self.shares(subject)
        if session.searching:
            return await self.search(session)
        if session.gearing:
            return await self.labels(subject)
        return await self.children(subject, session)

    async def by_index(self, idx: int | None, subject: EntryBase, session: Session) -> Any:
        """Item at *idx* of the current scope.

        Raises ``StaleSelectionError`` when *idx* is missing or out of range.
        """
        items = await self.scope(subject, session)
        if idx is None or not 0 <= idx < len(items):
            raise StaleSelectionError(
                f"Index {idx!r} outside scope of {len(items)} ({session.mode.value})"
            )
        return items[idx]

    async def children(self, subject: EntryBase, session: Session | None = None) -> list[EntryBase]:
        ctx = self._ctx
        items = await ctx.entries.list(ctx.db, subject.id)
        if session is not None and subject.id == session.root_id:
            items += await ctx.shares.shared_entries(ctx.db, session.id)
        return sorted(items, key=sort_key)

    async def labels(self, subject: EntryBase) -> list[EntryBase]:
        ctx = self._ctx
        return await ctx.entries.list_of_type(ctx.db, subject.id, EntryType.LABEL)

    async def search(self, session: Session) -> list[EntryBase]:
        ctx = self._ctx
        if session.search_dir_id is None:
            return []
        hits = await ctx.entries.search(ctx.db, session.query, session.search_dir_id)
        return sorted(hits, key=sort_key)

    async def shares(self, subject: EntryBase) -> list[ShareBase]:
        ctx = self._ctx
        shares = await ctx.shares.list_for_entry(ctx.db, subject.id)
        return sorted(shares, key=lambda s: s.name)
