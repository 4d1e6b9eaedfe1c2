"""EntryStore — CRUD, hierarchy and name search over the entry tree."""

from __future__ import annotations

import logging
import posixpath
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlmodel import select

from chatfs.exceptions import EntryNotFoundError
from chatfs.models.entries import EntryType

from .utils import flush, like_contains

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from chatfs.models.entries import EntryBase
    from chatfs.models.shares import ShareBase

logger = logging.getLogger(__name__)


class EntryStore:
    """Stateless entry service.

    Receives the concrete entry and share models at construction so
    callers can use custom SQLModel subclasses, and a session at call time.
    Nothing here commits; the caller owns the transaction.
    """

    def __init__(
        self,
        entry_model: type[EntryBase],
        share_model: type[ShareBase],
    ) -> None:
        self._entry_model = entry_model
        self._share_model = share_model

    @property
    def model(self) -> type[EntryBase]:
        return self._entry_model

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get(self, session: AsyncSession, entry_id: str | None) -> EntryBase | None:
        """Get an entry by id."""
        if entry_id is None:
            return None
        return await session.get(self._entry_model, entry_id)

    async def require(self, session: AsyncSession, entry_id: str | None) -> EntryBase:
        """Get an entry by id or raise ``EntryNotFoundError``."""
        entry = await self.get(session, entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Entry not found: {entry_id}")
        return entry

    async def list(self, session: AsyncSession, parent_id: str) -> list[EntryBase]:
        """Children of *parent_id* in stable name order."""
        model = self._entry_model
        result = await session.execute(
            select(model)
            .where(model.parent_id == parent_id)
            .order_by(model.name, model.id)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())

    async def list_of_type(
        self,
        session: AsyncSession,
        parent_id: str,
        entry_type: EntryType,
    ) -> list[EntryBase]:
        """Children of *parent_id* restricted to *entry_type*."""
        model = self._entry_model
        result = await session.execute(
            select(model)
            .where(model.parent_id == parent_id, model.type == entry_type)
            .order_by(model.name, model.id)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())

    async def search(
        self,
        session: AsyncSession,
        query: str | None,
        root_id: str,
    ) -> list[EntryBase]:
        """Entries below *root_id* whose name contains *query*, case-insensitively.

        The root itself is never part of the result.  Below a user's root
        the whole tree of its owner is searched; below any other directory
        only its descendants are.
        """
        if not query:
            return []
        root = await self.get(session, root_id)
        if root is None:
            return []
        model = self._entry_model
        stmt = select(model).where(
            func.lower(model.name).like(like_contains(query.lower()), escape="\\"),
        )
        if root.is_root:
            stmt = stmt.where(model.owner_id == root.owner_id, model.id != root.id)
        else:
            below = await self.descendant_ids(session, root)
            stmt = stmt.where(model.id.in_(below))  # type: ignore[union-attr]
        result = await session.execute(stmt.order_by(model.path, model.id))  # type: ignore[arg-type]
        return list(result.scalars().all())

    async def descendant_ids(self, session: AsyncSession, entry: EntryBase) -> list[str]:
        """Ids of every entry below *entry*, found by following ``parent_id``."""
        model = self._entry_model
        found: list[str] = []
        frontier = [entry.id]
        while frontier:
            result = await session.execute(
                select(model.id).where(model.parent_id.in_(frontier))  # type: ignore[union-attr]
            )
            frontier = list(result.scalars().all())
            found.extend(frontier)
        return found

    async def name_available(
        self,
        session: AsyncSession,
        name: str | None,
        parent_id: str | None,
    ) -> bool:
        """True when no child of *parent_id* is called *name*."""
        if not name or parent_id is None:
            return False
        model = self._entry_model
        result = await session.execute(
            select(model.id).where(model.parent_id == parent_id, model.name == name)
        )
        return result.first() is None

    async def find_root(self, session: AsyncSession, user_id: int) -> EntryBase:
        """Return the root directory of *user_id*, creating it on first use."""
        model = self._entry_model
        result = await session.execute(
            select(model).where(model.owner_id == user_id, model.parent_id.is_(None))  # type: ignore[union-attr]
        )
        root = result.scalars().first()
        if root is not None:
            return root
        root = model(owner_id=user_id, name="", path="/", type=EntryType.DIR)
        session.add(root)
        await flush(session)
        logger.debug("Created root %s for user %s", root.id, user_id)
        return root

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def create(
        self,
        session: AsyncSession,
        entry: EntryBase,
        parent: EntryBase | None = None,
    ) -> EntryBase:
        """Insert *entry*; its ``path`` is derived from *parent* when given."""
        if parent is None and entry.parent_id is not None:
            parent = await self.require(session, entry.parent_id)
        if parent is not None:
            entry.parent_id = parent.id
            entry.path = posixpath.join(parent.path, entry.name)
        session.add(entry)
        await flush(session)
        logger.debug("Created %s %s", entry.type.value, entry.path)
        return entry

    async def update_meta(
        self,
        session: AsyncSession,
        entry: EntryBase,
        *,
        old_path: str | None = None,
    ) -> None:
        """Persist name/path/flag changes of *entry*.

        When *old_path* differs from the entry's path, descendant paths are
        rebuilt from their parents.
        """
        entry.updated_at = datetime.now(UTC)
        session.add(entry)
        if old_path is not None and old_path != entry.path and entry.is_dir:
            await self._rewrite_descendants(session, entry)
        await flush(session)

    async def _rewrite_descendants(self, session: AsyncSession, entry: EntryBase) -> int:
        model = self._entry_model
        count = 0
        frontier = [entry]
        while frontier:
            parents = {p.id: p for p in frontier}
            result = await session.execute(
                select(model).where(model.parent_id.in_(list(parents)))  # type: ignore[union-attr]
            )
            frontier = list(result.scalars().all())
            for child in frontier:
                child.path = posixpath.join(parents[child.parent_id].path, child.name)
            count += len(frontier)
        return count

    async def delete(self, session: AsyncSession, entry: EntryBase) -> int:
        """Delete *entry*, its whole subtree, and every share into it.

        Returns the number of entries removed.
        """
        model = self._entry_model
        ids = [entry.id]
        if entry.is_dir:
            ids.extend(await self.descendant_ids(session, entry))

        share = self._share_model
        await session.execute(
            sa_delete(share).where(share.entry_id.in_(ids))  # type: ignore[union-attr]
        )
        await session.execute(
            sa_delete(model).where(model.id.in_(ids))  # type: ignore[union-attr]
        )
        await flush(session)
        logger.debug("Deleted %s (%d entries)", entry.path, len(ids))
        return len(ids)
