"""ShareStore — global links and personal grants on entries.

Stateless service that receives the share and entry models at
construction and a session at call time, following the EntryStore
pattern.  Keeping an entry's ``shared`` flag in step with its shares is
the dispatcher's job, not this store's.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlmodel import select

from chatfs.exceptions import ShareNotFoundError
from chatfs.models.shares import GLOBAL

from .utils import flush

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from chatfs.models.entries import EntryBase
    from chatfs.models.shares import ShareBase

logger = logging.getLogger(__name__)


class ShareStore:
    """Manages shares of entries between users."""

    def __init__(
        self,
        share_model: type[ShareBase],
        entry_model: type[EntryBase],
    ) -> None:
        self._share_model = share_model
        self._entry_model = entry_model

    async def create(
        self,
        session: AsyncSession,
        owner_id: int,
        entry_id: str,
        target_user_id: int,
        *,
        name: str,
        from_name: str = "",
        lang: str | None = None,
        expires_at: datetime | None = None,
    ) -> ShareBase:
        """Create a share.  Flushes but does not commit.

        An entry has at most one global link: asking for another returns
        the existing one.
        """
        if target_user_id == GLOBAL:
            existing = await self.global_for(session, entry_id)
            if existing is not None:
                return existing

        share = self._share_model(
            entry_id=entry_id,
            owner_id=owner_id,
            shared_to=target_user_id,
            name=name,
            from_name=from_name,
            lang=lang,
            expires_at=expires_at,
        )
        session.add(share)
        await flush(session)
        logger.info(
            "Shared entry %s by %s to %s",
            entry_id,
            owner_id,
            "link" if target_user_id == GLOBAL else target_user_id,
        )
        return share

    async def get(self, session: AsyncSession, share_id: str) -> ShareBase | None:
        return await session.get(self._share_model, share_id)

    async def delete(self, session: AsyncSession, share_id: str) -> bool:
        """Remove a share by id. Returns True if found."""
        share = await self.get(session, share_id)
        if share is None:
            return False
        await session.delete(share)
        await flush(session)
        logger.info("Dropped share %s on entry %s", share_id, share.entry_id)
        return True

    async def global_for(self, session: AsyncSession, entry_id: str) -> ShareBase | None:
        model = self._share_model
        result = await session.execute(
            select(model).where(model.entry_id == entry_id, model.shared_to == GLOBAL)
        )
        return result.scalars().first()

    async def drop_global(self, session: AsyncSession, entry_id: str) -> bool:
        """Remove the global link of *entry_id*. Returns True if one existed."""
        share = await self.global_for(session, entry_id)
        if share is None:
            return False
        return await self.delete(session, share.id)

    async def list_for_entry(self, session: AsyncSession, entry_id: str) -> list[ShareBase]:
        """All shares of *entry_id*, ordered by display name."""
        model = self._share_model
        result = await session.execute(
            select(model)
            .where(model.entry_id == entry_id)
            .order_by(model.name, model.id)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())

    async def exists_for(
        self,
        session: AsyncSession,
        entry_id: str,
        target_user_id: int,
    ) -> bool:
        model = self._share_model
        result = await session.execute(
            select(model.id).where(
                model.entry_id == entry_id,
                model.shared_to == target_user_id,
            )
        )
        return result.first() is not None

    async def any_exist_for(self, session: AsyncSession, entry_id: str) -> bool:
        model = self._share_model
        result = await session.execute(select(model.id).where(model.entry_id == entry_id))
        return result.first() is not None

    async def get_by_token(self, session: AsyncSession, token: str | None) -> ShareBase | None:
        """Resolve a link token to its global share.

        Personal grants are never reachable by token.
        """
        if not token:
            return None
        share = await self.get(session, token)
        if share is None or not share.is_global:
            return None
        return share

    async def require(self, session: AsyncSession, share_id: str) -> ShareBase:
        """Get a share by id or raise ``ShareNotFoundError``."""
        share = await self.get(session, share_id)
        if share is None:
            raise ShareNotFoundError(f"Share not found: {share_id}")
        return share

    async def change_read_write(self, session: AsyncSession, share_id: str) -> ShareBase:
        """Toggle the read/write flag of a share."""
        share = await self.require(session, share_id)
        share.read_write = not share.read_write
        session.add(share)
        await flush(session)
        return share

    async def shared_with(self, session: AsyncSession, user_id: int) -> list[ShareBase]:
        """Active personal shares granted to *user_id*."""
        model = self._share_model
        result = await session.execute(
            select(model)
            .where(model.shared_to == user_id)
            .order_by(model.name, model.id)  # type: ignore[arg-type]
        )
        return [s for s in result.scalars().all() if s.is_active()]

    async def shared_entries(self, session: AsyncSession, user_id: int) -> list[EntryBase]:
        """Entries of other users that *user_id* holds an active personal share on."""
        entry, share = self._entry_model, self._share_model
        result = await session.execute(
            select(entry, share)
            .join(share, share.entry_id == entry.id)  # type: ignore[arg-type]
            .where(share.shared_to == user_id, entry.owner_id != user_id)
            .order_by(entry.name, entry.id)  # type: ignore[arg-type]
        )
        found: dict[str, EntryBase] = {}
        for e, s in result.all():
            if s.is_active():
                found.setdefault(e.id, e)
        return list(found.values())

    async def access_for(
        self,
        session: AsyncSession,
        entry: EntryBase,
        user_id: int,
    ) -> ShareBase | None:
        """Active personal share through which *user_id* reaches *entry*.

        Access resolution walks up the ancestors of *entry*: a share on a
        directory covers everything below it.  A read-write share wins
        over a read-only one.  Expired shares are ignored.
        """
        ancestors = []
        current: EntryBase | None = entry
        while current is not None:
            ancestors.append(current.id)
            if current.parent_id is None:
                break
            current = await session.get(self._entry_model, current.parent_id)

        model = self._share_model
        result = await session.execute(
            select(model).where(
                model.shared_to == user_id,
                model.entry_id.in_(ancestors),  # type: ignore[union-attr]
            )
        )
        active = [s for s in result.scalars().all() if s.is_active()]
        if not active:
            return None
        return next((s for s in active if s.read_write), active[0])

    async def check_permission(
        self,
        session: AsyncSession,
        entry: EntryBase,
        user_id: int,
        required: str = "read",
    ) -> bool:
        """Check if *user_id* has *required* (``read`` or ``write``) access to *entry*.

        Owners have full access.  Write shares imply read.
        """
        if entry.owner_id == user_id:
            return True
        share = await self.access_for(session, entry, user_id)
        if share is None:
            return False
        return required == "read" or share.read_write

    async def apply_link(
        self,
        session: AsyncSession,
        share: ShareBase,
        user_id: int,
        *,
        user_name: str = "",
        lang: str | None = None,
    ) -> EntryBase | None:
        """Give *user_id* personal read-only access through a global link.

        Returns the shared entry, or ``None`` when it no longer exists.
        """
        entry = await session.get(self._entry_model, share.entry_id)
        if entry is None:
            return None
        if not await self.exists_for(session, entry.id, user_id):
            await self.create(
                session,
                share.owner_id,
                entry.id,
                user_id,
                name=user_name or str(user_id),
                from_name=share.from_name,
                lang=lang,
            )
        logger.info("User %s joined entry %s by link %s", user_id, entry.id, share.id)
        return entry
