"""UserDirectory — identity resolution and session persistence."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chatfs.session import InputWait, Mode, Session

from .utils import flush

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from chatfs.models.users import UserBase

    from .entries import EntryStore

logger = logging.getLogger(__name__)


class UserDirectory:
    """Resolves chat identities to user records and their sessions."""

    def __init__(self, user_model: type[UserBase], entries: EntryStore) -> None:
        self._user_model = user_model
        self._entries = entries

    async def get(self, session: AsyncSession, user_id: int) -> UserBase | None:
        return await session.get(self._user_model, user_id)

    async def resolve(
        self,
        session: AsyncSession,
        user_id: int,
        *,
        name: str | None = None,
        lang: str | None = None,
    ) -> UserBase:
        """Idempotent upsert by chat id.

        New users get a root directory and start browsing it.  Known users
        keep their state; a non-empty *name* or *lang* refreshes the record.
        """
        user = await self.get(session, user_id)
        if user is None:
            root = await self._entries.find_root(session, user_id)
            user = self._user_model(
                id=user_id,
                name=name or "",
                lang=lang,
                root_id=root.id,
                subject_id=root.id,
            )
            session.add(user)
            await flush(session)
            logger.info("Registered user %s", user_id)
            return user

        if name:
            user.name = name
        if lang and not user.lang:
            user.lang = lang
        if user.root_id is None:
            user.root_id = (await self._entries.find_root(session, user_id)).id
        if user.subject_id is None:
            user.subject_id = user.root_id
        session.add(user)
        await flush(session)
        return user

    async def load_session(self, session: AsyncSession, user_id: int) -> Session:
        """Return a detached copy of the stored session of *user_id*."""
        user = await self.resolve(session, user_id)
        assert user.root_id is not None and user.subject_id is not None
        return Session(
            id=user.id,
            root_id=user.root_id,
            subject_id=user.subject_id,
            search_dir_id=user.search_dir_id,
            query=user.query,
            view_offset=user.view_offset,
            mode=Mode(user.mode),
            input_wait=InputWait(user.input_wait),
            lang=user.lang,
            name=user.name,
        )

    async def save_session(self, session: AsyncSession, state: Session) -> None:
        """Write *state* back onto the user record."""
        user = await self.resolve(session, state.id)
        user.root_id = state.root_id
        user.subject_id = state.subject_id
        user.search_dir_id = state.search_dir_id
        user.query = state.query
        user.view_offset = state.view_offset
        user.mode = state.mode.value
        user.input_wait = state.input_wait.value
        user.lang = state.lang
        session.add(user)
        await flush(session)
