"""ChatFsAsync — wires stores, transport and dispatcher into turns."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatfs.commands import (
    Command,
    CommandType,
    contact_command,
    parse_callback,
    parse_text,
    upload_command,
)
from chatfs.config import ChatFsConfig
from chatfs.context import TurnContext
from chatfs.dispatcher import Dispatcher
from chatfs.models.entries import Entry
from chatfs.models.shares import Share
from chatfs.models.users import User
from chatfs.stores.entries import EntryStore
from chatfs.stores.shares import ShareStore
from chatfs.stores.users import UserDirectory

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

    from chatfs.commands import Upload
    from chatfs.dispatcher import Outcome
    from chatfs.models.entries import EntryBase, EntryType
    from chatfs.models.shares import ShareBase
    from chatfs.models.users import UserBase
    from chatfs.session import Session
    from chatfs.transport import Transport

    BuildCommand = Callable[[Session, EntryType | None], Command | None]

logger = logging.getLogger(__name__)

_FALLBACK = Command(CommandType.RESET_TO_ROOT)


class ChatFsAsync:
    """Async facade running one turn per inbound update.

    Every turn loads the user's session, dispatches the command, sends
    exactly one message through the transport and persists the session,
    all inside a single transaction that is rolled back on failure::

        engine = create_async_engine("sqlite+aiosqlite:///chatfs.db")
        fs = ChatFsAsync(engine, transport, ChatFsConfig(bot_nick="my_bot"))
        await fs.init()
        await fs.on_text(42, "/start")
    """

    def __init__(
        self,
        engine: AsyncEngine,
        transport: Transport,
        config: ChatFsConfig | None = None,
        *,
        entry_model: type[EntryBase] | None = None,
        share_model: type[ShareBase] | None = None,
        user_model: type[UserBase] | None = None,
    ) -> None:
        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )
        self._transport = transport
        self.config = config or ChatFsConfig()

        self._entry_model = entry_model or Entry
        self._share_model = share_model or Share
        self._user_model = user_model or User
        self.entries = EntryStore(self._entry_model, self._share_model)
        self.shares = ShareStore(self._share_model, self._entry_model)
        self.users = UserDirectory(self._user_model, self.entries)

    async def init(self) -> None:
        """Create the entry, share and user tables if missing."""
        async with self._engine.begin() as conn:
            for model in (self._entry_model, self._share_model, self._user_model):
                await conn.run_sync(
                    lambda c, m=model: m.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
                )

    # ------------------------------------------------------------------
    # Session management (one transaction per turn)
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    def _context(self, db: AsyncSession) -> TurnContext:
        return TurnContext(
            db=db,
            entries=self.entries,
            shares=self.shares,
            users=self.users,
            transport=self._transport,
            config=self.config,
        )

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def handle(
        self,
        user_id: int,
        command: Command,
        *,
        name: str | None = None,
        lang: str | None = None,
    ) -> Outcome:
        """Run one turn for an already parsed *command*."""
        return await self._turn(user_id, lambda _s, _t: command, name=name, lang=lang)

    async def on_callback(self, user_id: int, payload: str, **user: str | None) -> Outcome:
        """Run the turn for a pressed keyboard action."""
        return await self._turn(user_id, lambda _s, _t: parse_callback(payload), **user)

    async def on_text(self, user_id: int, text: str, **user: str | None) -> Outcome:
        """Run the turn for a typed message."""
        return await self._turn(
            user_id, lambda session, kind: parse_text(text, session, kind), **user
        )

    async def on_upload(self, user_id: int, upload: Upload, **user: str | None) -> Outcome:
        """Store uploaded content next to the current position."""
        return await self._turn(user_id, lambda _s, _t: upload_command(upload), **user)

    async def on_contact(self, user_id: int, contact: Upload, **user: str | None) -> Outcome:
        """Grant access to the contact when one is awaited."""
        return await self._turn(
            user_id, lambda session, _t: contact_command(contact, session), **user
        )

    async def _turn(
        self,
        user_id: int,
        build: BuildCommand,
        *,
        name: str | None = None,
        lang: str | None = None,
    ) -> Outcome:
        async with self._session() as db:
            ctx = self._context(db)
            await self.users.resolve(db, user_id, name=name, lang=lang)
            state = await self.users.load_session(db, user_id)
            subject = await self.entries.get(db, state.subject_id)

            command = build(state, subject.type if subject is not None else None)
            if command is None:
                logger.warning("Unusable update from user %s, resetting to root", user_id)
                command = _FALLBACK

            outcome = await Dispatcher(ctx).run(command, state)
            await self.users.save_session(db, outcome.session)
            return outcome
