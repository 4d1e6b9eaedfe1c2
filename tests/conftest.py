"""Shared fixtures for chatfs tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from chatfs.config import ChatFsConfig
from chatfs.context import TurnContext
from chatfs.dispatcher import Dispatcher
from chatfs.models.entries import Entry, EntryType
from chatfs.models.shares import Share
from chatfs.models.users import User
from chatfs.stores.entries import EntryStore
from chatfs.stores.shares import ShareStore
from chatfs.stores.users import UserDirectory
from chatfs.transport import RecordingTransport

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from chatfs.models.entries import EntryBase
    from chatfs.session import Session

ALICE = 1001
BOB = 2002
CAROL = 3003


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLModel session, rolled back after each test."""
    factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with factory() as session:
        yield session


@pytest.fixture
def entries() -> EntryStore:
    return EntryStore(Entry, Share)


@pytest.fixture
def shares() -> ShareStore:
    return ShareStore(Share, Entry)


@pytest.fixture
def users(entries: EntryStore) -> UserDirectory:
    return UserDirectory(User, entries)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def config() -> ChatFsConfig:
    return ChatFsConfig(bot_nick="files_bot")


@pytest.fixture
def ctx(
    async_session: AsyncSession,
    entries: EntryStore,
    shares: ShareStore,
    users: UserDirectory,
    transport: RecordingTransport,
    config: ChatFsConfig,
) -> TurnContext:
    return TurnContext(
        db=async_session,
        entries=entries,
        shares=shares,
        users=users,
        transport=transport,
        config=config,
    )


@pytest.fixture
def dispatcher(ctx: TurnContext) -> Dispatcher:
    return Dispatcher(ctx)


@pytest.fixture
async def alice(ctx: TurnContext) -> Session:
    """Session of a freshly registered user sitting at their root."""
    await ctx.users.resolve(ctx.db, ALICE, name="Alice", lang="en")
    return await ctx.users.load_session(ctx.db, ALICE)


@pytest.fixture
async def bob(ctx: TurnContext) -> Session:
    """Session of a second registered user, at their own root."""
    await ctx.users.resolve(ctx.db, BOB, name="Bob", lang="en")
    return await ctx.users.load_session(ctx.db, BOB)


@pytest.fixture
async def root(ctx: TurnContext, alice: Session) -> EntryBase:
    return await ctx.entries.require(ctx.db, alice.root_id)


async def mk(
    ctx: TurnContext,
    parent: EntryBase,
    name: str,
    entry_type: EntryType = EntryType.DIR,
) -> EntryBase:
    """Create an entry of *entry_type* called *name* under *parent*."""
    return await ctx.entries.create(
        ctx.db,
        Entry(name=name, owner_id=parent.owner_id, type=entry_type, content_ref=f"ref-{name}"),
        parent=parent,
    )
