"""TurnContext — the collaborators a single turn works against."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from chatfs.config import ChatFsConfig
    from chatfs.stores.entries import EntryStore
    from chatfs.stores.shares import ShareStore
    from chatfs.stores.users import UserDirectory
    from chatfs.transport import Transport


@dataclass(frozen=True)
class TurnContext:
    """Explicit references to the stores, transport and config.

    ``db`` is the one session (and transaction) every store call of the
    turn goes through.
    """

    db: AsyncSession
    entries: EntryStore
    shares: ShareStore
    users: UserDirectory
    transport: Transport
    config: ChatFsConfig
