"""Share model — global links and personal grants on entries.

Provides ``ShareBase`` (non-table) and ``Share`` (concrete table).
``shared_to == 0`` marks the global link of an entry; any other value is
the id of the grantee.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

GLOBAL: int = 0
"""``shared_to`` value of a global (token-based) link."""


class ShareBase(SQLModel):
    """Base fields for a share record. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    entry_id: str = Field(index=True)
    owner_id: int = Field(index=True)
    shared_to: int = Field(default=GLOBAL, index=True)
    name: str = Field(default="")
    from_name: str = Field(default="")
    read_write: bool = Field(default=False)
    lang: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    expires_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )

    @property
    def is_global(self) -> bool:
        return self.shared_to == GLOBAL

    def is_active(self, now: datetime | None = None) -> bool:
        """False once ``expires_at`` has passed (naive datetimes are UTC)."""
        if self.expires_at is None:
            return True
        exp = self.expires_at
        if exp.tzinfo is None:
            exp = exp.replace(tzinfo=UTC)
        return exp > (now or datetime.now(UTC))


class Share(ShareBase, table=True):
    """Default share table — ``chatfs_shares``."""

    __tablename__ = "chatfs_shares"
