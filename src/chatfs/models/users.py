"""User model — chat identity plus the persisted navigation state.

The session columns mirror :class:`chatfs.session.Session`; the
``UserDirectory`` copies between the two at the start and end of a turn.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import BigInteger, Column, DateTime
from sqlmodel import Field, SQLModel


class UserBase(SQLModel):
    """Base fields for a user record. Subclass with ``table=True`` for a concrete table."""

    id: int = Field(sa_column=Column(BigInteger, primary_key=True, autoincrement=False))
    name: str = Field(default="")
    lang: str | None = Field(default=None)
    root_id: str | None = Field(default=None)
    subject_id: str | None = Field(default=None)
    search_dir_id: str | None = Field(default=None)
    query: str | None = Field(default=None)
    view_offset: int = Field(default=0)
    mode: str = Field(default="browsing")
    input_wait: str = Field(default="none")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class User(UserBase, table=True):
    """Default user table — ``chatfs_users``."""

    __tablename__ = "chatfs_users"
