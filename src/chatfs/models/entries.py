"""Entry model — directories, files and labels in a per-user tree.

Provides ``EntryBase`` (non-table) and ``Entry`` (concrete table).
Subclass ``EntryBase`` with ``table=True`` and a custom ``__tablename__``
to use a different table name per backend.
"""

from __future__ import annotations

import posixpath
import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class EntryType(str, Enum):
    """Kind of node stored in the entry tree."""

    DIR = "dir"
    FILE = "file"
    LABEL = "label"


class EntryBase(SQLModel):
    """Base fields for a tree entry. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    parent_id: str | None = Field(default=None, index=True)
    owner_id: int = Field(index=True)
    name: str = Field(default="")
    path: str = Field(default="/", index=True)
    type: EntryType = Field(default=EntryType.DIR)
    shared: bool = Field(default=False)
    content_ref: str | None = Field(default=None)
    mime_type: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )

    @property
    def is_dir(self) -> bool:
        return self.type == EntryType.DIR

    @property
    def is_file(self) -> bool:
        return self.type == EntryType.FILE

    @property
    def is_label(self) -> bool:
        return self.type == EntryType.LABEL

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def rename(self, name: str, parent_path: str) -> None:
        """Set a new name and re-derive ``path`` under *parent_path*."""
        self.name = name
        self.path = posixpath.join(parent_path or "/", name)
        self.updated_at = datetime.now(UTC)


class Entry(EntryBase, table=True):
    """Default entry table — ``chatfs_entries``."""

    __tablename__ = "chatfs_entries"


def sort_key(entry: EntryBase) -> tuple[bool, str]:
    """Directories first, then name ascending."""
    return (not entry.is_dir, entry.name)
