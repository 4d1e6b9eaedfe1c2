"""ChatFsConfig — engine-wide settings passed in at construction."""

from __future__ import annotations

from dataclasses import dataclass, field

from chatfs.commands import SHARED_LINK_PREFIX
from chatfs.text import DEFAULT_LANG, Strings


@dataclass
class ChatFsConfig:
    """Configuration shared by every turn."""

    bot_nick: str = ""
    """Bot username used to build global share links."""

    page_size: int = 10
    """Number of files and folders shown per page."""

    default_lang: str = DEFAULT_LANG
    """Language used when a user has none recorded."""

    clamp_offset: bool = True
    """Cap forward paging at the last page.  The cursor never goes below zero."""

    strings: Strings = field(default_factory=Strings)
    """Localized string tables."""

    def share_link(self, share_id: str) -> str:
        """Deep link that joins the global share *share_id*."""
        return f"https://t.me/{self.bot_nick}?start={SHARED_LINK_PREFIX}{share_id}"

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"Invalid page_size: {self.page_size!r}. Must be positive.")
