"""Markdown escaping and the localized string seam."""

from __future__ import annotations

import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)

_MD_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")


def escape_md(text: str | None) -> str:
    """Escape Telegram MarkdownV2 special characters in *text*."""
    if not text:
        return ""
    return _MD_SPECIAL.sub(r"\\\1", text)


class Text(Enum):
    """Keys of user-facing strings."""

    # Button captions, one per callback command kind
    BACK_TO_SEARCH = "backToSearch"
    CANCEL_SEARCH = "cancelSearch"
    CANCEL_SHARE = "cancelShare"
    DROP_DIR = "dropDir"
    DROP_FILE = "dropFile"
    DROP_GLOB_LINK = "dropGlobLink"
    DROP_LABEL = "dropLabel"
    DROP_SHARE = "dropShare"
    EDIT_LABEL = "editLabel"
    FORWARD = "forward"
    GEAR = "gear"
    MAKE_GLOB_LINK = "makeGlobLink"
    MK_DIR = "mkDir"
    MK_GRANT = "mkGrant"
    MK_LABEL = "mkLabel"
    OPEN_PARENT = "openParent"
    RENAME_DIR = "renameDir"
    RENAME_FILE = "renameFile"
    REWIND = "rewind"
    SHARE = "share"

    # Bodies
    GEARING = "gearing"
    SEARCHED = "searched"
    NO_RESULTS = "noResults"
    RESULTS_FOUND = "resultsFound"
    NO_CONTENT = "noContent"
    DIR_ACCESS = "dirAccess"
    FILE_ACCESS = "fileAccess"
    NO_GLOBAL_LINK = "noGlobalLink"
    NO_PERSONAL_GRANTS = "noPersonalGrants"
    SHARE_RW = "shareRw"
    SHARE_RO = "shareRo"

    # Prompts
    TYPE_FOLDER = "typeFolder"
    TYPE_LABEL = "typeLabel"
    TYPE_RENAME = "typeRename"
    SEND_CONTACT_DIR = "sendContactDir"
    SEND_CONTACT_FILE = "sendContactFile"

    # Help
    SEARCHED_HELP = "searchedHelp"
    SHARE_DIR_HELP = "shareDirHelp"
    SHARE_FILE_HELP = "shareFileHelp"
    GEAR_HELP = "gearHelp"
    LABEL_HELP = "labelHelp"
    FILE_HELP = "fileHelp"
    ROOT_HELP = "rootHelp"
    LS_HELP = "lsHelp"


DEFAULT_LANG = "en"

_EN: dict[Text, str] = {
    Text.BACK_TO_SEARCH: "← Results",
    Text.CANCEL_SEARCH: "✕ Close search",
    Text.CANCEL_SHARE: "✕ Done",
    Text.DROP_DIR: "♲ Delete folder",
    Text.DROP_FILE: "♲ Delete file",
    Text.DROP_GLOB_LINK: "⛓ Remove link",
    Text.DROP_LABEL: "♲ Delete note",
    Text.DROP_SHARE: "✕",
    Text.EDIT_LABEL: "✎ Edit",
    Text.FORWARD: "»",
    Text.GEAR: "⚙",
    Text.MAKE_GLOB_LINK: "\U0001f517 Make link",
    Text.MK_DIR: "\U0001f4c1+",
    Text.MK_GRANT: "\U0001f464+",
    Text.MK_LABEL: "\U0001f4dd+",
    Text.OPEN_PARENT: "↑",
    Text.RENAME_DIR: "✎ Rename",
    Text.RENAME_FILE: "✎ Rename",
    Text.REWIND: "«",
    Text.SHARE: "\U0001f465 Share",
    Text.GEARING: "Settings for {0}",
    Text.SEARCHED: "Search for “{0}” in {1}",
    Text.NO_RESULTS: "nothing found",
    Text.RESULTS_FOUND: "found: {0}",
    Text.NO_CONTENT: "empty",
    Text.DIR_ACCESS: "Access to folder {0}",
    Text.FILE_ACCESS: "Access to file {0}",
    Text.NO_GLOBAL_LINK: "no link",
    Text.NO_PERSONAL_GRANTS: "nobody",
    Text.SHARE_RW: "✎ {0}",
    Text.SHARE_RO: "\U0001f441 {0}",
    Text.TYPE_FOLDER: "Type a name for the new folder",
    Text.TYPE_LABEL: "Type the note text",
    Text.TYPE_RENAME: "Type a new name for {0}",
    Text.SEND_CONTACT_DIR: "Send a contact to share folder {0} with",
    Text.SEND_CONTACT_FILE: "Send a contact to share file {0} with",
    Text.SEARCHED_HELP: "Pick a result to open it, or close the search.",
    Text.SHARE_DIR_HELP: "Create a link or send a contact to share this folder.",
    Text.SHARE_FILE_HELP: "Create a link or send a contact to share this file.",
    Text.GEAR_HELP: "Rename, share or delete this folder; pick a note to edit it.",
    Text.LABEL_HELP: "Notes are short texts kept in a folder.",
    Text.FILE_HELP: "Share, rename or delete this file.",
    Text.ROOT_HELP: "Send any file to store it. Type text to search.",
    Text.LS_HELP: "Send a file to store it here. Type text to search from here.",
}


class Strings:
    """Per-language string tables with English fallback.

    Tables beyond English are supplied by the caller; missing keys fall
    back to English, then to the key name.
    """

    def __init__(self, tables: dict[str, dict[Text, str]] | None = None) -> None:
        self._tables: dict[str, dict[Text, str]] = {DEFAULT_LANG: dict(_EN)}
        for lang, table in (tables or {}).items():
            self._tables.setdefault(lang, {}).update(table)

    def v(self, key: Text, lang: str | None, *args: object) -> str:
        """Look up *key* for *lang* and format it with positional *args*."""
        template = self._tables.get(lang or DEFAULT_LANG, {}).get(key)
        if template is None:
            template = self._tables[DEFAULT_LANG].get(key)
        if template is None:
            logger.warning("Missing string %s", key.value)
            return key.value
        return template.format(*args) if args else template
