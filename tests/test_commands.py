"""Tests for command kinds, the wire encoding and inbound parsing."""

from __future__ import annotations

import pytest

from chatfs.commands import (
    Command,
    CommandType,
    Upload,
    contact_command,
    parse_callback,
    parse_text,
    upload_command,
)
from chatfs.models.entries import EntryType
from chatfs.session import InputWait, Session

INDICES = [None, 0, 7, 12345]


def _session(wait: InputWait = InputWait.NONE) -> Session:
    return Session(id=1, root_id="r", subject_id="r", input_wait=wait)


# ---------------------------------------------------------------------------
# mnemonic / matches
# ---------------------------------------------------------------------------


class TestMnemonic:
    def test_bare_mnemonic(self):
        assert CommandType.OPEN_DIR.mnemonic() == "openDir."

    def test_mnemonic_with_index(self):
        assert CommandType.DROP_SHARE.mnemonic(3) == "dropShare.3"

    @pytest.mark.parametrize("kind", list(CommandType))
    @pytest.mark.parametrize("param", INDICES)
    def test_round_trip_is_exclusive(self, kind: CommandType, param: int | None):
        payload = kind.mnemonic(param)
        assert kind.matches(payload)
        others = [k for k in CommandType if k is not kind and k.matches(payload)]
        assert others == []

    def test_matches_none(self):
        assert not CommandType.SHARE.matches(None)

    def test_share_does_not_match_drop_share(self):
        assert not CommandType.SHARE.matches("dropShare.1")

    def test_wire_names_are_unique(self):
        values = [k.value for k in CommandType]
        assert len(values) == len(set(values))


class TestCapabilities:
    def test_selection_ops(self):
        assert CommandType.OPEN_FILE.is_selection_op
        assert CommandType.CHANGE_RO.is_selection_op
        assert not CommandType.FORWARD.is_selection_op

    def test_callbacks(self):
        assert CommandType.GEAR.is_callback
        assert not CommandType.UPLOAD_FILE.is_callback
        assert not CommandType.DO_SEARCH.is_callback

    def test_text_input(self):
        assert CommandType.MK_DIR.takes_input
        assert not CommandType.OPEN_PARENT.takes_input


# ---------------------------------------------------------------------------
# parse_callback
# ---------------------------------------------------------------------------


class TestParseCallback:
    def test_selection(self):
        assert parse_callback("openDir.4") == Command(CommandType.OPEN_DIR, element_idx=4)

    def test_plain(self):
        assert parse_callback("forward.") == Command(CommandType.FORWARD)

    def test_plain_ignores_parameter(self):
        assert parse_callback("gear.anything") == Command(CommandType.GEAR)

    def test_malformed_index(self):
        assert parse_callback("openFile.x") is None

    def test_missing_index(self):
        assert parse_callback("openFile.") is None

    def test_unknown(self):
        assert parse_callback("launchRockets.1") is None

    def test_message_only_kind_is_not_a_callback(self):
        assert parse_callback("uploadFile.") is None


# ---------------------------------------------------------------------------
# parse_text
# ---------------------------------------------------------------------------


class TestParseText:
    def test_start_with_link(self):
        cmd = parse_text("/start shared-abc123", _session())
        assert cmd == Command(CommandType.JOIN_PUBLIC_SHARE, input="abc123")

    def test_start_plain(self):
        assert parse_text("/start", _session()).type is CommandType.RESET_TO_ROOT

    def test_reset(self):
        assert parse_text("/reset", _session()).type is CommandType.RESET_TO_ROOT

    def test_help(self):
        assert parse_text("/help", _session()).type is CommandType.CONTEXT_HELP

    def test_wait_dir(self):
        cmd = parse_text("  Photos ", _session(InputWait.WAIT_DIR))
        assert cmd == Command(CommandType.MK_DIR, input="Photos")

    def test_wait_label(self):
        cmd = parse_text("buy milk", _session(InputWait.WAIT_LABEL))
        assert cmd == Command(CommandType.MK_LABEL, input="buy milk")

    @pytest.mark.parametrize(
        ("subject_type", "expected"),
        [
            (EntryType.DIR, CommandType.RENAME_DIR),
            (EntryType.FILE, CommandType.RENAME_FILE),
            (EntryType.LABEL, CommandType.EDIT_LABEL),
            (None, CommandType.RENAME_DIR),
        ],
    )
    def test_wait_rename(self, subject_type, expected):
        cmd = parse_text("new", _session(InputWait.WAIT_RENAME), subject_type)
        assert cmd == Command(expected, input="new")

    def test_slash_command_beats_wait(self):
        assert parse_text("/help", _session(InputWait.WAIT_DIR)).type is CommandType.CONTEXT_HELP

    def test_free_text_searches(self):
        assert parse_text("report", _session()) == Command(CommandType.DO_SEARCH, input="report")


class TestUploadsAndContacts:
    def test_upload(self):
        upload = Upload(owner=1, name="a.pdf", ref="file-1")
        assert upload_command(upload) == Command(CommandType.UPLOAD_FILE, file=upload)

    def test_contact_when_awaited(self):
        contact = Upload(owner=2, name="Bob")
        cmd = contact_command(contact, _session(InputWait.WAIT_FILE_GRANT))
        assert cmd == Command(CommandType.GRANT_ACCESS, file=contact)

    def test_contact_when_not_awaited(self):
        assert contact_command(Upload(owner=2, name="Bob"), _session()) is None
