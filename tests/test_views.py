"""Tests for the paging helper, markdown escaping, strings and layouts."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from chatfs.models.entries import Entry, EntryType, sort_key
from chatfs.text import Strings, Text, escape_md
from chatfs.transport import ActionLayout, Button
from chatfs.views import last_page_start, not_label, page_window


@dataclass
class Item:
    name: str


def _entry(name: str, entry_type: EntryType) -> Entry:
    return Entry(name=name, owner_id=1, type=entry_type, path=f"/{name}")


def _mixed(n: int) -> list[Entry]:
    """*n* entries cycling through label, file and dir, in reverse name order."""
    kinds = [EntryType.LABEL, EntryType.FILE, EntryType.DIR]
    return [_entry(f"e{i:03d}", kinds[i % 3]) for i in reversed(range(n))]


# ---------------------------------------------------------------------------
# page_window
# ---------------------------------------------------------------------------


class TestPageWindow:
    def test_addresses_follow_unsorted_scope(self):
        scope = [Item("c"), Item("a"), Item("b")]
        window = page_window(scope, 0, 10, key=lambda i: i.name)
        assert [(i, item.name) for i, item in window] == [(1, "a"), (2, "b"), (0, "c")]

    def test_offset_and_size(self):
        scope = [Item(f"{i:02d}") for i in range(25)]
        window = page_window(scope, 20, 10, key=lambda i: i.name)
        assert [i for i, _ in window] == [20, 21, 22, 23, 24]

    def test_offset_past_end(self):
        scope = [Item("a")]
        assert page_window(scope, 10, 10, key=lambda i: i.name) == []

    def test_include_filter_keeps_addresses(self):
        scope = [_entry("b", EntryType.LABEL), _entry("a", EntryType.FILE), _entry("c", EntryType.DIR)]
        window = page_window(scope, 0, 10, include=not_label)
        assert [(i, e.name) for i, e in window] == [(2, "c"), (1, "a")]

    def test_equal_items_keep_distinct_addresses(self):
        scope = [Item("x"), Item("x"), Item("x")]
        window = page_window(scope, 0, 10, key=lambda i: i.name)
        assert sorted(i for i, _ in window) == [0, 1, 2]

    @pytest.mark.parametrize("n", [0, 1, 9, 10, 11, 15, 31])
    @pytest.mark.parametrize("offset", [0, 10, 20, 30])
    def test_every_address_resolves_to_its_item(self, n: int, offset: int):
        scope = _mixed(n)
        window = page_window(scope, offset, 10, include=not_label)
        shown = sorted((e for e in scope if not e.is_label), key=sort_key)
        assert [e for _, e in window] == shown[offset:offset + 10]
        for idx, entry in window:
            assert scope[idx] is entry

    @pytest.mark.parametrize("n", [1, 12, 30])
    def test_pages_cover_scope_once(self, n: int):
        scope = _mixed(n)
        seen: list[int] = []
        for offset in range(0, n + 10, 10):
            seen.extend(i for i, _ in page_window(scope, offset, 10))
        assert sorted(seen) == list(range(n))


class TestLastPageStart:
    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, 0), (1, 0), (10, 0), (11, 10), (15, 10), (20, 10), (21, 20)],
    )
    def test_last_page_start(self, count: int, expected: int):
        assert last_page_start(count, 10) == expected


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


class TestEscapeMd:
    def test_escapes_specials(self):
        assert escape_md("a_b*c.txt") == "a\\_b\\*c\\.txt"

    def test_brackets_and_dash(self):
        assert escape_md("[x]-(y)") == "\\[x\\]\\-\\(y\\)"

    def test_plain_text_untouched(self):
        assert escape_md("Docs/notes") == "Docs/notes"

    def test_none(self):
        assert escape_md(None) == ""


class TestStrings:
    def test_formats_args(self):
        assert Strings().v(Text.RESULTS_FOUND, "en", 3) == "found: 3"

    def test_falls_back_to_english(self):
        strings = Strings({"de": {Text.NO_CONTENT: "leer"}})
        assert strings.v(Text.NO_CONTENT, "de") == "leer"
        assert strings.v(Text.NO_RESULTS, "de") == "nothing found"

    def test_unknown_lang(self):
        assert Strings().v(Text.NO_CONTENT, "xx") == "empty"

    def test_every_key_has_an_english_text(self):
        strings = Strings()
        for key in Text:
            assert strings.v(key, "en") != key.value


# ---------------------------------------------------------------------------
# ActionLayout
# ---------------------------------------------------------------------------


class TestActionLayout:
    def test_rows(self):
        kbd = ActionLayout()
        kbd.button(Button("a", "a.")).button(Button("b", "b."))
        kbd.new_line().button(Button("c", "c."))
        assert [[b.data for b in row] for row in kbd.compact()] == [["a.", "b."], ["c."]]

    def test_new_line_on_empty_row_is_noop(self):
        kbd = ActionLayout()
        kbd.new_line().new_line().button(Button("a", "a."))
        assert kbd.rows == [[Button("a", "a.")]]

    def test_find_and_payloads(self):
        kbd = ActionLayout().button(Button("a", "a.1"), Button("b", "b."))
        assert kbd.payloads() == ["a.1", "b."]
        assert kbd.find("b.") == Button("b", "b.")
        assert kbd.find("z.") is None
