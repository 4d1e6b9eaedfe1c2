"""Tests for ScopeResolver — per-mode addressable lists."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from chatfs.exceptions import StaleSelectionError
from chatfs.models.entries import EntryType
from chatfs.models.shares import GLOBAL
from chatfs.scope import ScopeResolver
from chatfs.session import Mode, Session

from conftest import ALICE, BOB, CAROL, mk

if TYPE_CHECKING:
    from chatfs.context import TurnContext
    from chatfs.models.entries import EntryBase


@pytest.fixture
def resolver(ctx: TurnContext) -> ScopeResolver:
    return ScopeResolver(ctx)


@pytest.fixture
async def docs(ctx: TurnContext, root: EntryBase) -> EntryBase:
    docs = await mk(ctx, root, "Docs")
    await mk(ctx, docs, "b.txt", EntryType.FILE)
    await mk(ctx, docs, "A")
    return docs


class TestBrowsing:
    async def test_directories_first(self, resolver: ScopeResolver, docs: EntryBase, alice: Session):
        scope = await resolver.scope(docs, alice)
        assert [e.name for e in scope] == ["A", "b.txt"]

    async def test_labels_sorted_with_files(
        self, ctx: TurnContext, resolver: ScopeResolver, docs: EntryBase, alice: Session
    ):
        await mk(ctx, docs, "a-note", EntryType.LABEL)
        await mk(ctx, docs, "Zed")
        scope = await resolver.scope(docs, alice)
        assert [e.name for e in scope] == ["A", "Zed", "a-note", "b.txt"]

    async def test_deterministic(self, resolver: ScopeResolver, docs: EntryBase, alice: Session):
        first = await resolver.scope(docs, alice)
        second = await resolver.scope(docs, alice)
        assert [e.id for e in first] == [e.id for e in second]

    async def test_by_index(self, resolver: ScopeResolver, docs: EntryBase, alice: Session):
        assert (await resolver.by_index(1, docs, alice)).name == "b.txt"

    @pytest.mark.parametrize("idx", [None, -1, 2, 99])
    async def test_by_index_out_of_range(
        self, resolver: ScopeResolver, docs: EntryBase, alice: Session, idx: int | None
    ):
        with pytest.raises(StaleSelectionError):
            await resolver.by_index(idx, docs, alice)


class TestOtherModes:
    async def test_gearing_lists_labels_only(
        self, ctx: TurnContext, resolver: ScopeResolver, docs: EntryBase, alice: Session
    ):
        await mk(ctx, docs, "second", EntryType.LABEL)
        await mk(ctx, docs, "first", EntryType.LABEL)
        alice.set_gearing()
        scope = await resolver.scope(docs, alice)
        assert [e.name for e in scope] == ["first", "second"]

    async def test_searching_uses_search_root(
        self, ctx: TurnContext, resolver: ScopeResolver, docs: EntryBase, root: EntryBase, alice: Session
    ):
        await mk(ctx, root, "b-top.txt", EntryType.FILE)
        await mk(ctx, docs, "B-dir")
        alice.set_searching("b", root.id)
        scope = await resolver.scope(docs, alice)
        assert [e.name for e in scope] == ["B-dir", "b-top.txt", "b.txt"]

    async def test_searching_without_root(self, resolver: ScopeResolver, docs: EntryBase, alice: Session):
        alice.mode = Mode.SEARCHING
        alice.search_dir_id = None
        assert await resolver.scope(docs, alice) == []

    async def test_sharing_lists_shares_by_name(
        self, ctx: TurnContext, resolver: ScopeResolver, docs: EntryBase, alice: Session
    ):
        await ctx.shares.create(ctx.db, ALICE, docs.id, CAROL, name="carol")
        await ctx.shares.create(ctx.db, ALICE, docs.id, GLOBAL, name="Docs")
        await ctx.shares.create(ctx.db, ALICE, docs.id, BOB, name="bob")
        alice.set_sharing()
        scope = await resolver.scope(docs, alice)
        assert [s.name for s in scope] == ["Docs", "bob", "carol"]
