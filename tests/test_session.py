"""Tests for Session mode, navigation and offset handling."""

from __future__ import annotations

import pytest

from chatfs.session import InputWait, Mode, Session


@pytest.fixture
def session() -> Session:
    return Session(id=1, root_id="root", subject_id="root")


class TestModes:
    def test_starts_browsing(self, session: Session):
        assert session.browsing
        assert session.on_top

    def test_modes_are_exclusive(self, session: Session):
        session.set_sharing()
        session.set_gearing()
        assert session.gearing
        assert not session.sharing
        assert not session.browsing

    def test_reset_state_is_idempotent(self, session: Session):
        session.set_gearing()
        session.move_to("dir")
        session.reset_state()
        once = session.copy()
        session.reset_state()
        assert session == once
        assert session.mode is Mode.BROWSING
        assert session.subject_id == "dir"

    def test_reset_state_keeps_input_wait(self, session: Session):
        session.expect(InputWait.WAIT_DIR)
        session.set_sharing()
        session.reset_state()
        assert session.input_wait is InputWait.WAIT_DIR
        session.reset_input_wait()
        assert session.input_wait is InputWait.NONE

    def test_set_searching(self, session: Session):
        session.view_offset = 30
        session.set_searching("cat", "dir")
        assert session.searching
        assert session.view_offset == 0
        assert session.search_dir_id == "dir"
        assert session.query == "cat"


class TestNavigation:
    def test_move_to_resets_offset(self, session: Session):
        session.view_offset = 20
        session.move_to("dir")
        assert session.view_offset == 0
        assert not session.on_top

    def test_move_to_keeps_offset(self, session: Session):
        session.view_offset = 20
        session.move_to("dir", keep_offset=True)
        assert session.view_offset == 20

    @pytest.mark.parametrize(
        ("start", "delta", "upper", "expected"),
        [
            (0, -10, None, 0),
            (5, -10, None, 0),
            (10, -10, None, 0),
            (0, 10, None, 10),
            (0, 10, 0, 0),
            (10, 10, 10, 10),
            (20, -10, 10, 10),
        ],
    )
    def test_shift_offset(self, session, start, delta, upper, expected):
        session.view_offset = start
        session.shift_offset(delta, upper)
        assert session.view_offset == expected
        assert session.view_offset >= 0

    def test_copy_is_independent(self, session: Session):
        copy = session.copy()
        copy.move_to("elsewhere")
        copy.set_sharing()
        assert session.subject_id == "root"
        assert session.browsing
