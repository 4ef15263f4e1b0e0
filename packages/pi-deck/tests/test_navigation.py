"""Tests for pi.deck.navigation."""

from __future__ import annotations

from pi.deck import navigation as nav
from pi.deck.navigation import BACK_PAGE, QUIT_PAGE, Transition


class TestNavigationState:
    def test_make_has_no_pending(self) -> None:
        ps = nav.make({"count": 1})
        assert ps.inner == {"count": 1}
        assert nav.pending(ps) is None

    def test_goto_sets_target(self) -> None:
        ps = nav.goto("settings", nav.make(0))
        assert nav.pending(ps) == Transition("goto", "settings")
        assert nav.pending(ps).page_name == "settings"

    def test_back_and_quit_page_names(self) -> None:
        assert nav.pending(nav.back(nav.make(0))).page_name == BACK_PAGE
        assert nav.pending(nav.quit(nav.make(0))).page_name == QUIT_PAGE

    def test_later_request_wins(self) -> None:
        ps = nav.quit(nav.goto("a", nav.make(0)))
        assert nav.pending(ps).kind == "quit"

    def test_update_preserves_pending(self) -> None:
        ps = nav.update(lambda n: n + 1, nav.goto("next", nav.make(41)))
        assert ps.inner == 42
        assert nav.pending(ps).target == "next"

    def test_update_without_pending(self) -> None:
        ps = nav.update(str, nav.make(7))
        assert ps.inner == "7"
        assert ps.pending is None

    def test_clear(self) -> None:
        ps = nav.goto("x", nav.make(0))
        cleared = nav.clear(ps)
        assert cleared.pending is None
        assert cleared.inner == 0
        # Original value is untouched.
        assert ps.pending is not None

    def test_clear_is_identity_without_pending(self) -> None:
        ps = nav.make(0)
        assert nav.clear(ps) is ps

    def test_is_back(self) -> None:
        assert nav.is_back("__BACK__")
        assert not nav.is_back("main")
