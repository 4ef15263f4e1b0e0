"""Tests for pi.deck.render."""

from __future__ import annotations

from pi.deck.modal import ModalView
from pi.deck.render import (
    CLEAR_SCREEN,
    CLEAR_TO_EOL,
    FOOTER_MORE,
    FpsCounter,
    PageSnapshotCache,
    Renderer,
    composite_modals,
    footer_lines,
    narrow_banner,
    overlay_fps,
    render_chrome,
    trim_to_rows,
)
from pi.deck.size import Size
from pi.deck.utils import DIM, strip_ansi, visible_width


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class ListOutput:
    def __init__(self) -> None:
        self.writes: list[str] = []

    def write(self, data: str) -> None:
        self.writes.append(data)


def message_view(text: str, title: str = "Hi", left=None, dim: bool = False) -> ModalView:
    return ModalView(title, left, None, dim, lambda size: text)


# ---------------------------------------------------------------------------
# Chrome
# ---------------------------------------------------------------------------


class TestFooter:
    def test_single_line(self) -> None:
        assert footer_lines([("a", "alpha"), ("b", "beta")], 80) == ["a: alpha    b: beta"]

    def test_empty(self) -> None:
        assert footer_lines([], 80) == []

    def test_wraps_up_to_limit(self) -> None:
        bindings = [(f"k{i}", f"help{i}") for i in range(3)]
        assert footer_lines(bindings, 20) == ["k0: help0", "k1: help1", "k2: help2"]

    def test_overflow_points_to_help(self) -> None:
        bindings = [(f"k{i}", f"help{i}") for i in range(6)]
        lines = footer_lines(bindings, 20)
        assert len(lines) == 3
        assert lines[-1] == FOOTER_MORE
        assert lines[:2] == ["k0: help0", "k1: help1"]


class TestChrome:
    def test_layout(self) -> None:
        out = render_chrome("Main", "body", [("q", "quit")], Size(10, 20)).split("\n")
        assert len(out) == 4
        assert strip_ansi(out[0]).strip() == "Main"
        assert out[1] == "─" * 20
        assert out[2] == "body" + " " * 16
        assert out[3].startswith("q: quit")
        assert all(visible_width(line) == 20 for line in out)

    def test_ascii_separator_and_header(self) -> None:
        out = render_chrome("T", "b", [], Size(10, 10), header=["warn"], ascii_only=True).split("\n")
        assert out[1] == "-" * 10
        assert out[2].startswith("warn")
        assert out[3].startswith("b")

    def test_long_body_line_is_cut(self) -> None:
        out = render_chrome("T", "x" * 50, [], Size(10, 10)).split("\n")
        assert visible_width(out[2]) == 10
        assert out[2].endswith("…")

    def test_narrow_banner(self) -> None:
        assert narrow_banner(60) == "Narrow terminal: 60 cols (< 80). Some UI may be truncated."


class TestTrim:
    def test_keeps_last_line(self) -> None:
        assert trim_to_rows("1\n2\n3\n4\n5", 3) == "1\n2\n5"

    def test_short_text_untouched(self) -> None:
        assert trim_to_rows("1\n2", 3) == "1\n2"

    def test_single_row(self) -> None:
        assert trim_to_rows("1\n2\n3", 1) == "3"


# ---------------------------------------------------------------------------
# Modal compositing
# ---------------------------------------------------------------------------


class TestComposite:
    def base(self, size: Size) -> str:
        return "\n".join("." * size.cols for _ in range(size.rows))

    def test_no_modals_returns_base(self) -> None:
        assert composite_modals("abc", [], Size(5, 10)) == "abc"

    def test_box_is_centred_and_shrinks_to_content(self) -> None:
        size = Size(10, 40)
        lines = composite_modals(self.base(size), [message_view("hello")], size).split("\n")
        assert len(lines) == 10
        assert lines[3] == "." * 16 + "┌ Hi ─┐" + "." * 17
        assert lines[4] == "." * 16 + "│hello│" + "." * 17
        assert lines[5] == "." * 16 + "└─────┘" + "." * 17
        assert lines[2] == "." * 40

    def test_explicit_left(self) -> None:
        size = Size(10, 40)
        lines = composite_modals(self.base(size), [message_view("hello", left=2)], size).split("\n")
        assert lines[4].startswith("..│hello│")

    def test_ascii_borders(self) -> None:
        size = Size(10, 40)
        out = composite_modals(self.base(size), [message_view("x")], size, ascii_only=True)
        assert "+ Hi +" in out
        assert "|x   |" in out

    def test_dim_background(self) -> None:
        size = Size(10, 40)
        lines = composite_modals(self.base(size), [message_view("x", dim=True)], size).split("\n")
        assert lines[0].startswith(DIM)

    def test_stacked_modals_topmost_drawn_last(self) -> None:
        size = Size(10, 40)
        views = [message_view("lower", title="A"), message_view("upper", title="B")]
        out = composite_modals(self.base(size), views, size)
        assert "upper" in out
        assert "lower" not in out

    def test_content_limited_to_rows(self) -> None:
        size = Size(8, 40)
        text = "\n".join(f"line{i}" for i in range(20))
        lines = composite_modals(self.base(size), [message_view(text)], size).split("\n")
        assert len(lines) == 8
        assert "line3" in "\n".join(lines)
        assert "line4" not in "\n".join(lines)

    def test_short_base_is_extended(self) -> None:
        size = Size(6, 20)
        lines = composite_modals("top", [message_view("m")], size).split("\n")
        assert len(lines) == 6


class TestSnapshotCache:
    def test_reuses_while_state_unchanged(self) -> None:
        cache = PageSnapshotCache()
        calls: list[int] = []
        state = object()

        def compute() -> str:
            calls.append(1)
            return "page"

        assert cache.get(state, Size(5, 5), compute) == "page"
        assert cache.get(state, Size(5, 5), compute) == "page"
        assert len(calls) == 1
        assert cache.hits == 1

    def test_new_state_or_size_recomputes(self) -> None:
        cache = PageSnapshotCache()
        state = object()
        cache.get(state, Size(5, 5), lambda: "a")
        assert cache.get(object(), Size(5, 5), lambda: "b") == "b"
        assert cache.get(object(), Size(6, 5), lambda: "c") == "c"
        cache.clear()
        assert cache.hits == 0


# ---------------------------------------------------------------------------
# FPS
# ---------------------------------------------------------------------------


class TestFps:
    def test_window(self) -> None:
        now = [0.0]
        counter = FpsCounter(1.0, clock=lambda: now[0])
        for t in (0.0, 0.5, 1.2):
            now[0] = t
            counter.tick()
        assert counter.fps == 2

    def test_overlay_in_corner(self) -> None:
        text = "x" * 40 + "\nsecond"
        out = overlay_fps(text, 40, 7).split("\n")
        assert strip_ansi(out[0]).endswith("  7 fps ")
        assert visible_width(out[0]) == 40
        assert out[1] == "second"

    def test_too_narrow_is_untouched(self) -> None:
        assert overlay_fps("abc", 4, 30) == "abc"


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class TestRenderer:
    def test_first_frame_clears_screen(self) -> None:
        out = ListOutput()
        renderer = Renderer(out)
        assert renderer.render("a\nb", Size(5, 10))
        assert out.writes[0].startswith(CLEAR_SCREEN)
        assert renderer.full_redraws == 1

    def test_unchanged_frame_is_skipped(self) -> None:
        out = ListOutput()
        renderer = Renderer(out)
        renderer.render("a\nb", Size(5, 10))
        assert not renderer.render("a\nb", Size(5, 10))
        assert len(out.writes) == 1
        assert renderer.writes == 1

    def test_only_changed_rows_written(self) -> None:
        out = ListOutput()
        renderer = Renderer(out)
        renderer.render("a\nb\nc", Size(5, 10))
        assert renderer.render("a\nB\nc", Size(5, 10))
        update = out.writes[-1]
        assert update == "\x1b[2;1HB" + CLEAR_TO_EOL
        assert renderer.full_redraws == 1

    def test_size_change_forces_full_redraw(self) -> None:
        out = ListOutput()
        renderer = Renderer(out)
        renderer.render("a", Size(5, 10))
        renderer.render("a", Size(6, 10))
        assert out.writes[-1].startswith(CLEAR_SCREEN)
        assert renderer.full_redraws == 2

    def test_shrinking_clears_stale_rows(self) -> None:
        out = ListOutput()
        renderer = Renderer(out)
        renderer.render("a\nb\nc", Size(5, 10))
        renderer.render("a", Size(5, 10))
        assert out.writes[-1] == "\x1b[2;1H" + CLEAR_TO_EOL + "\x1b[3;1H" + CLEAR_TO_EOL

    def test_invalidate(self) -> None:
        out = ListOutput()
        renderer = Renderer(out)
        renderer.render("a", Size(5, 10))
        renderer.invalidate()
        assert renderer.render("a", Size(5, 10))
        assert renderer.full_redraws == 2
