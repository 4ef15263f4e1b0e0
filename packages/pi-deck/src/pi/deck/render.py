"""Frame composition and differential screen output.

Composition turns a page body, its key bindings and the modal stack into
one block of text sized for the terminal.  ``Renderer`` then diffs that
text against the previous frame line by line and writes only the rows
that changed.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

from pi.deck.keys import Key
from pi.deck.modal import ModalUI, ModalView, modal_geometry
from pi.deck.size import NARROW_COLS, Size
from pi.deck.utils import (
    BOLD,
    ELLIPSIS,
    RESET,
    REVERSE,
    dim,
    fit_to_width,
    hr,
    overlay_line,
    truncate_to_width,
    visible_width,
    wrap_words,
)

logger = logging.getLogger(__name__)

FOOTER_MAX_LINES = 3
FOOTER_SEPARATOR = "    "
FOOTER_MORE = f"{ELLIPSIS} more ({Key.help} for all)"

CLEAR_SCREEN = "\x1b[2J\x1b[H"
CLEAR_TO_EOL = "\x1b[K"
_MOVE_TO_ROW = "\x1b[{};1H"


class Output(Protocol):
    def write(self, data: str) -> None: ...


# ---------------------------------------------------------------------------
# Borders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BorderGlyphs:
    tl: str
    tr: str
    bl: str
    br: str
    h: str
    v: str


UNICODE_BORDERS = BorderGlyphs("┌", "┐", "└", "┘", "─", "│")
ASCII_BORDERS = BorderGlyphs("+", "+", "+", "+", "-", "|")


def border_glyphs(ascii_only: bool) -> BorderGlyphs:
    return ASCII_BORDERS if ascii_only else UNICODE_BORDERS


# ---------------------------------------------------------------------------
# Chrome
# ---------------------------------------------------------------------------


def narrow_banner(cols: int) -> str:
    return f"Narrow terminal: {cols} cols (< {NARROW_COLS}). Some UI may be truncated."


def footer_lines(
    bindings: Sequence[tuple[str, str]],
    cols: int,
    max_lines: int = FOOTER_MAX_LINES,
) -> list[str]:
    """Pack ``key: help`` segments into at most *max_lines* lines.

    When segments are left over, the last kept line is replaced by a
    pointer to the help modal.
    """
    if max_lines <= 0 or not bindings:
        return []

    lines: list[str] = []
    current = ""
    overflow = False
    for key, help_text in bindings:
        segment = f"{key}: {help_text}"
        if not current:
            current = segment
            continue
        candidate = current + FOOTER_SEPARATOR + segment
        if visible_width(candidate) <= cols:
            current = candidate
            continue
        lines.append(current)
        current = segment
        if len(lines) >= max_lines:
            overflow = True
            break
    if not overflow and current:
        lines.append(current)

    if overflow:
        lines = lines[: max_lines - 1] + [FOOTER_MORE]
    return lines


def render_chrome(
    title: str,
    body: str,
    bindings: Sequence[tuple[str, str]],
    size: Size,
    *,
    header: Sequence[str] = (),
    ascii_only: bool = False,
) -> str:
    """Title line, separator, header and body, then the footer.

    Every body and footer line is padded or cut to exactly ``size.cols``.
    """
    cols = size.cols
    title_line = fit_to_width(f" {BOLD}{title}{RESET}", cols)
    separator = hr(cols, "-" if ascii_only else "─")
    body_lines = [*header, *body.split("\n")]
    out = [title_line, separator]
    out.extend(fit_to_width(line, cols) for line in body_lines)
    out.extend(fit_to_width(line, cols) for line in footer_lines(bindings, cols))
    return "\n".join(out)


def trim_to_rows(text: str, rows: int) -> str:
    """Keep the first ``rows - 1`` lines plus the last one when *text* overflows."""
    lines = text.split("\n")
    if rows <= 0 or len(lines) <= rows:
        return text
    if rows == 1:
        return lines[-1]
    return "\n".join(lines[: rows - 1] + [lines[-1]])


# ---------------------------------------------------------------------------
# Modal compositing
# ---------------------------------------------------------------------------


def _fit_content(raw: str, width: int) -> list[str]:
    lines: list[str] = []
    for line in raw.split("\n"):
        if visible_width(line) <= width:
            lines.append(line)
        else:
            lines.extend(wrap_words(line, width))
    return lines


def modal_box(title: str, content: list[str], width: int, glyphs: BorderGlyphs) -> list[str]:
    """Draw *content* inside a border *width* cells wide, title centred on top."""
    inner = max(0, width - 2)
    label = f" {title} " if title else ""
    label = truncate_to_width(label, inner)
    left_run = max(0, (inner - visible_width(label)) // 2)
    right_run = max(0, inner - visible_width(label) - left_run)
    top = glyphs.tl + glyphs.h * left_run + label + glyphs.h * right_run + glyphs.tr
    box = [top]
    for line in content:
        box.append(glyphs.v + fit_to_width(line, inner) + glyphs.v)
    box.append(glyphs.bl + glyphs.h * inner + glyphs.br)
    return box


def composite_modals(
    base: str,
    views: Sequence[ModalView],
    size: Size,
    *,
    ascii_only: bool = False,
) -> str:
    """Draw each modal frame over *base*, bottom of the stack first."""
    if not views:
        return base
    glyphs = border_glyphs(ascii_only)
    lines = base.split("\n")
    while len(lines) < size.rows:
        lines.append("")

    for view in views:
        geom = modal_geometry(size, ModalUI(view.title, view.left, view.width, view.dim))
        content = _fit_content(view.view(Size(geom.max_content_h, geom.content_width)), geom.content_width)
        content = content[: geom.max_content_h]
        title_w = visible_width(view.title) + 2 if view.title else 0
        inner_w = max([title_w, *(visible_width(c) for c in content)], default=0)
        box_w = min(size.cols, min(geom.content_width, inner_w) + 2)
        box = modal_box(view.title, content, box_w, glyphs)

        if view.dim:
            lines = [dim(line) if line else line for line in lines]

        if view.left is not None:
            left = max(0, min(view.left, size.cols - box_w))
        else:
            left = max(0, (size.cols - box_w) // 2)
        top = max(0, (size.rows - len(box)) // 2)
        for i, box_line in enumerate(box):
            row = top + i
            if row >= len(lines):
                break
            lines[row] = overlay_line(lines[row], box_line, left, box_w)
    return "\n".join(lines)


class PageSnapshotCache:
    """Remember the rendered page text while a modal covers it.

    Keyed on the identity of the page state and the size, so any key that
    reaches the page (and so produces a new state) invalidates it.
    """

    def __init__(self) -> None:
        self._state: Any = None
        self._size: Size | None = None
        self._text: str | None = None
        self.hits = 0

    def get(self, state: Any, size: Size, compute: Callable[[], str]) -> str:
        if self._text is not None and self._state is state and self._size == size:
            self.hits += 1
            return self._text
        self._state = state
        self._size = size
        self._text = compute()
        return self._text

    def clear(self) -> None:
        self._state = None
        self._size = None
        self._text = None


# ---------------------------------------------------------------------------
# FPS overlay
# ---------------------------------------------------------------------------


class FpsCounter:
    def __init__(self, window: float = 1.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._window = window
        self._clock = clock
        self._stamps: deque[float] = deque()

    def tick(self) -> None:
        now = self._clock()
        self._stamps.append(now)
        while self._stamps and now - self._stamps[0] > self._window:
            self._stamps.popleft()

    @property
    def fps(self) -> int:
        return len(self._stamps)


def overlay_fps(text: str, cols: int, fps: int) -> str:
    """Stamp an ``NN fps`` label over the top-right corner of *text*."""
    label = f"{REVERSE} {fps:>3d} fps {RESET}"
    width = visible_width(label)
    if cols < width:
        return text
    lines = text.split("\n")
    lines[0] = overlay_line(lines[0], label, cols - width, width)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Differential renderer
# ---------------------------------------------------------------------------


class Renderer:
    """Write frames to *output*, touching only the rows that changed."""

    def __init__(self, output: Output) -> None:
        self.output = output
        self._previous_text: str | None = None
        self._previous_lines: list[str] = []
        self._previous_size: Size | None = None
        self._full_redraw_count = 0
        self._write_count = 0

    @property
    def full_redraws(self) -> int:
        return self._full_redraw_count

    @property
    def writes(self) -> int:
        return self._write_count

    def invalidate(self) -> None:
        """Force a full clear and redraw on the next frame."""
        self._previous_text = None
        self._previous_size = None
        self._previous_lines = []

    def render(self, text: str, size: Size) -> bool:
        """Output *text* for *size*; return ``True`` if anything was written."""
        # -- 1. Nothing changed: skip the write entirely --------------------
        if text == self._previous_text and size == self._previous_size:
            return False

        lines = text.split("\n")
        full = size != self._previous_size

        # -- 2. Build the update ---------------------------------------------
        out: list[str] = []
        if full:
            self._full_redraw_count += 1
            out.append(CLEAR_SCREEN)
            old: list[str] = []
        else:
            old = self._previous_lines

        for i, line in enumerate(lines):
            if full or i >= len(old) or line != old[i]:
                out.append(_MOVE_TO_ROW.format(i + 1))
                out.append(line)
                out.append(CLEAR_TO_EOL)
        # Rows the previous frame used that this one leaves empty.
        for i in range(len(lines), len(old)):
            out.append(_MOVE_TO_ROW.format(i + 1))
            out.append(CLEAR_TO_EOL)

        # -- 3. Bookkeeping and flush -----------------------------------------
        self._previous_text = text
        self._previous_lines = lines
        self._previous_size = size

        if not out:
            return False
        self.output.write("".join(out))
        self._write_count += 1
        return True
