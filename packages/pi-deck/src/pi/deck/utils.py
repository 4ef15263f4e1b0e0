"""Terminal text helpers: ANSI stripping, display width, fitting and wrapping.

Widths are measured per grapheme cluster so combining marks, CJK and emoji
line up with what the terminal actually draws.
"""

from __future__ import annotations

import re
import unicodedata

import grapheme
import wcwidth as _wcwidth

ELLIPSIS = "…"
RESET = "\x1b[0m"
DIM = "\x1b[2m"
BOLD = "\x1b[1m"
REVERSE = "\x1b[7m"

# CSI sequences (SGR, cursor, erase) and OSC 8 hyperlinks.
_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]|\x1b\]8;;[^\x07]*\x07")

# ---------------------------------------------------------------------------
# Width cache (capped at 512 entries)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _remember(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Measuring
# ---------------------------------------------------------------------------


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def grapheme_width(g: str) -> int:
    """Return the number of cells a single grapheme cluster occupies."""
    if not g:
        return 0
    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or 0x7F <= cp <= 0x9F:
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ, skin tones and regional indicators force emoji width.
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    if ord(first) >= 0x1F000 or 0x2600 <= ord(first) <= 0x27BF:
        return 2
    category = unicodedata.category(first)
    if category.startswith("M") or category == "Cf":
        return 0
    return max(_wcwidth.wcwidth(first), 0)


def visible_width(text: str) -> int:
    """Display width of *text* in cells, ignoring escape sequences."""
    if not text:
        return 0
    plain = strip_ansi(text)
    if plain.isascii() and plain.isprintable():
        return len(plain)
    cached = _width_cache.get(plain)
    if cached is not None:
        return cached
    return _remember(plain, sum(grapheme_width(g) for g in grapheme.graphemes(plain)))


def _tokens(text: str) -> list[tuple[str, bool]]:
    """Split *text* into ``(chunk, is_escape)`` pairs.

    Non-escape chunks are single grapheme clusters.
    """
    out: list[tuple[str, bool]] = []
    pos = 0
    for match in _ANSI_RE.finditer(text):
        if match.start() > pos:
            out.extend((g, False) for g in grapheme.graphemes(text[pos : match.start()]))
        out.append((match.group(0), True))
        pos = match.end()
    if pos < len(text):
        out.extend((g, False) for g in grapheme.graphemes(text[pos:]))
    return out


# ---------------------------------------------------------------------------
# Fitting
# ---------------------------------------------------------------------------


def take_columns(text: str, max_cols: int) -> str:
    """Longest prefix of *text* that fits in *max_cols* cells.

    Escape sequences are kept; a reset is appended when any were seen so
    styling never leaks past the cut.
    """
    parts: list[str] = []
    cols = 0
    styled = False
    for chunk, is_escape in _tokens(text):
        if is_escape:
            parts.append(chunk)
            styled = True
            continue
        w = grapheme_width(chunk)
        if cols + w > max_cols:
            break
        parts.append(chunk)
        cols += w
    if styled:
        parts.append(RESET)
    return "".join(parts)


def truncate_to_width(text: str, max_width: int, ellipsis: str = ELLIPSIS) -> str:
    """Cut *text* to *max_width* cells, ending in *ellipsis* when cut."""
    if max_width <= 0:
        return ""
    if visible_width(text) <= max_width:
        return text
    room = max_width - visible_width(ellipsis)
    if room <= 0:
        return take_columns(ellipsis, max_width)
    return take_columns(text, room) + ellipsis


def pad_to_width(text: str, width: int) -> str:
    gap = width - visible_width(text)
    return text + " " * gap if gap > 0 else text


def fit_to_width(text: str, width: int, ellipsis: str = ELLIPSIS) -> str:
    """Pad or truncate *text* so it occupies exactly *width* cells."""
    return pad_to_width(truncate_to_width(text, width, ellipsis), width)


def slice_columns(text: str, start: int, length: int) -> str:
    """Cells ``[start, start + length)`` of *text*.

    A wide character straddling either edge is replaced by spaces so the
    slice is exactly *length* cells when *text* is long enough.
    """
    if length <= 0:
        return ""
    end = start + length
    parts: list[str] = []
    col = 0
    styled = False
    for chunk, is_escape in _tokens(text):
        if col >= end:
            break
        if is_escape:
            if col >= start:
                parts.append(chunk)
                styled = True
            continue
        w = grapheme_width(chunk)
        chunk_end = col + w
        if chunk_end <= start:
            col = chunk_end
            continue
        if col < start or chunk_end > end:
            parts.append(" " * (min(chunk_end, end) - max(col, start)))
        else:
            parts.append(chunk)
        col = chunk_end
    if styled:
        parts.append(RESET)
    return "".join(parts)


def overlay_line(base: str, overlay: str, col: int, width: int) -> str:
    """Paint *overlay* over *base* starting at cell *col* for *width* cells."""
    base_width = visible_width(base)
    before = slice_columns(base, 0, col) if col > 0 else ""
    before = pad_to_width(before, col)
    after_start = col + width
    after = slice_columns(base, after_start, base_width - after_start) if base_width > after_start else ""
    return before + fit_to_width(overlay, width) + after


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------


def wrap_words(text: str, width: int) -> list[str]:
    """Greedy word wrap of plain *text*; words longer than *width* are split.

    Embedded newlines start new lines; blank input lines are kept.
    """
    width = max(1, width)
    lines: list[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        line = ""
        for word in words:
            while visible_width(word) > width:
                if line:
                    lines.append(line)
                    line = ""
                head = take_columns(word, width) or next(grapheme.graphemes(word))
                lines.append(head)
                word = word[len(head) :]
            if not line:
                line = word
            elif visible_width(line) + 1 + visible_width(word) <= width:
                line = f"{line} {word}"
            else:
                lines.append(line)
                line = word
        if line:
            lines.append(line)
    return lines


def hr(width: int, char: str = "-") -> str:
    return char * max(0, width)


def dim(text: str) -> str:
    """Render *text* dimmed, re-applying dim after any reset inside it."""
    if not text:
        return text
    return DIM + text.replace(RESET, RESET + DIM) + RESET
