"""Modal stack: transient overlays that capture input until closed.

Each ``ModalFrame`` pairs a page with its own state.  Frames of different
page types live side by side because the stack only talks to them through
the ``Page`` contract.  The top frame (last element) is the only one that
ever receives keys.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional, Union

from pi.deck import navigation
from pi.deck.keys import Key, KeyId
from pi.deck.page import BasePage, Page, PState
from pi.deck.size import DEFAULT_SIZE, Size
from pi.deck.utils import ELLIPSIS, truncate_to_width, visible_width, wrap_words

logger = logging.getLogger(__name__)

ModalOutcome = Literal["commit", "cancel"]

COMMIT: ModalOutcome = "commit"
CANCEL: ModalOutcome = "cancel"

DEFAULT_MAX_WIDTH = 76


# ---------------------------------------------------------------------------
# Width specs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Fixed:
    n: int


@dataclass(frozen=True)
class Ratio:
    r: float


@dataclass(frozen=True)
class Clamped:
    r: float
    min: int
    max: int


WidthSpec = Union[Fixed, Ratio, Clamped]


def _round(x: float) -> int:
    return int(math.floor(x + 0.5))


def resolve_width(spec: WidthSpec, cols: int) -> int:
    """Resolve *spec* against the current terminal width.

    Called at render time on every frame; the result is never cached since
    the terminal can be resized between renders.
    """
    if isinstance(spec, Fixed):
        return min(spec.n, cols)
    if isinstance(spec, Ratio):
        return _round(cols * spec.r)
    return max(spec.min, min(spec.max, _round(cols * spec.r)))


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModalUI:
    title: str
    left: Optional[int] = None
    width: Optional[WidthSpec] = None
    dim_background: bool = False


@dataclass
class ModalFrame:
    """One active overlay.

    ``on_close`` receives the page's inner state as it was when the frame
    was popped, plus the outcome.  It runs exactly once.
    """

    page: Page
    state: PState
    ui: ModalUI
    commit_keys: tuple[KeyId, ...] = ()
    cancel_keys: tuple[KeyId, ...] = ()
    on_close: Callable[[Any, ModalOutcome], None] = field(default=lambda _s, _o: None)

    @property
    def title(self) -> str:
        return self.ui.title


@dataclass(frozen=True)
class ModalGeometry:
    left: int
    max_width: int
    content_width: int
    max_content_h: int


def modal_geometry(size: Size, ui: ModalUI) -> ModalGeometry:
    """Where a frame may draw and how much room its content gets."""
    max_width = DEFAULT_MAX_WIDTH
    if ui.width is not None:
        max_width = resolve_width(ui.width, size.cols)
    content_width = max(1, min(max_width, size.cols - 2))
    box_width = content_width + 2
    if ui.left is not None:
        left = max(0, min(ui.left, size.cols - box_width))
    else:
        left = max(0, (size.cols - box_width) // 2)
    max_content_h = max(1, size.rows - 4)
    return ModalGeometry(left, max_width, content_width, max_content_h)


@dataclass(frozen=True)
class ModalView:
    """Render-time snapshot of one frame."""

    title: str
    left: Optional[int]
    width: Optional[WidthSpec]
    dim: bool
    view: Callable[[Size], str]


# ---------------------------------------------------------------------------
# ModalStack
# ---------------------------------------------------------------------------


class ModalStack:
    """Ordered overlay frames; the last element is the top."""

    def __init__(self) -> None:
        self._frames: list[ModalFrame] = []
        self._consume_next_key = False
        self._size = DEFAULT_SIZE

    # -- queries -----------------------------------------------------------

    @property
    def has_active(self) -> bool:
        return bool(self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def titles(self) -> list[str]:
        return [f.title for f in self._frames]

    def top(self) -> ModalFrame | None:
        return self._frames[-1] if self._frames else None

    def top_ui(self) -> ModalUI | None:
        top = self.top()
        return top.ui if top is not None else None

    def top_title(self) -> str | None:
        top = self.top()
        return top.title if top is not None else None

    @property
    def current_size(self) -> Size:
        return self._size

    def set_current_size(self, size: Size) -> None:
        """Record the terminal size used to size modal content."""
        self._size = size

    def content_size(self, frame: ModalFrame) -> Size:
        geom = modal_geometry(self._size, frame.ui)
        return Size(geom.max_content_h, geom.content_width)

    # -- push / close ------------------------------------------------------

    def push(self, frame: ModalFrame) -> None:
        """Append *frame*, first dropping any frame with the same title."""
        self._frames = [f for f in self._frames if f.title != frame.title]
        self._frames.append(frame)
        logger.debug("modal push %r depth=%d", frame.title, len(self._frames))

    def open(
        self,
        page: Page,
        ui: ModalUI,
        *,
        state: PState | None = None,
        commit_keys: tuple[KeyId, ...] = (),
        cancel_keys: tuple[KeyId, ...] = (),
        on_close: Callable[[Any, ModalOutcome], None] | None = None,
    ) -> ModalFrame:
        frame = ModalFrame(
            page,
            page.init() if state is None else state,
            ui,
            tuple(commit_keys),
            tuple(cancel_keys),
        )
        if on_close is not None:
            frame.on_close = on_close
        self.push(frame)
        return frame

    def push_default(
        self,
        page: Page,
        ui: ModalUI,
        *,
        state: PState | None = None,
        on_close: Callable[[Any, ModalOutcome], None] | None = None,
    ) -> ModalFrame:
        """Push with Enter committing and Esc cancelling."""
        return self.open(
            page,
            ui,
            state=state,
            commit_keys=(Key.enter,),
            cancel_keys=(Key.esc,),
            on_close=on_close,
        )

    def _pop(self) -> ModalFrame | None:
        if not self._frames:
            return None
        frame = self._frames.pop()
        logger.debug("modal pop %r depth=%d", frame.title, len(self._frames))
        return frame

    def close_top(self, outcome: ModalOutcome) -> None:
        """Pop the top frame and run its ``on_close``; no-op when empty.

        The frame is popped before ``on_close`` runs, so a handler that
        pushes a follow-up modal ends up on top.
        """
        frame = self._pop()
        if frame is not None:
            frame.on_close(frame.state.inner, outcome)

    def clear(self) -> None:
        """Cancel every frame, top first."""
        while self._frames:
            self.close_top(CANCEL)

    # -- input -------------------------------------------------------------

    def handle_key(self, key: KeyId) -> None:
        """Feed *key* to the top frame, then apply its commit/cancel keys.

        The page sees the key before commit or cancel is evaluated, so
        ``on_close`` observes any edit the same key made.
        """
        frame = self.top()
        if frame is None:
            return
        frame.state = frame.page.handle_key(frame.state, key, self.content_size(frame))
        # The handler may have closed or replaced its own frame.
        if self.top() is not frame:
            return
        if key in frame.cancel_keys:
            self.close_top(CANCEL)
        elif key in frame.commit_keys:
            self.close_top(COMMIT)

    def set_consume_next_key(self) -> None:
        """Mark the key being handled as fully consumed by the modal layer."""
        self._consume_next_key = True

    def take_consume_next_key(self) -> bool:
        flag = self._consume_next_key
        self._consume_next_key = False
        return flag

    # -- rendering ---------------------------------------------------------

    def snapshot(self) -> list[ModalView]:
        views = []
        for frame in self._frames:
            views.append(
                ModalView(
                    frame.title,
                    frame.ui.left,
                    frame.ui.width,
                    frame.ui.dim_background,
                    _view_thunk(frame),
                )
            )
        return views


def _view_thunk(frame: ModalFrame) -> Callable[[Size], str]:
    def view(size: Size) -> str:
        return frame.page.view(frame.state, True, size)

    return view


# ---------------------------------------------------------------------------
# Built-in modal pages
# ---------------------------------------------------------------------------


class MessagePage(BasePage):
    """Read-only text, word-wrapped to the modal width."""

    def __init__(self, text: str) -> None:
        self.text = text

    def init(self) -> PState:
        return navigation.make(self.text)

    def view(self, pstate: PState, focus: bool, size: Size) -> str:
        return "\n".join(wrap_words(pstate.inner, size.cols))


class PromptPage(BasePage):
    """Single-line text entry; the inner state is the text typed so far."""

    def __init__(self, label: str, initial: str = "") -> None:
        self.label = label
        self.initial = initial

    def init(self) -> PState:
        return navigation.make(self.initial)

    def view(self, pstate: PState, focus: bool, size: Size) -> str:
        field_width = max(1, size.cols - 2)
        text = pstate.inner
        if visible_width(text) >= field_width:
            text = ELLIPSIS + text[-max(1, field_width - 2):]
        cursor = "_" if focus else ""
        return f"{truncate_to_width(self.label, size.cols)}\n> {text}{cursor}"

    def handle_key(self, pstate: PState, key: KeyId, size: Size) -> PState:
        if key == Key.backspace:
            return navigation.update(lambda s: s[:-1], pstate)
        if len(key) == 1 and key.isprintable():
            return navigation.update(lambda s: s + key, pstate)
        return pstate

    def handled_keys(self) -> list[KeyId]:
        return [Key.backspace]


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------


def alert(
    stack: ModalStack,
    page: Page | str,
    *,
    title: str = "",
    left: int | None = None,
    width: WidthSpec | None = None,
    dim_background: bool = True,
) -> ModalFrame:
    """Show *page* (or a message string) until Enter or Esc."""
    if isinstance(page, str):
        page = MessagePage(page)
    return stack.push_default(page, ModalUI(title, left, width, dim_background))


def confirm(
    stack: ModalStack,
    page: Page | str,
    on_result: Callable[[bool], None],
    *,
    title: str = "Confirm",
    left: int | None = None,
    width: WidthSpec | None = None,
    dim_background: bool = True,
) -> ModalFrame:
    """Ask a yes/no question; Enter reports ``True``, Esc ``False``."""
    if isinstance(page, str):
        page = MessagePage(page)
    return stack.push_default(
        page,
        ModalUI(title, left, width, dim_background),
        on_close=lambda _state, outcome: on_result(outcome == COMMIT),
    )


def confirm_with_extract(
    stack: ModalStack,
    page: Page,
    extract: Callable[[Any], Any],
    on_result: Callable[[Any], None],
    *,
    title: str = "Confirm",
    left: int | None = None,
    width: WidthSpec | None = None,
    dim_background: bool = True,
) -> ModalFrame:
    """On commit report ``extract(state)``; on cancel report ``None``."""

    def _close(state: Any, outcome: ModalOutcome) -> None:
        on_result(extract(state) if outcome == COMMIT else None)

    return stack.push_default(page, ModalUI(title, left, width, dim_background), on_close=_close)


def prompt(
    stack: ModalStack,
    page: Page | str,
    on_result: Callable[[Any], None],
    *,
    extract: Callable[[Any], Any] = lambda s: s,
    title: str = "Prompt",
    left: int | None = None,
    width: WidthSpec | None = None,
    dim_background: bool = True,
) -> ModalFrame:
    """Ask for input.  A string *page* becomes a ``PromptPage`` label."""
    if isinstance(page, str):
        page = PromptPage(page)
    return confirm_with_extract(
        stack,
        page,
        extract,
        on_result,
        title=title,
        left=left,
        width=width,
        dim_background=dim_background,
    )
