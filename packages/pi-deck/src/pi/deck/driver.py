"""The driver: one page's event loop.

``Driver.run`` renders the page, then repeatedly takes the highest
priority event (resize, debounced notify, decoded input), routes it to the
modal stack or the page, and renders again.  It returns an ``Outcome`` as
soon as a handler records a navigation intent; deciding which page runs
next belongs to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Literal

from pi.deck import keys, navigation
from pi.deck.config import DeckSettings
from pi.deck.decoder import InputDecoder
from pi.deck.keys import GLOBAL_KEYS, Key, KeyId, KeyToken
from pi.deck.modal import CANCEL, Fixed, MessagePage, ModalStack, ModalUI
from pi.deck.navigation import BACK_PAGE, Transition
from pi.deck.page import BasePage, Page, PageScope, PState
from pi.deck.render import (
    FpsCounter,
    PageSnapshotCache,
    Renderer,
    composite_modals,
    narrow_banner,
    overlay_fps,
    render_chrome,
    trim_to_rows,
)
from pi.deck.services import Services
from pi.deck.size import Size, SizeProbe
from pi.deck.terminal import Terminal

logger = logging.getLogger(__name__)

NARROW_TITLE = "Narrow terminal"
NARROW_MESSAGE = (
    "Your terminal is narrow (< 80 cols). For best experience, widen it. "
    "Press any key to dismiss."
)
NARROW_DISMISS_AFTER = 5.0

HELP_TITLE = "Keys"

RefreshReason = Literal["resize", "notify", "idle"]


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Outcome:
    """How a driver run ended."""

    kind: Literal["quit", "switch"]
    target: str = ""

    @classmethod
    def quit(cls) -> Outcome:
        return cls("quit")

    @classmethod
    def switch(cls, name: str) -> Outcome:
        return cls("switch", name)

    @property
    def is_back(self) -> bool:
        return self.kind == "switch" and self.target == BACK_PAGE

    @classmethod
    def from_transition(cls, transition: Transition) -> Outcome:
        if transition.kind == "quit":
            return cls.quit()
        return cls.switch(transition.page_name)


# ---------------------------------------------------------------------------
# Built-in modal pages
# ---------------------------------------------------------------------------


class NarrowWarningPage(MessagePage):
    """Dismissed by any key."""

    def __init__(self, stack: ModalStack) -> None:
        super().__init__(NARROW_MESSAGE)
        self._stack = stack

    def handle_key(self, pstate: PState, key: KeyId, size: Size) -> PState:
        self._stack.set_consume_next_key()
        self._stack.close_top(CANCEL)
        return pstate


def help_text(bindings: list[tuple[str, str]], hint: str | None) -> str:
    """Body of the help modal: optional hint, then every binding once."""
    seen: dict[str, str] = {}
    for key, help_ in bindings:
        seen.setdefault(key, help_)
    lines: list[str] = []
    if hint:
        lines.extend([hint, ""])
    lines.append("Key Bindings")
    lines.extend("%-12s %s" % (key, seen[key]) for key in sorted(seen))
    return "\n".join(lines)


def help_width(cols: int) -> int:
    return min(max(16, cols - 20), 72)


class _HelpPage(BasePage):
    def __init__(self, text: str) -> None:
        self.text = text

    def init(self) -> PState:
        return navigation.make(self.text)

    def view(self, pstate: PState, focus: bool, size: Size) -> str:
        return pstate.inner


def default_size_probe(terminal: Terminal, settings: DeckSettings) -> SizeProbe:
    forced = None
    if settings.forced_rows and settings.forced_cols:
        forced = Size(settings.forced_rows, settings.forced_cols)
    return SizeProbe(direct=terminal.size, forced=forced)


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


class Driver:
    """Run one page until it navigates away or quits."""

    def __init__(
        self,
        page: Page,
        terminal: Terminal,
        *,
        title: str = "",
        services: Services | None = None,
        settings: DeckSettings | None = None,
        size_probe: SizeProbe | None = None,
        renderer: Renderer | None = None,
        decoder: InputDecoder | None = None,
    ) -> None:
        self.page = page
        self.terminal = terminal
        self.title = title
        self.services = services or Services()
        self.settings = settings or DeckSettings()
        self.size_probe = size_probe or default_size_probe(terminal, self.settings)
        self.renderer = renderer or Renderer(terminal)
        self.decoder = decoder or InputDecoder(terminal)
        self.scope = PageScope(title)
        self.tick = 0
        self.size = self.size_probe.last
        self._snapshot = PageSnapshotCache()
        self._fps = FpsCounter()

    @property
    def modals(self) -> ModalStack:
        return self.services.modals

    # -- main loop ----------------------------------------------------------

    async def run(self) -> Outcome:
        notifier = self.services.notifier
        notifier.set_waker(self.terminal.wake)
        pstate = self.page.init()
        try:
            mount = getattr(self.page, "mount", None)
            if mount is not None:
                pstate = mount(pstate, self.scope)
            outcome = self._outcome(pstate)
            while outcome is None:
                self._render(pstate)
                reason, token = await self._next_event()
                if token.is_quit:
                    logger.debug("input closed, quitting")
                    return Outcome.quit()
                if reason is not None:
                    pstate = self._on_refresh(pstate, reason)
                    outcome = self._outcome(pstate)
                else:
                    pstate, outcome = self._dispatch(pstate, token)
            logger.debug("page %r finished: %s", self.title, outcome)
            return outcome
        finally:
            notifier.set_waker(None)
            await self.scope.close()

    async def _next_event(self) -> tuple[RefreshReason | None, KeyToken]:
        """Pick the next event: resize, then notify, then input."""
        if self.terminal.take_resize():
            return "resize", keys.REFRESH
        if self.services.notifier.should_refresh(self.settings.debounce):
            return "notify", keys.REFRESH
        token = await self.decoder.next_token(self.settings.poll_interval)
        if token.is_refresh:
            if self.terminal.take_resize():
                return "resize", token
            if self.services.notifier.should_refresh(self.settings.debounce):
                return "notify", token
            return "idle", token
        return None, token

    def _on_refresh(self, pstate: PState, reason: RefreshReason) -> PState:
        if reason == "idle":
            self.tick += 1
            return self.page.service_cycle(pstate, self.tick)
        return self.page.refresh(pstate)

    # -- routing ------------------------------------------------------------

    def _dispatch(self, pstate: PState, token: KeyToken) -> tuple[PState, Outcome | None]:
        if token.kind == "mouse_move":
            return pstate, None
        key = token.key
        modals = self.modals

        if modals.has_active:
            modals.handle_key(key)
            if modals.take_consume_next_key():
                return pstate, None
            if not modals.has_active:
                transition = self.services.take_navigation()
                if transition is not None:
                    pstate = replace(pstate, pending=transition)
                return pstate, self._outcome(pstate)
            return pstate, None

        size = self.size
        if self.page.has_modal(pstate):
            pstate = self.page.handle_modal_key(pstate, key, size)
            return pstate, self._outcome(pstate)

        if key in GLOBAL_KEYS:
            self.open_help(pstate)
            return pstate, None

        if token.is_esc:
            pstate = self.page.handle_key(pstate, key, size)
            outcome = self._outcome(pstate)
            if outcome is None:
                outcome = Outcome.switch(BACK_PAGE)
            return pstate, outcome

        if key == Key.enter:
            enter = getattr(self.page, "enter", None)
            if enter is not None:
                pstate = enter(pstate)
            else:
                pstate = self.page.handle_key(pstate, key, size)
            return pstate, self._outcome(pstate)

        consumed, self.services.keys = self.services.keys.dispatch(key)
        if not consumed:
            binding = next(
                (
                    b
                    for b in self.page.keymap(pstate)
                    if b.key == key and b.action is not None and not b.display_only
                ),
                None,
            )
            if binding is not None:
                pstate = binding.action(pstate)  # type: ignore[misc]
            else:
                pstate = self.page.handle_key(pstate, key, size)
        return pstate, self._outcome(pstate)

    def _outcome(self, pstate: PState) -> Outcome | None:
        if pstate.pending is None:
            return None
        return Outcome.from_transition(pstate.pending)

    # -- help ---------------------------------------------------------------

    def bindings(self, pstate: PState) -> list[tuple[str, str]]:
        """Footer bindings: the page keymap, then the key-dispatch stack."""
        pairs = [(b.key, b.help) for b in self.page.keymap(pstate)]
        pairs.extend(self.services.keys.top_bindings())
        pairs.append((Key.help, "help"))
        return pairs

    def open_help(self, pstate: PState) -> None:
        pairs = [(b.key, b.help) for b in self.page.keymap(pstate)]
        pairs.extend(self.services.keys.all_bindings())
        pairs.append((Key.help, "help"))
        hint_fn = getattr(self.page, "help_hint", None)
        hint = hint_fn(pstate) if hint_fn is not None else None
        if hint is None:
            hint = self.services.hints.get(self.size.cols)
        self.modals.push_default(
            _HelpPage(help_text(pairs, hint)),
            ModalUI(HELP_TITLE, width=Fixed(help_width(self.size.cols)), dim_background=True),
        )

    # -- narrow terminal ----------------------------------------------------

    def _check_narrow(self, size: Size) -> None:
        services = self.services
        if not size.is_narrow or services.narrow_warned:
            return
        services.narrow_warned = True
        logger.info("terminal narrowed to %d cols", size.cols)
        self.modals.open(
            NarrowWarningPage(self.modals),
            ModalUI(NARROW_TITLE, left=2, dim_background=True),
        )
        services.dismiss_later(NARROW_TITLE, NARROW_DISMISS_AFTER)

    # -- rendering ----------------------------------------------------------

    def compose(self, pstate: PState, size: Size) -> str:
        """Build the full frame for *pstate* at *size*."""
        ascii_only = self.settings.ascii_borders
        if self.modals.has_active:
            body = self._snapshot.get(pstate, size, lambda: self.page.view(pstate, False, size))
        else:
            self._snapshot.clear()
            body = self.page.view(pstate, True, size)
        header = [narrow_banner(size.cols)] if size.is_narrow else []
        text = render_chrome(
            self.title,
            body,
            self.bindings(pstate),
            size,
            header=header,
            ascii_only=ascii_only,
        )
        text = composite_modals(text, self.modals.snapshot(), size, ascii_only=ascii_only)
        return trim_to_rows(text, size.rows)

    def _render(self, pstate: PState) -> None:
        size = self.size_probe.probe()
        self.size = size
        self.modals.set_current_size(size)
        self._check_narrow(size)
        text = self.compose(pstate, size)
        if self.settings.debug_overlay:
            self._fps.tick()
            text = overlay_fps(text, size.cols, self._fps.fps)
        self.renderer.render(text, size)
