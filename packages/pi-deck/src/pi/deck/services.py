"""The shared collaborators handed to every driver run.

One ``Services`` is built at startup and threaded through the app, the
driver and any page that needs it, in place of process-wide globals.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from pi.deck.hints import HintStack
from pi.deck.keymap import Binding, Handle, KeyHandlerStack
from pi.deck.modal import CANCEL, ModalStack
from pi.deck.navigation import Transition
from pi.deck.notify import DebouncedNotifier

logger = logging.getLogger(__name__)


@dataclass
class Services:
    modals: ModalStack = field(default_factory=ModalStack)
    notifier: DebouncedNotifier = field(default_factory=DebouncedNotifier)
    hints: HintStack = field(default_factory=HintStack)
    keys: KeyHandlerStack = field(default_factory=KeyHandlerStack)
    # Session-scoped: once the narrow warning has been shown it stays off
    # until ``reset_narrow_warning`` is called.
    narrow_warned: bool = False
    _navigation: Transition | None = None
    _dismiss_timer: asyncio.TimerHandle | None = None

    def push_keys(self, bindings: list[Binding], delegate: bool = True) -> Handle:
        self.keys, handle = self.keys.push(bindings, delegate)
        return handle

    def pop_keys(self, handle: Handle) -> None:
        self.keys = self.keys.pop(handle)

    def request_navigation(self, transition: Transition) -> None:
        """Ask the driver to navigate once the modal stack has emptied.

        Meant for modal ``on_close`` callbacks, which have no access to the
        hosting page's state.
        """
        self._navigation = transition

    def take_navigation(self) -> Transition | None:
        transition = self._navigation
        self._navigation = None
        return transition

    def reset_narrow_warning(self) -> None:
        self.narrow_warned = False

    # -- timed dismissal ---------------------------------------------------

    def dismiss_later(self, title: str, delay: float) -> None:
        """Cancel the modal titled *title* after *delay* seconds.

        The timer belongs to the running loop, not to the page that opened
        the modal, so it still fires after that page's driver has returned.
        Only the top frame is closed, and only if it still carries *title*.
        """
        self.cancel_timers()
        loop = asyncio.get_running_loop()
        self._dismiss_timer = loop.call_later(delay, self._dismiss, title)

    def _dismiss(self, title: str) -> None:
        self._dismiss_timer = None
        if self.modals.top_title() == title:
            logger.debug("auto-dismissing modal %r", title)
            self.modals.close_top(CANCEL)
            self.notifier.notify()

    @property
    def dismiss_scheduled(self) -> bool:
        return self._dismiss_timer is not None

    def cancel_timers(self) -> None:
        if self._dismiss_timer is not None:
            self._dismiss_timer.cancel()
            self._dismiss_timer = None
