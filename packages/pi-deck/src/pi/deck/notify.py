"""Debounced redraw requests from background work.

Background tasks and threads never touch page or modal state.  They call
``notify()``; the driver polls ``should_refresh()`` once per tick and turns
a hit into a single ``Refresh``.  A burst of requests inside one debounce
window therefore yields exactly one refresh.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

DEFAULT_DEBOUNCE = 0.08


class DebouncedNotifier:
    def __init__(
        self,
        debounce: float = DEFAULT_DEBOUNCE,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.debounce = debounce
        self._clock = clock
        self._lock = threading.Lock()
        self._last_request: float | None = None
        self._waker: Callable[[], None] | None = None

    def set_waker(self, waker: Callable[[], None] | None) -> None:
        """Install a callback run after each ``notify``.

        The driver uses it to cut a blocking input read short.  It may be
        called from any thread, so it must be thread-safe itself.
        """
        self._waker = waker

    def notify(self) -> None:
        """Record that a redraw is wanted as of now."""
        with self._lock:
            self._last_request = self._clock()
        waker = self._waker
        if waker is not None:
            waker()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._last_request is not None

    def should_refresh(self, debounce: float | None = None) -> bool:
        """Return ``True`` once the newest request is at least *debounce* old.

        A ``True`` result clears the request, so the caller must act on it.
        """
        window = self.debounce if debounce is None else debounce
        with self._lock:
            if self._last_request is None:
                return False
            if self._clock() - self._last_request < window:
                return False
            self._last_request = None
            return True

    def reset(self) -> None:
        with self._lock:
            self._last_request = None
