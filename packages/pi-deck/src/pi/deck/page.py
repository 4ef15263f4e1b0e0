"""The page contract hosted by the driver and the modal stack.

A page is a stateless object describing one screen.  Its state lives in a
``NavigationState`` created by ``init`` and threaded through every call, so
the same page object can back several modal frames at once.

Optional hooks are looked up with ``getattr`` at the call site:

* ``enter(pstate) -> pstate``: Enter pressed outside any modal.
* ``mount(pstate, scope) -> pstate``: called once before the first render
  with a ``PageScope`` for background tasks tied to the page's lifetime.
* ``help_hint(pstate) -> str | None``: contextual text for the help modal.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from pi.deck.keys import KeyId
from pi.deck.navigation import NavigationState
from pi.deck.size import Size

logger = logging.getLogger(__name__)

PState = NavigationState[Any]


# ---------------------------------------------------------------------------
# Key bindings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyBinding:
    """A key a page reacts to, with the help text shown in the footer.

    ``display_only`` bindings are listed in the footer and help modal but
    never dispatched; the page's ``handle_key`` still receives the key.
    """

    key: KeyId
    help: str
    action: Callable[[PState], PState] | None = None
    display_only: bool = False


# ---------------------------------------------------------------------------
# Page protocol
# ---------------------------------------------------------------------------


class Page(Protocol):
    """Interface every hosted page implements."""

    def init(self) -> PState: ...

    def view(self, pstate: PState, focus: bool, size: Size) -> str: ...

    def handle_key(self, pstate: PState, key: KeyId, size: Size) -> PState: ...

    def handle_modal_key(self, pstate: PState, key: KeyId, size: Size) -> PState: ...

    def refresh(self, pstate: PState) -> PState: ...

    def service_cycle(self, pstate: PState, tick: int) -> PState: ...

    def keymap(self, pstate: PState) -> list[KeyBinding]: ...

    def handled_keys(self) -> list[KeyId]: ...

    def has_modal(self, pstate: PState) -> bool: ...


class BasePage:
    """Convenience base with no-op defaults for the optional parts of ``Page``.

    Subclasses supply at least ``init`` and ``view``.
    """

    def init(self) -> PState:
        raise NotImplementedError

    def view(self, pstate: PState, focus: bool, size: Size) -> str:
        raise NotImplementedError

    def handle_key(self, pstate: PState, key: KeyId, size: Size) -> PState:
        return pstate

    def handle_modal_key(self, pstate: PState, key: KeyId, size: Size) -> PState:
        return pstate

    def refresh(self, pstate: PState) -> PState:
        return pstate

    def service_cycle(self, pstate: PState, tick: int) -> PState:
        return pstate

    def keymap(self, pstate: PState) -> list[KeyBinding]:
        return []

    def handled_keys(self) -> list[KeyId]:
        return []

    def has_modal(self, pstate: PState) -> bool:
        return False


# ---------------------------------------------------------------------------
# Page decorator
# ---------------------------------------------------------------------------


class KeyInterceptPage:
    """Wrap *inner* and claim one extra key before it reaches the page.

    Every call is forwarded to *inner* except ``handle_key`` for
    ``binding.key``, which runs ``binding.action`` instead.  The binding is
    appended to the inner keymap so it shows up in the footer.
    """

    def __init__(self, inner: Page, binding: KeyBinding) -> None:
        if binding.action is None:
            raise ValueError("an intercepting binding needs an action")
        self.inner = inner
        self.binding = binding

    def init(self) -> PState:
        return self.inner.init()

    def view(self, pstate: PState, focus: bool, size: Size) -> str:
        return self.inner.view(pstate, focus, size)

    def handle_key(self, pstate: PState, key: KeyId, size: Size) -> PState:
        if key == self.binding.key and not self.inner.has_modal(pstate):
            return self.binding.action(pstate)  # type: ignore[misc]
        return self.inner.handle_key(pstate, key, size)

    def handle_modal_key(self, pstate: PState, key: KeyId, size: Size) -> PState:
        return self.inner.handle_modal_key(pstate, key, size)

    def refresh(self, pstate: PState) -> PState:
        return self.inner.refresh(pstate)

    def service_cycle(self, pstate: PState, tick: int) -> PState:
        return self.inner.service_cycle(pstate, tick)

    def keymap(self, pstate: PState) -> list[KeyBinding]:
        inner = [b for b in self.inner.keymap(pstate) if b.key != self.binding.key]
        return inner + [KeyBinding(self.binding.key, self.binding.help, display_only=True)]

    def handled_keys(self) -> list[KeyId]:
        keys = list(self.inner.handled_keys())
        if self.binding.key not in keys:
            keys.append(self.binding.key)
        return keys

    def has_modal(self, pstate: PState) -> bool:
        return self.inner.has_modal(pstate)

    def __getattr__(self, name: str) -> Any:
        # Optional hooks (enter, mount, help_hint) pass through to the inner page.
        if name == "inner":
            raise AttributeError(name)
        return getattr(self.inner, name)


# ---------------------------------------------------------------------------
# Page scope
# ---------------------------------------------------------------------------


class PageScope:
    """Owns the background tasks and timers started on behalf of one page.

    Everything spawned through the scope is cancelled by ``close``, which the
    driver calls whenever the page's run ends.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._tasks: set[asyncio.Task[Any]] = set()
        self._timers: set[asyncio.TimerHandle] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_tasks(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        """Run *coro* as a task that lives no longer than this scope."""
        if self._closed:
            raise RuntimeError(f"page scope {self.name!r} is closed")
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def call_later(self, delay: float, fn: Callable[[], None]) -> asyncio.TimerHandle:
        """Schedule *fn* after *delay* seconds unless the scope closes first."""
        if self._closed:
            raise RuntimeError(f"page scope {self.name!r} is closed")
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle

        def _fire() -> None:
            self._timers.discard(handle)
            fn()

        handle = loop.call_later(delay, _fire)
        self._timers.add(handle)
        return handle

    async def close(self) -> None:
        """Cancel every pending task and timer, then wait for the tasks."""
        self._closed = True
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()

        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("background task in %r failed: %r", self.name, exc)
