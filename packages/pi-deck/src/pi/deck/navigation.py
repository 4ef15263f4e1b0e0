"""Navigation wrapper: a page's own state paired with a pending transition.

Handlers request navigation by returning a state built with ``goto``,
``back`` or ``quit``.  The driver reads ``pending`` after every dispatch;
page logic itself never inspects it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Generic, Literal, TypeVar

S = TypeVar("S")
T = TypeVar("T")

BACK_PAGE = "__BACK__"
QUIT_PAGE = "__QUIT__"

TransitionKind = Literal["goto", "back", "quit"]


@dataclass(frozen=True)
class Transition:
    kind: TransitionKind
    target: str = ""

    @property
    def page_name(self) -> str:
        """The page name this transition resolves to."""
        if self.kind == "goto":
            return self.target
        if self.kind == "back":
            return BACK_PAGE
        return QUIT_PAGE


@dataclass(frozen=True)
class NavigationState(Generic[S]):
    inner: S
    pending: Transition | None = None


def make(inner: S) -> NavigationState[S]:
    return NavigationState(inner)


def goto(name: str, ps: NavigationState[S]) -> NavigationState[S]:
    return replace(ps, pending=Transition("goto", name))


def back(ps: NavigationState[S]) -> NavigationState[S]:
    return replace(ps, pending=Transition("back"))


def quit(ps: NavigationState[S]) -> NavigationState[S]:
    return replace(ps, pending=Transition("quit"))


def update(f: Callable[[S], T], ps: NavigationState[S]) -> NavigationState[T]:
    """Apply *f* to the inner state, leaving ``pending`` untouched."""
    return NavigationState(f(ps.inner), ps.pending)


def pending(ps: NavigationState[S]) -> Transition | None:
    return ps.pending


def clear(ps: NavigationState[S]) -> NavigationState[S]:
    """Drop any pending transition; used by the driver after reading it."""
    if ps.pending is None:
        return ps
    return replace(ps, pending=None)


def is_back(name: str) -> bool:
    return name == BACK_PAGE
