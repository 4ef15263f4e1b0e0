"""Contextual help hints shown at the top of the help modal.

Pages and modals push a hint when they become active and pop it when they
go away; the newest hint wins.
"""

from __future__ import annotations

from dataclasses import dataclass

# Terminals at least this wide get the long form of a hint when one exists.
LONG_HINT_COLS = 100


@dataclass(frozen=True)
class Hint:
    short: str | None = None
    long: str | None = None

    def text_for(self, cols: int) -> str | None:
        if self.long and (cols >= LONG_HINT_COLS or not self.short):
            return self.long
        return self.short


class HintStack:
    def __init__(self) -> None:
        self._stack: list[Hint] = []

    def set(self, text: str | None) -> None:
        """Replace every hint with *text*, or clear them when it is ``None``."""
        self._stack = [] if text is None else [Hint(short=text)]

    def push(self, short: str | None = None, long: str | None = None) -> None:
        self._stack.append(Hint(short, long))

    def pop(self) -> None:
        if self._stack:
            self._stack.pop()

    def clear(self) -> None:
        self._stack.clear()

    @property
    def active(self) -> Hint | None:
        return self._stack[-1] if self._stack else None

    def get(self, cols: int = 0) -> str | None:
        hint = self.active
        return hint.text_for(cols) if hint is not None else None
