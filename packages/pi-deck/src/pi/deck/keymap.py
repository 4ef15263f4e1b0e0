"""Key-dispatch registry layered above the page's own key handling.

The stack is immutable: ``push`` and ``pop`` return new stacks.  Frames are
searched top-first.  A delegating frame lets keys it does not handle bubble
down to the frames below it; a non-delegating frame stops them.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Callable

from pi.deck.keys import KeyId

_handles = itertools.count(1)


@dataclass(frozen=True)
class Binding:
    key: KeyId
    help: str
    action: Callable[[], None] | None = None
    display_only: bool = False


@dataclass(frozen=True)
class Handle:
    id: int


@dataclass(frozen=True)
class _Frame:
    handle: Handle
    bindings: tuple[Binding, ...]
    delegate: bool = True

    def find(self, key: KeyId) -> Binding | None:
        found = None
        for binding in self.bindings:
            if binding.key == key:
                found = binding
        return found


@dataclass(frozen=True)
class KeyHandlerStack:
    frames: tuple[_Frame, ...] = field(default_factory=tuple)

    def push(
        self,
        bindings: list[Binding],
        delegate: bool = True,
    ) -> tuple[KeyHandlerStack, Handle]:
        handle = Handle(next(_handles))
        frame = _Frame(handle, tuple(bindings), delegate)
        return KeyHandlerStack(self.frames + (frame,)), handle

    def pop(self, handle: Handle) -> KeyHandlerStack:
        """Remove the frame for *handle*; unknown handles are ignored."""
        frames = tuple(f for f in self.frames if f.handle != handle)
        if len(frames) == len(self.frames):
            return self
        return KeyHandlerStack(frames)

    def pop_top(self) -> KeyHandlerStack:
        if not self.frames:
            return self
        return KeyHandlerStack(self.frames[:-1])

    def clear(self) -> KeyHandlerStack:
        return KeyHandlerStack()

    @property
    def depth(self) -> int:
        return len(self.frames)

    def dispatch(self, key: KeyId) -> tuple[bool, KeyHandlerStack]:
        """Run the first runnable binding for *key*, top frame first.

        Returns ``(consumed, stack)``.  Display-only bindings and bindings
        without an action never consume the key.
        """
        for frame in reversed(self.frames):
            binding = frame.find(key)
            if binding is not None and binding.action is not None and not binding.display_only:
                binding.action()
                return True, self
            if not frame.delegate:
                break
        return False, self

    def top_bindings(self) -> list[tuple[KeyId, str]]:
        if not self.frames:
            return []
        return [(b.key, b.help) for b in self.frames[-1].bindings]

    def all_bindings(self) -> list[tuple[KeyId, str]]:
        """Bindings of every frame, top frame first."""
        result: list[tuple[KeyId, str]] = []
        for frame in reversed(self.frames):
            result.extend((b.key, b.help) for b in frame.bindings)
        return result
