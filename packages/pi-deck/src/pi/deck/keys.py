"""Decoded key tokens and the routing strings used to dispatch them.

A ``KeyToken`` is produced once per decode call and never mutated.  Pages,
modals and key bindings all see keys as plain routing strings such as
``"Up"``, ``"Enter"``, ``"Esc"``, ``"C-a"`` or ``"q"``; ``KeyToken.key``
performs that mapping.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

KeyId = str

TokenKind = Literal[
    "up",
    "down",
    "left",
    "right",
    "tab",
    "shift_tab",
    "enter",
    "backspace",
    "delete",
    "char",
    "control",
    "mouse",
    "mouse_move",
    "refresh",
    "quit",
]


# ---------------------------------------------------------------------------
# Key constants
# ---------------------------------------------------------------------------


class Key:
    """Routing strings for the named keys."""

    up = "Up"
    down = "Down"
    left = "Left"
    right = "Right"
    tab = "Tab"
    shift_tab = "S-Tab"
    enter = "Enter"
    backspace = "Backspace"
    delete = "Delete"
    esc = "Esc"
    refresh = "Refresh"
    quit = "Quit"
    mouse_move = "MouseMove"
    help = "?"

    @staticmethod
    def ctrl(letter: str) -> str:
        return f"C-{letter}"

    @staticmethod
    def mouse(row: int, col: int) -> str:
        return f"Mouse:{row}:{col}"


#: Keys reserved by the driver on every page.
GLOBAL_KEYS: frozenset[str] = frozenset({Key.help})

#: Tokens that collapse when a held key floods the input with repeats.
REPEATABLE_KINDS: frozenset[str] = frozenset(
    {"up", "down", "left", "right", "tab", "shift_tab", "delete"}
)

_SIMPLE_KEYS: dict[str, str] = {
    "up": Key.up,
    "down": Key.down,
    "left": Key.left,
    "right": Key.right,
    "tab": Key.tab,
    "shift_tab": Key.shift_tab,
    "enter": Key.enter,
    "backspace": Key.backspace,
    "delete": Key.delete,
    "mouse_move": Key.mouse_move,
    "refresh": Key.refresh,
    "quit": Key.quit,
}


# ---------------------------------------------------------------------------
# KeyToken
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyToken:
    """One logical input event decoded from the byte stream."""

    kind: TokenKind
    text: str = ""
    row: int = 0
    col: int = 0
    pressed: bool = False

    @property
    def key(self) -> KeyId:
        """Return the routing string for this token."""
        simple = _SIMPLE_KEYS.get(self.kind)
        if simple is not None:
            return simple
        if self.kind == "control":
            return Key.ctrl(self.text)
        if self.kind == "mouse":
            return Key.mouse(self.row, self.col)
        return self.text

    @property
    def is_refresh(self) -> bool:
        return self.kind == "refresh"

    @property
    def is_quit(self) -> bool:
        return self.kind == "quit"

    @property
    def is_mouse(self) -> bool:
        return self.kind in ("mouse", "mouse_move")

    @property
    def is_esc(self) -> bool:
        return self.kind == "char" and self.text == Key.esc

    def __str__(self) -> str:
        return self.key


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

UP = KeyToken("up")
DOWN = KeyToken("down")
LEFT = KeyToken("left")
RIGHT = KeyToken("right")
TAB = KeyToken("tab")
SHIFT_TAB = KeyToken("shift_tab")
ENTER = KeyToken("enter")
BACKSPACE = KeyToken("backspace")
DELETE = KeyToken("delete")
ESC = KeyToken("char", Key.esc)
MOUSE_MOVE = KeyToken("mouse_move")
REFRESH = KeyToken("refresh")
QUIT = KeyToken("quit")


def char(text: str) -> KeyToken:
    return KeyToken("char", text)


def control(letter: str) -> KeyToken:
    return KeyToken("control", letter)


def mouse(row: int, col: int, pressed: bool = True) -> KeyToken:
    return KeyToken("mouse", row=row, col=col, pressed=pressed)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

_ENCODED: dict[str, bytes] = {
    "up": b"\x1b[A",
    "down": b"\x1b[B",
    "right": b"\x1b[C",
    "left": b"\x1b[D",
    "tab": b"\t",
    "shift_tab": b"\x1b[Z",
    "enter": b"\r",
    "backspace": b"\x7f",
    "delete": b"\x1b[3~",
    "refresh": b"\x00",
}


def encode_token(token: KeyToken) -> bytes:
    """Return the canonical byte sequence that decodes to *token*.

    ``Quit`` has no byte form (it is produced by end-of-input) and
    ``MouseMove`` is encoded as an SGR motion report at the origin.
    """
    encoded = _ENCODED.get(token.kind)
    if encoded is not None:
        return encoded
    if token.kind == "char":
        if token.text == Key.esc:
            return b"\x1b"
        return token.text.encode("utf-8")
    if token.kind == "control":
        return bytes([ord(token.text) - 96])
    if token.kind == "mouse":
        return f"\x1b[<0;{token.col};{token.row}m".encode("ascii")
    if token.kind == "mouse_move":
        return b"\x1b[<32;1;1M"
    raise ValueError(f"token {token.kind!r} has no byte encoding")


def key_label(key: KeyId) -> str:
    """Return a short human label for a routing string, used in hints."""
    if key.startswith("C-") and len(key) == 3:
        return f"Ctrl+{key[2]}"
    if key == " ":
        return "Space"
    return key
