"""Input decoder: raw terminal bytes to ``KeyToken`` values.

``decode_bytes`` is a pure state machine over a byte buffer.  It either
returns a token plus the number of bytes it consumed, or ``None`` when the
buffer holds the beginning of a sequence that more bytes could complete.
``InputDecoder`` drives it against an async byte source, re-polling a
bounded number of times for in-flight escape sequences and collapsing
buffered repeats of held navigation keys into a single token.
"""

from __future__ import annotations

import logging
from typing import Protocol

from pi.deck import keys
from pi.deck.keys import REPEATABLE_KINDS, KeyToken

logger = logging.getLogger(__name__)

ESC = 0x1B

# Extra reads allowed while an escape sequence is incomplete.
ESCAPE_REPOLLS = 5
MOUSE_REPOLLS = 20
REPOLL_TIMEOUT = 0.02

_ARROWS: dict[int, KeyToken] = {
    ord("A"): keys.UP,
    ord("B"): keys.DOWN,
    ord("C"): keys.RIGHT,
    ord("D"): keys.LEFT,
}

_SGR_BODY = frozenset(b"0123456789;")


# ---------------------------------------------------------------------------
# Byte source protocol
# ---------------------------------------------------------------------------


class ByteSource(Protocol):
    """Anything the decoder can pull raw input bytes from."""

    async def read(self, timeout: float) -> bytes:
        """Return available bytes, or ``b""`` if none arrive within *timeout*.

        Raises ``EOFError`` once the input stream has ended.
        """
        ...


# ---------------------------------------------------------------------------
# Pure decoding
# ---------------------------------------------------------------------------


def decode_bytes(buf: bytes, *, final: bool = False) -> tuple[KeyToken, int] | None:
    """Decode one token from the front of *buf*.

    Returns ``(token, consumed)``.  When *buf* starts with an incomplete
    sequence, returns ``None`` unless *final* is set, in which case the
    best-effort token for the bytes seen so far is returned.  Never raises.
    """
    if not buf:
        return None

    first = buf[0]
    if first == 0:
        return keys.REFRESH, 1
    if first in (10, 13):
        return keys.ENTER, 1
    if first == 9:
        return keys.TAB, 1
    if first == 127:
        return keys.BACKSPACE, 1
    if 1 <= first <= 26:
        return keys.control(chr(first + 96)), 1
    if first == ESC:
        return _decode_escape(buf, final)
    if first >= 0x80:
        return _decode_utf8(buf, final)
    return keys.char(chr(first)), 1


def _decode_escape(buf: bytes, final: bool) -> tuple[KeyToken, int] | None:
    if len(buf) == 1:
        return (keys.ESC, 1) if final else None

    second = buf[1]
    if second == ord("["):
        return _decode_csi(buf, final)
    if second == ord("O"):
        if len(buf) < 3:
            return (keys.char("O"), 2) if final else None
        third = buf[2]
        arrow = _ARROWS.get(third)
        if arrow is not None:
            return arrow, 3
        return keys.char(chr(third)), 3
    if second == ESC or second >= 0x80:
        return keys.ESC, 1
    return keys.char(chr(second)), 2


def _decode_csi(buf: bytes, final: bool) -> tuple[KeyToken, int] | None:
    if len(buf) < 3:
        return (keys.char("["), 2) if final else None

    third = buf[2]
    arrow = _ARROWS.get(third)
    if arrow is not None:
        return arrow, 3
    if third == ord("Z"):
        return keys.SHIFT_TAB, 3
    if third == ord("3"):
        if len(buf) < 4:
            return (keys.char("3"), 3) if final else None
        if buf[3] == ord("~"):
            return keys.DELETE, 4
        return keys.char("3"), 3
    if third == ord("<"):
        return _decode_sgr_mouse(buf, final)
    if third == ord("M"):
        if len(buf) < 6:
            return (keys.char("M"), 3) if final else None
        col = max(1, buf[4] - 32)
        row = max(1, buf[5] - 32)
        return keys.mouse(row, col, True), 6
    return keys.char(chr(third)), 3


def _decode_sgr_mouse(buf: bytes, final: bool) -> tuple[KeyToken, int] | None:
    # ESC [ < button ; col ; row (M | m)
    i = 3
    while i < len(buf) and buf[i] in _SGR_BODY:
        i += 1
    if i == len(buf):
        return (keys.ESC, len(buf)) if final else None

    terminator = buf[i]
    if terminator not in (ord("M"), ord("m")):
        logger.debug("malformed SGR mouse report: %r", bytes(buf[: i + 1]))
        return keys.ESC, i

    parts = bytes(buf[3:i]).split(b";")
    if len(parts) != 3 or not all(parts):
        logger.debug("malformed SGR mouse report: %r", bytes(buf[: i + 1]))
        return keys.ESC, i + 1

    col = int(parts[1])
    row = int(parts[2])
    if terminator == ord("M"):
        return keys.MOUSE_MOVE, i + 1
    return keys.mouse(row, col, True), i + 1


def _decode_utf8(buf: bytes, final: bool) -> tuple[KeyToken, int] | None:
    lead = buf[0]
    if 0xC0 <= lead <= 0xDF:
        need = 2
    elif 0xE0 <= lead <= 0xEF:
        need = 3
    elif 0xF0 <= lead <= 0xF7:
        need = 4
    else:
        return keys.char("\ufffd"), 1

    if len(buf) < need:
        if not final:
            return None
        need = len(buf)

    text = bytes(buf[:need]).decode("utf-8", errors="replace")
    if len(text) != 1:
        return keys.char("\ufffd"), 1
    return keys.char(text), need


def _repoll_budget(buf: bytes) -> int:
    if buf[:3] == b"\x1b[<" or buf[:3] == b"\x1b[M":
        return MOUSE_REPOLLS
    return ESCAPE_REPOLLS


# ---------------------------------------------------------------------------
# InputDecoder
# ---------------------------------------------------------------------------


class InputDecoder:
    """Pull-based decoder producing exactly one token per ``next_token`` call.

    Holds the pending-byte buffer between calls, so bytes that arrive in one
    read but belong to several keys are handed out one key at a time.
    """

    def __init__(self, source: ByteSource, *, repoll_timeout: float = REPOLL_TIMEOUT) -> None:
        self._source = source
        self._repoll_timeout = repoll_timeout
        self._pending = bytearray()
        self._eof = False

    @property
    def pending(self) -> bytes:
        """Bytes read from the source but not yet decoded."""
        return bytes(self._pending)

    def feed(self, data: bytes) -> None:
        """Append *data* to the pending buffer without reading the source."""
        self._pending.extend(data)

    async def next_token(self, timeout: float) -> KeyToken:
        """Wait up to *timeout* seconds and return the next token.

        Returns ``Refresh`` when nothing arrives in time and ``Quit`` once the
        source is exhausted and every pending byte has been decoded.
        """
        if not self._pending:
            if self._eof:
                return keys.QUIT
            if not await self._fill(timeout):
                return keys.QUIT if self._eof else keys.REFRESH

        token = await self._decode_one()
        if token.kind in REPEATABLE_KINDS:
            await self._drain_matching(token)
        return token

    async def _fill(self, timeout: float) -> bool:
        """Read once from the source; return ``True`` if any bytes arrived."""
        if self._eof:
            return False
        try:
            data = await self._source.read(timeout)
        except EOFError:
            logger.debug("input source reached end of stream")
            self._eof = True
            return False
        if data:
            self._pending.extend(data)
            return True
        return False

    async def _decode_one(self) -> KeyToken:
        repolls = 0
        while True:
            final = self._eof or repolls >= _repoll_budget(self._pending)
            result = decode_bytes(bytes(self._pending), final=final)
            if result is not None:
                token, consumed = result
                del self._pending[:consumed]
                return token
            repolls += 1
            await self._fill(self._repoll_timeout)

    async def _drain_matching(self, token: KeyToken) -> None:
        """Consume buffered repeats of *token* without waiting for new input."""
        drained = 0
        while True:
            if not self._pending and not await self._fill(0):
                break
            result = decode_bytes(bytes(self._pending), final=False)
            if result is None or result[0] != token:
                break
            del self._pending[: result[1]]
            drained += 1
        if drained:
            logger.debug("coalesced %d repeats of %s", drained, token.key)
