"""Virtual terminal for testing -- implements the Terminal protocol in-memory.

This module provides a ``VirtualTerminal`` class that satisfies the
``pi.deck.terminal.Terminal`` protocol without performing any real I/O.
Output is captured for assertions and input is scripted as byte chunks.
"""

from __future__ import annotations

import asyncio
from collections import deque

from pi.deck.decoder import ESCAPE_REPOLLS
from pi.deck.size import Size


class VirtualTerminal:
    """In-memory terminal that records all writes for test inspection.

    Parameters
    ----------
    rows:
        Number of terminal rows (height).
    columns:
        Number of terminal columns (width).
    """

    def __init__(self, rows: int = 24, columns: int = 80) -> None:
        self._rows = rows
        self._columns = columns
        self._buffer: list[str] = []
        self._input: deque[bytes] = deque()
        self._eof = False
        self._resized = False
        self._woken = False
        self.started = False
        self.stopped = False
        self.reads = 0

    # -- Terminal protocol: size --------------------------------------------

    @property
    def rows(self) -> int:
        return self._rows

    @rows.setter
    def rows(self, value: int) -> None:
        self._rows = value

    @property
    def columns(self) -> int:
        return self._columns

    @columns.setter
    def columns(self, value: int) -> None:
        self._columns = value

    def size(self) -> Size | None:
        return Size(self._rows, self._columns)

    def take_resize(self) -> bool:
        flag = self._resized
        self._resized = False
        return flag

    # -- Terminal protocol: lifecycle ---------------------------------------

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    # -- Terminal protocol: input -------------------------------------------

    async def read(self, timeout: float) -> bytes:
        """Hand out the next scripted chunk, one chunk per call."""
        self.reads += 1
        if self._input:
            return self._input.popleft()
        if self._eof:
            raise EOFError
        if timeout > 0 and not self._woken:
            # Yield so background tasks get a turn, without real waiting.
            await asyncio.sleep(0)
        self._woken = False
        return b""

    def wake(self) -> None:
        self._woken = True

    # -- Terminal protocol: output ------------------------------------------

    def write(self, data: str) -> None:
        """Append *data* to the internal buffer."""
        self._buffer.append(data)

    # -- Test helpers -------------------------------------------------------

    @property
    def output(self) -> str:
        """Return everything written to the terminal as a single string."""
        return "".join(self._buffer)

    @property
    def write_count(self) -> int:
        """Return the number of individual ``write`` calls made."""
        return len(self._buffer)

    def clear_buffer(self) -> None:
        """Discard all recorded output."""
        self._buffer.clear()

    def simulate_input(self, *chunks: bytes | str | None) -> None:
        """Queue input; each chunk is returned by a separate ``read``.

        ``None`` queues a read that returns nothing, as if the user paused.
        """
        for chunk in chunks:
            if chunk is None:
                chunk = b""
            elif isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            self._input.append(chunk)

    def press_esc(self) -> None:
        """Queue a bare Esc followed by enough silence for it to resolve."""
        self.simulate_input(b"\x1b", *([None] * ESCAPE_REPOLLS))

    def close_input(self) -> None:
        """End the input stream once queued chunks are consumed."""
        self._eof = True

    def simulate_resize(self, rows: int | None = None, columns: int | None = None) -> None:
        """Change terminal dimensions and raise the resize flag.

        If *rows* or *columns* is ``None`` the corresponding dimension
        is left unchanged.
        """
        if rows is not None:
            self._rows = rows
        if columns is not None:
            self._columns = columns
        self._resized = True
