"""Terminal abstraction for the deck driver.

Provides a ``Terminal`` protocol and ``ProcessTerminal``, which owns the
real tty: cbreak mode, the alternate screen, mouse tracking, resize
signals and a guaranteed cleanup on every exit path (normal return,
uncaught error, termination signal or interpreter exit).
"""

from __future__ import annotations

import asyncio
import atexit
import logging
import os
import signal
import sys
import termios
import threading
import tty
from typing import Any, Protocol

from pi.deck.errors import TerminalError
from pi.deck.size import Size

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

MOUSE_ENABLE = "\x1b[?1000h\x1b[?1006h"
MOUSE_DISABLE = "\x1b[?1006l\x1b[?1015l\x1b[?1005l\x1b[?1003l\x1b[?1002l\x1b[?1000l"

_ALT_SCREEN_ENTER = "\x1b[?1049h"
_ALT_SCREEN_LEAVE = "\x1b[?1049l"
_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_RESET_STYLE = "\x1b[0m"
_CLEAR_SCREEN = "\x1b[2J\x1b[H"

EXIT_SIGNALED = 130

_TERMINATION_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGHUP", "SIGQUIT")
    if hasattr(signal, name)
)


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """What the driver needs from a terminal."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    async def read(self, timeout: float) -> bytes: ...

    def wake(self) -> None: ...

    def write(self, data: str) -> None: ...

    def size(self) -> Size | None: ...

    def take_resize(self) -> bool: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Concrete terminal backed by the process's stdin and stdout.

    ``start`` refuses to run unless stdin is a tty, and does so before any
    terminal mode is touched.
    """

    def __init__(self, *, write_log: str | None = None) -> None:
        self._fd: int = -1
        self._original_termios: list[Any] | None = None
        self._prev_handlers: dict[int, Any] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._reader_active = False
        self._buffer = bytearray()
        self._ready: asyncio.Event | None = None
        self._eof = False
        self._resized = threading.Event()
        self._started = False
        self._write_log_path = write_log if write_log is not None else os.environ.get("PI_DECK_WRITE_LOG", "")

    # -- start / stop -------------------------------------------------------

    def start(self) -> None:
        """Enter cbreak mode, enable mouse tracking and begin reading stdin."""
        try:
            fd = sys.stdin.fileno()
            interactive = os.isatty(fd)
        except (AttributeError, ValueError, OSError):
            interactive = False
        if not interactive:
            raise TerminalError("interactive TUI requires a terminal on stdin")

        self._fd = fd
        self._original_termios = termios.tcgetattr(fd)
        self._started = True
        atexit.register(self.stop)

        tty.setcbreak(fd)
        self._raw_write(_ALT_SCREEN_ENTER + _HIDE_CURSOR + MOUSE_ENABLE)

        self._install_signal_handlers()
        self._start_reader()
        logger.debug("terminal started on fd %d", fd)

    def stop(self) -> None:
        """Restore the terminal.  Safe to call more than once."""
        if not self._started:
            return
        self._started = False

        self._remove_reader()
        self._restore_signal_handlers()
        self._raw_write(_CLEAR_SCREEN + _RESET_STYLE + _SHOW_CURSOR + _ALT_SCREEN_LEAVE)

        if self._original_termios is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._original_termios)
            except termios.error:
                pass
            self._original_termios = None

        # Mouse tracking goes last, once the terminal is back in normal mode.
        self._raw_write(MOUSE_DISABLE)
        atexit.unregister(self.stop)
        logger.debug("terminal restored")

    # -- input --------------------------------------------------------------

    async def read(self, timeout: float) -> bytes:
        """Return buffered input, waiting up to *timeout* seconds for some.

        Returns ``b""`` on timeout or after ``wake``; raises ``EOFError``
        once stdin is closed and drained.
        """
        if not self._buffer and not self._eof and timeout > 0:
            ready = self._ensure_event()
            ready.clear()
            try:
                await asyncio.wait_for(ready.wait(), timeout)
            except asyncio.TimeoutError:
                pass
        if self._buffer:
            data = bytes(self._buffer)
            self._buffer.clear()
            return data
        if self._eof:
            raise EOFError
        return b""

    def wake(self) -> None:
        """Cut a pending ``read`` short.  Callable from any thread."""
        loop = self._loop
        ready = self._ready
        if loop is None or ready is None:
            return
        try:
            loop.call_soon_threadsafe(ready.set)
        except RuntimeError:
            pass

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write data to stdout and optionally to the write log."""
        self._raw_write(data)

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a") as f:
                    f.write(data)
            except OSError:
                pass

    # -- size ---------------------------------------------------------------

    def size(self) -> Size | None:
        try:
            ts = os.get_terminal_size(sys.stdout.fileno())
        except (AttributeError, ValueError, OSError):
            return None
        return Size(ts.lines, ts.columns)

    def take_resize(self) -> bool:
        """Return and clear the flag set by SIGWINCH."""
        if self._resized.is_set():
            self._resized.clear()
            return True
        return False

    # -- private: stdin reading --------------------------------------------

    def _ensure_event(self) -> asyncio.Event:
        if self._ready is None:
            self._ready = asyncio.Event()
        return self._ready

    def _running_loop(self) -> asyncio.AbstractEventLoop | None:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _start_reader(self) -> None:
        loop = self._running_loop()
        if loop is None:
            # No running event loop -- reads will only see wake-ups.
            return
        self._loop = loop
        self._ensure_event()
        loop.add_reader(self._fd, self._on_stdin_readable)
        self._reader_active = True

    def _remove_reader(self) -> None:
        if not self._reader_active or self._loop is None:
            return
        try:
            self._loop.remove_reader(self._fd)
        except (RuntimeError, ValueError):
            pass
        self._reader_active = False

    def _on_stdin_readable(self) -> None:
        try:
            raw = os.read(self._fd, 4096)
        except OSError:
            return
        if not raw:
            self._eof = True
            self._remove_reader()
        else:
            self._buffer.extend(raw)
        if self._ready is not None:
            self._ready.set()

    # -- private: signals --------------------------------------------------

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        self._prev_handlers[signal.SIGWINCH] = signal.signal(signal.SIGWINCH, self._on_sigwinch)
        for signum in _TERMINATION_SIGNALS:
            self._prev_handlers[signum] = signal.signal(signum, self._on_terminate)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._prev_handlers.items():
            try:
                signal.signal(signum, handler)
            except (TypeError, ValueError):
                pass
        self._prev_handlers.clear()

    def _on_sigwinch(self, signum: int, frame: object) -> None:
        self._resized.set()
        self.wake()

    def _on_terminate(self, signum: int, frame: object) -> None:
        try:
            self.stop()
        except Exception:
            pass
        raise SystemExit(EXIT_SIGNALED)

    # -- private: raw write ------------------------------------------------

    def _raw_write(self, data: str) -> None:
        """Write directly to stdout, bypassing buffering."""
        try:
            sys.stdout.write(data)
            sys.stdout.flush()
        except (OSError, ValueError):
            pass
