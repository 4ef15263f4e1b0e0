"""Terminal size detection.

Some size queries fail silently under piped stdio, SSH sessions or
containers, so ``SizeProbe`` walks an ordered chain of probes and keeps the
first positive answer.  When every probe fails the last known size is
reused; probing never raises.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Mapping

logger = logging.getLogger(__name__)

_STTY_A_RE = re.compile(r"rows\s+(\d+);\s*columns\s+(\d+)")
_STTY_A_BSD_RE = re.compile(r"(\d+)\s+rows;\s*(\d+)\s+columns")

CommandRunner = Callable[[list[str]], "str | None"]


@dataclass(frozen=True)
class Size:
    rows: int
    cols: int

    @property
    def is_narrow(self) -> bool:
        return self.cols < NARROW_COLS


NARROW_COLS = 80
DEFAULT_SIZE = Size(24, 80)


def run_command(argv: list[str]) -> str | None:
    """Run *argv* and return its stdout, or ``None`` on any failure."""
    try:
        proc = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=0.5,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout


def _direct_query() -> Size | None:
    for stream in (sys.stdout, sys.stdin):
        try:
            ts = os.get_terminal_size(stream.fileno())
        except (AttributeError, ValueError, OSError):
            continue
        return Size(ts.lines, ts.columns)
    return None


def _valid(rows: int | None, cols: int | None) -> Size | None:
    if rows is None or cols is None or rows <= 0 or cols <= 0:
        return None
    return Size(rows, cols)


def _to_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _parse_stty_size(output: str | None) -> Size | None:
    if not output:
        return None
    parts = output.split()
    if len(parts) != 2:
        return None
    return _valid(_to_int(parts[0]), _to_int(parts[1]))


class SizeProbe:
    """Resolve the terminal size through the fallback chain.

    *direct* replaces the in-process query, *runner* the subprocess
    launcher and *env* the process environment, which keeps the chain
    testable without a real terminal.
    """

    def __init__(
        self,
        *,
        direct: Callable[[], Size | None] | None = None,
        runner: CommandRunner | None = None,
        env: Mapping[str, str] | None = None,
        forced: Size | None = None,
        initial: Size = DEFAULT_SIZE,
    ) -> None:
        self._direct = direct or _direct_query
        self._runner = runner or run_command
        self._env = env
        self._forced = forced
        self.last: Size = initial
        self.source: str = "default"

    @property
    def env(self) -> Mapping[str, str]:
        return os.environ if self._env is None else self._env

    def probe(self) -> Size:
        """Return the current size; remembers it as the last known size."""
        for name, fn in self._chain():
            try:
                size = fn()
            except Exception:
                logger.debug("size probe %s raised", name, exc_info=True)
                size = None
            if size is not None:
                if name != self.source or size != self.last:
                    logger.debug("terminal size %dx%d via %s", size.cols, size.rows, name)
                self.last = size
                self.source = name
                return size
        self.source = "last-known"
        return self.last

    def _chain(self) -> list[tuple[str, Callable[[], Size | None]]]:
        return [
            ("direct", self._direct),
            ("override", self._override),
            ("stty-stdout", lambda: self._stty_size(["-F", "/proc/self/fd/1"])),
            ("stty-tty", lambda: self._stty_size(["-F", "/dev/tty"])),
            ("stty", lambda: self._stty_size([])),
            ("tput", self._tput),
            ("stty-a", self._stty_all),
            ("env", self._lines_columns),
        ]

    def _override(self) -> Size | None:
        if self._forced is not None:
            return _valid(self._forced.rows, self._forced.cols)
        env = self.env
        return _valid(_to_int(env.get("PI_DECK_ROWS")), _to_int(env.get("PI_DECK_COLS")))

    def _stty_size(self, extra: list[str]) -> Size | None:
        return _parse_stty_size(self._runner(["stty", "size", *extra]))

    def _tput(self) -> Size | None:
        return _valid(
            _to_int(self._runner(["tput", "lines"])),
            _to_int(self._runner(["tput", "cols"])),
        )

    def _stty_all(self) -> Size | None:
        output = self._runner(["stty", "-a"])
        if not output:
            return None
        match = _STTY_A_RE.search(output)
        if match:
            return _valid(int(match.group(1)), int(match.group(2)))
        match = _STTY_A_BSD_RE.search(output)
        if match:
            return _valid(int(match.group(1)), int(match.group(2)))
        return None

    def _lines_columns(self) -> Size | None:
        env = self.env
        return _valid(_to_int(env.get("LINES")), _to_int(env.get("COLUMNS")))
