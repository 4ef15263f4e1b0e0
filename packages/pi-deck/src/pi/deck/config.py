"""Runtime settings read from ``PI_DECK_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping


def _flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def _positive_int(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def _millis(env: Mapping[str, str], name: str, default: float) -> float:
    value = _positive_int(env, name)
    if value is None:
        return default
    return value / 1000.0


@dataclass
class DeckSettings:
    """Settings shared by the driver, renderer and terminal."""

    debug: bool = False
    log_file: str | None = None
    forced_rows: int | None = None
    forced_cols: int | None = None
    ascii_borders: bool = False
    debug_overlay: bool = False
    poll_interval: float = 0.03
    debounce: float = 0.08
    write_log: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> DeckSettings:
        env = os.environ if env is None else env
        return cls(
            debug=_flag(env, "PI_DECK_DEBUG"),
            log_file=env.get("PI_DECK_LOG_FILE") or None,
            forced_rows=_positive_int(env, "PI_DECK_ROWS"),
            forced_cols=_positive_int(env, "PI_DECK_COLS"),
            ascii_borders=_flag(env, "PI_DECK_ASCII_BORDERS"),
            debug_overlay=_flag(env, "PI_DECK_DEBUG_OVERLAY"),
            poll_interval=_millis(env, "PI_DECK_POLL_MS", 0.03),
            debounce=_millis(env, "PI_DECK_DEBOUNCE_MS", 0.08),
            write_log=env.get("PI_DECK_WRITE_LOG") or None,
        )
