"""Logging setup for the ``pi.deck`` logger.

The terminal is in raw mode while a deck runs, so nothing may reach
stderr.  Records go to a file when one is configured and are dropped
otherwise.  Failing to open the log file never stops the UI.
"""

from __future__ import annotations

import logging

from pi.deck.config import DeckSettings

_ROOT = "pi.deck"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: DeckSettings) -> logging.Logger:
    logger = logging.getLogger(_ROOT)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    handler: logging.Handler = logging.NullHandler()
    if settings.log_file:
        try:
            handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        except OSError:
            handler = logging.NullHandler()
        else:
            handler.setFormatter(logging.Formatter(_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    return logger
