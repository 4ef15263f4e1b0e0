"""Exception hierarchy for pi-deck."""

from __future__ import annotations


class DeckError(Exception):
    """Base class for all pi-deck errors."""


class TerminalError(DeckError):
    """The process is not attached to an interactive terminal."""


class KeyConflictError(DeckError):
    """A page declares a key that is reserved or already claimed."""

    def __init__(self, page: str, keys: list[str]) -> None:
        self.page = page
        self.keys = keys
        super().__init__(f"page {page!r} handles reserved keys: {', '.join(keys)}")


class PageNotFoundError(DeckError, KeyError):
    """No page is registered under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"no page registered as {name!r}")

    def __str__(self) -> str:
        return self.args[0]
