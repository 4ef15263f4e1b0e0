"""Named pages available to an ``App``.

Pages may not claim the driver's global keys; registration fails loudly
when they do.  Keys shared between pages are legal but can be listed with
``conflict_report`` to catch surprises.
"""

from __future__ import annotations

import logging
from typing import Callable

from pi.deck.errors import KeyConflictError, PageNotFoundError
from pi.deck.keys import GLOBAL_KEYS, key_label
from pi.deck.page import Page

logger = logging.getLogger(__name__)


def validate_page_keys(name: str, page: Page) -> None:
    conflicts = [k for k in page.handled_keys() if k in GLOBAL_KEYS]
    if conflicts:
        raise KeyConflictError(name, [key_label(k) for k in conflicts])


class PageRegistry:
    def __init__(self) -> None:
        self._pages: dict[str, Page] = {}
        self._lazy: dict[str, Callable[[], Page]] = {}

    def register(self, name: str, page: Page) -> None:
        """Add or replace *page* under *name*."""
        validate_page_keys(name, page)
        self._pages[name] = page

    def register_once(self, name: str, page: Page) -> bool:
        """Add *page* unless *name* is taken; return whether it was added."""
        if name in self._pages:
            return False
        validate_page_keys(name, page)
        self._pages[name] = page
        return True

    def register_lazy(self, name: str, loader: Callable[[], Page]) -> None:
        """Build the page with *loader* the first time *name* is looked up."""
        self._lazy[name] = loader

    def override(self, name: str, page: Page) -> None:
        """Replace a page without key validation; meant for tests."""
        self._pages[name] = page

    def unregister(self, name: str) -> None:
        self._pages.pop(name, None)
        self._lazy.pop(name, None)

    def exists(self, name: str) -> bool:
        return name in self._pages or name in self._lazy

    def find(self, name: str) -> Page | None:
        page = self._pages.get(name)
        if page is not None:
            return page
        loader = self._lazy.pop(name, None)
        if loader is None:
            return None
        page = loader()
        validate_page_keys(name, page)
        self._pages[name] = page
        logger.debug("loaded lazy page %r", name)
        return page

    def get(self, name: str) -> Page:
        page = self.find(name)
        if page is None:
            raise PageNotFoundError(name)
        return page

    def names(self) -> list[str]:
        return sorted(self._pages)

    def check_all_conflicts(self) -> list[tuple[str, list[str]]]:
        """Keys handled by more than one registered page, sorted by key."""
        owners: dict[str, list[str]] = {}
        for name in self.names():
            for key in self._pages[name].handled_keys():
                owners.setdefault(key, []).append(name)
        return sorted((k, sorted(v)) for k, v in owners.items() if len(v) > 1)

    def conflict_report(self) -> str | None:
        conflicts = self.check_all_conflicts()
        if not conflicts:
            return None
        lines = [f"  Key '{key}' handled by: {', '.join(pages)}" for key, pages in conflicts]
        return "Key conflicts detected:\n" + "\n".join(lines)
