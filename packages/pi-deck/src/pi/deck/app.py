"""Run registered pages one after another.

``App`` owns page selection: each ``Driver`` run ends with an ``Outcome``
and the app decides what to mount next.  ``__BACK__`` returns to the
previous page; going back from the first page ends the app.
"""

from __future__ import annotations

import asyncio
import logging

from pi.deck.config import DeckSettings
from pi.deck.decoder import InputDecoder
from pi.deck.driver import Driver, Outcome, default_size_probe
from pi.deck.log import configure_logging
from pi.deck.registry import PageRegistry
from pi.deck.render import Renderer
from pi.deck.services import Services
from pi.deck.terminal import ProcessTerminal, Terminal

logger = logging.getLogger(__name__)


class App:
    def __init__(
        self,
        registry: PageRegistry,
        terminal: Terminal | None = None,
        *,
        settings: DeckSettings | None = None,
        services: Services | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or DeckSettings.from_env()
        self.terminal = terminal or ProcessTerminal(write_log=self.settings.write_log)
        self.services = services or Services()
        self.services.notifier.debounce = self.settings.debounce
        self.history: list[str] = []
        # Shared by every page so a switch keeps typed-ahead input, the last
        # known size and the previous frame.
        self.renderer = Renderer(self.terminal)
        self.decoder = InputDecoder(self.terminal)
        self.size_probe = default_size_probe(self.terminal, self.settings)

    def driver_for(self, name: str) -> Driver:
        return Driver(
            self.registry.get(name),
            self.terminal,
            title=name,
            services=self.services,
            settings=self.settings,
            size_probe=self.size_probe,
            renderer=self.renderer,
            decoder=self.decoder,
        )

    async def run(self, start: str) -> Outcome:
        """Run pages starting at *start* until one quits.

        The terminal is started once and stopped on every exit path.
        """
        report = self.registry.conflict_report()
        if report:
            logger.info(report)

        current = start
        self.terminal.start()
        try:
            while True:
                outcome = await self.driver_for(current).run()
                if outcome.kind == "quit":
                    return outcome
                if outcome.is_back:
                    if not self.history:
                        return Outcome.quit()
                    current = self.history.pop()
                    continue
                self.history.append(current)
                current = outcome.target
        finally:
            self.services.cancel_timers()
            self.services.modals.clear()
            self.terminal.stop()


def run(registry: PageRegistry, start: str, settings: DeckSettings | None = None) -> Outcome:
    """Configure logging from *settings* and run the app on a fresh event loop."""
    settings = settings or DeckSettings.from_env()
    configure_logging(settings)
    return asyncio.run(App(registry, settings=settings).run(start))
