"""Tests for pi.deck.notify."""

from __future__ import annotations

import threading

from pi.deck.notify import DebouncedNotifier


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestDebouncedNotifier:
    def test_nothing_requested(self) -> None:
        notifier = DebouncedNotifier(clock=FakeClock())
        assert not notifier.pending
        assert not notifier.should_refresh()

    def test_waits_for_debounce_window(self) -> None:
        clock = FakeClock()
        notifier = DebouncedNotifier(0.08, clock=clock)
        notifier.notify()
        assert notifier.pending
        assert not notifier.should_refresh()
        clock.advance(0.05)
        assert not notifier.should_refresh()
        clock.advance(0.05)
        assert notifier.should_refresh()

    def test_burst_yields_one_refresh(self) -> None:
        clock = FakeClock()
        notifier = DebouncedNotifier(0.08, clock=clock)
        for _ in range(20):
            notifier.notify()
            clock.advance(0.001)
        clock.advance(0.1)
        assert notifier.should_refresh()
        assert not notifier.should_refresh()
        assert not notifier.pending

    def test_new_request_restarts_window(self) -> None:
        clock = FakeClock()
        notifier = DebouncedNotifier(0.08, clock=clock)
        notifier.notify()
        clock.advance(0.07)
        notifier.notify()
        clock.advance(0.07)
        assert not notifier.should_refresh()
        clock.advance(0.02)
        assert notifier.should_refresh()

    def test_explicit_window(self) -> None:
        clock = FakeClock()
        notifier = DebouncedNotifier(1.0, clock=clock)
        notifier.notify()
        assert notifier.should_refresh(debounce=0)

    def test_reset(self) -> None:
        notifier = DebouncedNotifier(0, clock=FakeClock())
        notifier.notify()
        notifier.reset()
        assert not notifier.should_refresh()

    def test_waker_runs_on_notify(self) -> None:
        calls: list[int] = []
        notifier = DebouncedNotifier(clock=FakeClock())
        notifier.set_waker(lambda: calls.append(1))
        notifier.notify()
        notifier.notify()
        assert calls == [1, 1]
        notifier.set_waker(None)
        notifier.notify()
        assert calls == [1, 1]

    def test_notify_from_threads(self) -> None:
        clock = FakeClock()
        notifier = DebouncedNotifier(0.08, clock=clock)
        threads = [threading.Thread(target=notifier.notify) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        clock.advance(0.1)
        assert notifier.should_refresh()
        assert not notifier.should_refresh()
