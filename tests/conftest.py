"""Deterministic clock and scheduler doubles shared by the test suite."""

from __future__ import annotations

from typing import Callable

import pytest


class FakeClock:
    """Wall clock in milliseconds that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = start_ms
        self.origin = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def at(self, seconds: float) -> None:
        """Jump to *seconds* after the clock's origin."""
        self.now_ms = self.origin + int(seconds * 1000)


class FakeHandle:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Records armed callbacks; ``fire()`` runs the live ones on demand."""

    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []

    def call_every(self, interval: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(callback)
        self.handles.append(handle)
        return handle

    @property
    def armed(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def fire(self) -> int:
        live = self.armed
        for handle in live:
            if not handle.cancelled:
                handle.callback()
        return len(live)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()
