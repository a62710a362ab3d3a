"""Stopwatch core — a timestamp-driven elapsed-time state machine."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

_MS_PER_SECOND = 1000


class StopwatchStatus(Enum):
    """Possible states of the stopwatch."""

    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a ``stop()`` call.

    Callers must check ``was_running`` before persisting: stopping an already
    stopped stopwatch still returns a result.
    """

    started_at: int | None
    ended_at: int
    duration_seconds: int
    was_running: bool


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_every(self, interval: float, callback: Callable[[], None]) -> Cancellable: ...


Listener = Callable[[int, StopwatchStatus], None]


def wall_clock_ms() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * _MS_PER_SECOND)


class Stopwatch:
    """A stopwatch that derives elapsed time from timestamps.

    Elapsed seconds are recomputed from ``started_at`` and the accumulated
    pause on every tick and on every foreground-resume signal, so ticks that
    never fired (a suspended process) cannot make the display drift.

    Invalid transitions are no-ops rather than errors: ``pause()`` while not
    running, ``start()`` while running, and ``stop()`` while stopped.
    """

    def __init__(
        self,
        clock: Callable[[], int] | None = None,
        scheduler: Scheduler | None = None,
        tick_interval: float = 1.0,
    ) -> None:
        self._clock: Callable[[], int] = clock if clock is not None else wall_clock_ms
        self._scheduler = scheduler
        self._tick_interval = tick_interval
        self._tick_handle: Cancellable | None = None
        self._listeners: list[Listener] = []

        self._status: StopwatchStatus = StopwatchStatus.STOPPED
        self._started_at: int | None = None
        self._accumulated_pause: int = 0
        self._display_seconds: int = 0

    # -- read accessors ------------------------------------------------------

    @property
    def status(self) -> StopwatchStatus:
        return self._status

    @property
    def display_seconds(self) -> int:
        return self._display_seconds

    @property
    def started_at(self) -> int | None:
        return self._started_at

    @property
    def accumulated_pause(self) -> int:
        return self._accumulated_pause

    # -- public interface ----------------------------------------------------

    def start(self) -> None:
        """Start from STOPPED, or resume from PAUSED.  No-op while RUNNING."""
        if self._status == StopwatchStatus.RUNNING:
            return

        now = self._clock()
        if self._status == StopwatchStatus.STOPPED:
            self._started_at = now
            self._accumulated_pause = 0
            self._display_seconds = 0
            logger.debug("stopwatch started at %d", now)
        else:
            self._accumulated_pause += self._pause_interval(now)
            logger.debug(
                "stopwatch resumed at %d (accumulated pause %ds)", now, self._accumulated_pause
            )

        self._status = StopwatchStatus.RUNNING
        self._display_seconds = self.elapsed(now)
        self._arm_tick()
        self._notify()

    def pause(self) -> None:
        """Freeze the display.  Valid only while RUNNING; otherwise a no-op."""
        if self._status != StopwatchStatus.RUNNING:
            return

        self._disarm_tick()
        self._display_seconds = self.elapsed(self._clock())
        self._status = StopwatchStatus.PAUSED
        logger.debug("stopwatch paused at %ds", self._display_seconds)
        self._notify()

    def stop(self) -> SessionResult:
        """Stop the stopwatch and return the measured run."""
        now = self._clock()
        if self._status == StopwatchStatus.STOPPED:
            return SessionResult(
                started_at=None,
                ended_at=now,
                duration_seconds=self._display_seconds,
                was_running=False,
            )

        self._disarm_tick()
        if self._status == StopwatchStatus.RUNNING:
            self._display_seconds = self.elapsed(now)

        result = SessionResult(
            started_at=self._started_at,
            ended_at=now,
            duration_seconds=self._display_seconds,
            was_running=True,
        )
        self._clear()
        logger.debug("stopwatch stopped after %ds", result.duration_seconds)
        self._notify()
        return result

    def reset(self) -> None:
        """Force the stopwatch back to STOPPED, discarding the current run."""
        self._disarm_tick()
        self._clear()
        logger.debug("stopwatch reset")
        self._notify()

    def elapsed(self, now: int) -> int:
        """Return whole seconds of running time at *now*, never negative."""
        if self._started_at is None:
            return 0
        wall_seconds = (now - self._started_at) // _MS_PER_SECOND
        return max(0, wall_seconds - self._accumulated_pause)

    def tick(self) -> None:
        """Periodic callback: recompute the display from timestamps."""
        if self._status != StopwatchStatus.RUNNING:
            return
        self._recompute()

    def resync(self) -> None:
        """Foreground-resume signal: recompute the display immediately.

        Has the same effect as a tick but does not touch the periodic
        schedule.
        """
        if self._status != StopwatchStatus.RUNNING:
            return
        logger.debug("stopwatch resync requested")
        self._recompute()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with ``(display_seconds, status)`` on every change.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- persistence ---------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Return the stopwatch state as a JSON-serialisable dict."""
        return {
            "status": self._status.value,
            "started_at": self._started_at,
            "accumulated_pause": self._accumulated_pause,
            "display_seconds": self._display_seconds,
        }

    @classmethod
    def restore(
        cls,
        data: dict[str, Any],
        clock: Callable[[], int] | None = None,
        scheduler: Scheduler | None = None,
        tick_interval: float = 1.0,
    ) -> Stopwatch:
        """Rebuild a stopwatch from :meth:`snapshot` output.

        A RUNNING stopwatch re-arms its tick; the display catches up on the
        next recomputation because it is derived from ``started_at``.
        """
        stopwatch = cls(clock=clock, scheduler=scheduler, tick_interval=tick_interval)
        status = StopwatchStatus(data.get("status", StopwatchStatus.STOPPED.value))
        started_at = data.get("started_at")

        if status == StopwatchStatus.STOPPED or started_at is None:
            return stopwatch

        stopwatch._status = status
        stopwatch._started_at = int(started_at)
        stopwatch._accumulated_pause = max(0, int(data.get("accumulated_pause", 0)))
        stopwatch._display_seconds = max(0, int(data.get("display_seconds", 0)))
        if status == StopwatchStatus.RUNNING:
            stopwatch._arm_tick()
        return stopwatch

    # -- private helpers -----------------------------------------------------

    def _pause_interval(self, now: int) -> int:
        """Seconds of pause incurred since the last ``pause()``, clamped to >= 0."""
        if self._started_at is None:
            return 0
        wall_seconds = (now - self._started_at) // _MS_PER_SECOND
        return max(0, wall_seconds - self._display_seconds - self._accumulated_pause)

    def _recompute(self) -> None:
        value = self.elapsed(self._clock())
        if value != self._display_seconds:
            self._display_seconds = value
            self._notify()

    def _clear(self) -> None:
        self._status = StopwatchStatus.STOPPED
        self._started_at = None
        self._accumulated_pause = 0
        self._display_seconds = 0

    def _arm_tick(self) -> None:
        self._disarm_tick()
        if self._scheduler is not None:
            self._tick_handle = self._scheduler.call_every(self._tick_interval, self.tick)

    def _disarm_tick(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._display_seconds, self._status)
