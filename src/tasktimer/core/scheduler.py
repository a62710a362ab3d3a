"""Cooperative scheduler — cancellable periodic callbacks driven by a loop."""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicHandle:
    """A periodic callback registered with :class:`CooperativeScheduler`."""

    def __init__(self, interval: float, callback: Callable[[], None], due: float) -> None:
        self.interval = interval
        self.callback = callback
        self.due = due
        self.cancelled = False

    def cancel(self) -> None:
        """Disarm the callback.  Safe to call more than once."""
        self.cancelled = True


class CooperativeScheduler:
    """Single-threaded scheduler for periodic callbacks.

    Nothing runs on its own: the owner's loop calls :meth:`run_pending`.  A
    callback that is overdue by several intervals fires once, then is re-armed
    one interval from now.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._handles: list[PeriodicHandle] = []

    def call_every(self, interval: float, callback: Callable[[], None]) -> PeriodicHandle:
        """Register *callback* to run every *interval* seconds."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        handle = PeriodicHandle(interval, callback, self._clock() + interval)
        self._handles.append(handle)
        logger.debug("armed periodic callback every %.3fs", interval)
        return handle

    def run_pending(self) -> int:
        """Fire every due callback once and return how many fired."""
        self._handles = [h for h in self._handles if not h.cancelled]
        fired = 0
        for handle in list(self._handles):
            # an earlier callback in this pass may have cancelled this one
            if handle.cancelled:
                continue
            now = self._clock()
            if now < handle.due:
                continue
            handle.due = now + handle.interval
            handle.callback()
            fired += 1
        self._handles = [h for h in self._handles if not h.cancelled]
        return fired

    def next_delay(self) -> float | None:
        """Seconds until the earliest armed callback is due, or ``None``."""
        armed = [h.due for h in self._handles if not h.cancelled]
        if not armed:
            return None
        return max(0.0, min(armed) - self._clock())
