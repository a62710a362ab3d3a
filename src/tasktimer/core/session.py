"""Session Controller — task selection, time entries and persistence around the stopwatch."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from pathlib import Path
from typing import Callable

from tasktimer.core.errors import (
    InvalidTaskError,
    NoActiveTaskError,
    StoreCorruptError,
    TaskNotFoundError,
)
from tasktimer.core.models import Task, TimeEntry, local_date, pick_color
from tasktimer.core.reports import (
    DailyReport,
    WeeklyReport,
    daily_reports,
    format_duration,
    weekly_report,
)
from tasktimer.core.stopwatch import (
    Scheduler,
    SessionResult,
    Stopwatch,
    StopwatchStatus,
    wall_clock_ms,
)
from tasktimer.core.store import Store

logger = logging.getLogger(__name__)


class SessionController:
    """Owns the stopwatch and turns its results into persisted time entries.

    State is written to ``<data_dir>/tracker.json`` after every mutation so
    that a run survives across terminal invocations.  Because the stopwatch
    stores timestamps rather than a tick count, a run restored in a later
    process reports the correct elapsed time.
    """

    def __init__(
        self,
        data_dir: Path | None = None,
        clock: Callable[[], int] | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._store = Store(data_dir)
        self._clock: Callable[[], int] = clock if clock is not None else wall_clock_ms
        self._scheduler = scheduler
        self._tasks: list[Task] = []
        self._entries: list[TimeEntry] = []
        self._active_task_id: str | None = None
        self.stopwatch = Stopwatch(clock=self._clock, scheduler=scheduler)
        self._load()

    # -- tasks ---------------------------------------------------------------

    def list_tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def active_task(self) -> Task | None:
        if self._active_task_id is None:
            return None
        return next((t for t in self._tasks if t.id == self._active_task_id), None)

    def add_task(self, name: str) -> Task:
        """Create a task with the first unused palette color."""
        name = self._clean_name(name)
        task = Task(
            id=f"task-{uuid.uuid4().hex[:8]}",
            name=name,
            color=pick_color([t.color for t in self._tasks]),
        )
        self._tasks.append(task)
        self._save()
        logger.debug("added task %s (%s)", task.id, task.name)
        return task

    def rename_task(self, task_id: str, name: str) -> str:
        task = self._find(task_id)
        task.name = self._clean_name(name)
        self._save()
        return f"Task renamed: {task.name}"

    def delete_task(self, task_id: str) -> str:
        """Delete a task, first recording any run that was active against it."""
        task = self._find(task_id)
        if task.id == self._active_task_id:
            self._finish_run()
            self._active_task_id = None
        self._tasks = [t for t in self._tasks if t.id != task.id]
        self._save()
        return f"Task removed: {task.name}"

    def select_task(self, task_id: str) -> str:
        """Make *task_id* the active task, recording any run in progress."""
        task = self._find(task_id)
        if self.stopwatch.status != StopwatchStatus.STOPPED:
            self._finish_run()
        self._active_task_id = task.id
        self._save()
        return f"Selected task: {task.name}"

    # -- stopwatch -----------------------------------------------------------

    def start(self) -> str:
        """Start or resume the stopwatch for the active task."""
        task = self.active_task
        if task is None:
            raise NoActiveTaskError("select a task before starting the timer")

        previous = self.stopwatch.status
        if previous == StopwatchStatus.RUNNING:
            return f"Timer already running for {task.name}"

        self.stopwatch.start()
        self._save()
        if previous == StopwatchStatus.PAUSED:
            return f"Timer resumed for {task.name} at {format_duration(self.stopwatch.display_seconds)}"
        return f"Timer started for {task.name}"

    def pause(self) -> str:
        if self.stopwatch.status != StopwatchStatus.RUNNING:
            return "Timer is not running"
        self.stopwatch.pause()
        self._save()
        return f"Timer paused at {format_duration(self.stopwatch.display_seconds)}"

    def stop(self) -> str:
        """Stop the stopwatch and record the run against the active task."""
        result = self.stopwatch.stop()
        if not result.was_running:
            return "Timer is not running"

        entry = self._record(result)
        self._save()
        if entry is None:
            return f"Timer stopped at {format_duration(result.duration_seconds)}; nothing recorded"
        return f"Recorded {format_duration(entry.duration_seconds)} for {entry.task_name}"

    def reset(self) -> str:
        self.stopwatch.reset()
        self._save()
        return "Timer reset"

    def status(self) -> tuple[str, int]:
        """Return ``(message, exit_code)``."""
        self.stopwatch.resync()
        task = self.active_task
        label = task.name if task is not None else "No task"
        elapsed = format_duration(self.stopwatch.display_seconds)

        if self.stopwatch.status == StopwatchStatus.RUNNING:
            return f"{label}: {elapsed}", 0
        if self.stopwatch.status == StopwatchStatus.PAUSED:
            return f"{label}: {elapsed} (paused)", 0
        if task is not None:
            return f"{label}: timer stopped", 1
        return "No active task", 1

    def is_stale(self) -> bool:
        """Return True when another process has changed the saved run.

        Compares the task selection and the timestamps that define the run;
        ``display_seconds`` is ignored since it is only a cached value.
        """
        data = self._store.load()
        try:
            saved = Stopwatch.restore(data.get("stopwatch", {}), clock=self._clock).snapshot()
        except (AttributeError, TypeError, ValueError) as exc:
            raise StoreCorruptError(f"cannot read {self._store.path}: bad record ({exc!r})") from exc

        current = self.stopwatch.snapshot()
        if data.get("active_task_id") != self._active_task_id:
            return True
        return any(saved[key] != current[key] for key in ("status", "started_at", "accumulated_pause"))

    # -- reports -------------------------------------------------------------

    def entries(self) -> list[TimeEntry]:
        return list(self._entries)

    def daily_reports(self) -> list[DailyReport]:
        return daily_reports(self._entries, self._tasks)

    def weekly_report(self, day: date | None = None) -> WeeklyReport:
        if day is None:
            day = date.fromisoformat(local_date(self._clock()))
        return weekly_report(self._entries, self._tasks, day)

    # -- private helpers -----------------------------------------------------

    @staticmethod
    def _clean_name(name: str) -> str:
        name = name.strip()
        if not name:
            raise InvalidTaskError("task name must not be empty")
        return name

    def _find(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(f"no task with id {task_id!r}")

    def _finish_run(self) -> None:
        result = self.stopwatch.stop()
        if result.was_running:
            self._record(result)

    def _record(self, result: SessionResult) -> TimeEntry | None:
        """Turn a stopwatch result into a time entry for the active task."""
        task = self.active_task
        if task is None or not result.was_running:
            return None

        started_at = result.started_at
        if started_at is None:
            started_at = result.ended_at - result.duration_seconds * 1000

        entry = TimeEntry(
            task_id=task.id,
            task_name=task.name,
            started_at=started_at,
            ended_at=result.ended_at,
            duration_seconds=result.duration_seconds,
            date=local_date(result.ended_at),
        )
        self._entries.append(entry)
        task.total_seconds += result.duration_seconds
        logger.info("recorded %ds for task %s", entry.duration_seconds, task.id)
        return entry

    # -- persistence ---------------------------------------------------------

    def _save(self) -> None:
        self._store.save(
            {
                "active_task_id": self._active_task_id,
                "tasks": [t.to_dict() for t in self._tasks],
                "entries": [e.to_dict() for e in self._entries],
                "stopwatch": self.stopwatch.snapshot(),
            }
        )

    def _load(self) -> None:
        data = self._store.load()
        if not data:
            return

        try:
            self._tasks = [Task.from_dict(t) for t in data.get("tasks", [])]
            self._entries = [TimeEntry.from_dict(e) for e in data.get("entries", [])]
            self._active_task_id = data.get("active_task_id")
            self.stopwatch = Stopwatch.restore(
                data.get("stopwatch", {}), clock=self._clock, scheduler=self._scheduler
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise StoreCorruptError(f"cannot read {self._store.path}: bad record ({exc!r})") from exc
