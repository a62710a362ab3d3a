"""Comprehensive tests for the Session Controller."""

import json
from datetime import date
from pathlib import Path

import pytest
from conftest import FakeClock, FakeScheduler

from tasktimer.core.errors import (
    InvalidTaskError,
    NoActiveTaskError,
    StoreCorruptError,
    TaskNotFoundError,
)
from tasktimer.core.models import PALETTE, local_date
from tasktimer.core.session import SessionController
from tasktimer.core.stopwatch import StopwatchStatus

# ---------------------------------------------------------------------------
# Helper: read the persisted JSON state file
# ---------------------------------------------------------------------------


def _read_state(data_dir: Path) -> dict:
    """Read and return the tracker.json content as a dict."""
    return json.loads((data_dir / "tracker.json").read_text())


def _controller_with_task(tmp_path: Path, clock: FakeClock) -> tuple[SessionController, str]:
    controller = SessionController(data_dir=tmp_path, clock=clock)
    task = controller.add_task("Write docs")
    controller.select_task(task.id)
    return controller, task.id


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TestTasks:
    """Task creation, renaming, deletion and selection."""

    def test_add_task_assigns_palette_colors(self, tmp_path: Path, clock: FakeClock) -> None:
        controller = SessionController(data_dir=tmp_path, clock=clock)
        first = controller.add_task("  Write  ")
        second = controller.add_task("Review")
        assert first.name == "Write"
        assert first.color == PALETTE[0]
        assert second.color == PALETTE[1]
        assert first.id != second.id

    def test_palette_wraps_when_exhausted(self, tmp_path: Path, clock: FakeClock) -> None:
        controller = SessionController(data_dir=tmp_path, clock=clock)
        for i in range(len(PALETTE)):
            controller.add_task(f"task {i}")
        assert controller.add_task("extra").color == PALETTE[0]

    def test_blank_name_rejected(self, tmp_path: Path, clock: FakeClock) -> None:
        controller = SessionController(data_dir=tmp_path, clock=clock)
        with pytest.raises(InvalidTaskError):
            controller.add_task("   ")

    def test_rename_task(self, tmp_path: Path, clock: FakeClock) -> None:
        controller = SessionController(data_dir=tmp_path, clock=clock)
        task = controller.add_task("Write")
        assert controller.rename_task(task.id, "Edit") == "Task renamed: Edit"
        assert controller.list_tasks()[0].name == "Edit"

    def test_unknown_task_raises(self, tmp_path: Path, clock: FakeClock) -> None:
        controller = SessionController(data_dir=tmp_path, clock=clock)
        with pytest.raises(TaskNotFoundError):
            controller.select_task("task-missing")
        with pytest.raises(TaskNotFoundError):
            controller.delete_task("task-missing")
        with pytest.raises(TaskNotFoundError):
            controller.rename_task("task-missing", "x")

    def test_select_records_running_task(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, first_id = _controller_with_task(tmp_path, clock)
        second = controller.add_task("Review")
        controller.start()
        clock.at(90)

        assert controller.select_task(second.id) == "Selected task: Review"
        assert controller.stopwatch.status == StopwatchStatus.STOPPED
        [entry] = controller.entries()
        assert entry.task_id == first_id
        assert entry.duration_seconds == 90
        assert controller.active_task.id == second.id

    def test_delete_active_task_records_and_clears(
        self, tmp_path: Path, clock: FakeClock
    ) -> None:
        controller, task_id = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(20)

        assert controller.delete_task(task_id) == "Task removed: Write docs"
        assert controller.active_task is None
        assert controller.list_tasks() == []
        assert [e.duration_seconds for e in controller.entries()] == [20]


# ---------------------------------------------------------------------------
# start() / pause() / stop() / reset()
# ---------------------------------------------------------------------------


class TestTimerCommands:
    """The controller drives the stopwatch for the active task."""

    def test_start_without_task_raises(self, tmp_path: Path, clock: FakeClock) -> None:
        controller = SessionController(data_dir=tmp_path, clock=clock)
        with pytest.raises(NoActiveTaskError):
            controller.start()

    def test_start_messages(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        assert controller.start() == "Timer started for Write docs"
        assert controller.start() == "Timer already running for Write docs"

    def test_pause_and_resume_messages(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(65)
        assert controller.pause() == "Timer paused at 00:01:05"
        assert controller.pause() == "Timer is not running"
        clock.at(100)
        assert controller.start() == "Timer resumed for Write docs at 00:01:05"

    def test_stop_records_entry(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, task_id = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(5)
        controller.pause()
        clock.at(8)
        controller.start()
        clock.at(13)

        assert controller.stop() == "Recorded 00:00:10 for Write docs"
        [entry] = controller.entries()
        assert entry.task_id == task_id
        assert entry.started_at == clock.origin
        assert entry.ended_at == clock.origin + 13_000
        assert entry.duration_seconds == 10
        assert entry.date == local_date(clock.origin + 13_000)
        assert controller.list_tasks()[0].total_seconds == 10

    def test_stop_when_stopped_changes_nothing(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        before = _read_state(tmp_path)

        assert controller.stop() == "Timer is not running"
        assert controller.entries() == []
        assert _read_state(tmp_path) == before

    def test_reset_discards_run(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(30)
        assert controller.reset() == "Timer reset"
        assert controller.entries() == []
        assert controller.stopwatch.status == StopwatchStatus.STOPPED

    def test_start_arms_scheduler(self, tmp_path: Path, clock: FakeClock) -> None:
        scheduler = FakeScheduler()
        controller = SessionController(data_dir=tmp_path, clock=clock, scheduler=scheduler)
        task = controller.add_task("Write")
        controller.select_task(task.id)
        controller.start()
        assert len(scheduler.armed) == 1


# ---------------------------------------------------------------------------
# status()
# ---------------------------------------------------------------------------


class TestStatus:
    """status() returns (message, exit_code)."""

    def test_no_task(self, tmp_path: Path, clock: FakeClock) -> None:
        controller = SessionController(data_dir=tmp_path, clock=clock)
        assert controller.status() == ("No active task", 1)

    def test_stopped_with_task(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        assert controller.status() == ("Write docs: timer stopped", 1)

    def test_running_recomputes_elapsed(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(3_725)
        assert controller.status() == ("Write docs: 01:02:05", 0)

    def test_paused(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(7)
        controller.pause()
        clock.at(500)
        assert controller.status() == ("Write docs: 00:00:07 (paused)", 0)


# ---------------------------------------------------------------------------
# Persistence across processes
# ---------------------------------------------------------------------------


class TestPersistence:
    """State written by one controller is restored by the next."""

    def test_start_persists_stopwatch(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, task_id = _controller_with_task(tmp_path, clock)
        controller.start()

        state = _read_state(tmp_path)
        assert state["active_task_id"] == task_id
        assert state["stopwatch"] == {
            "status": "running",
            "started_at": clock.origin,
            "accumulated_pause": 0,
            "display_seconds": 0,
        }

    def test_running_run_survives_restart(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()

        clock.at(45)
        reloaded = SessionController(data_dir=tmp_path, clock=clock)
        assert reloaded.status() == ("Write docs: 00:00:45", 0)
        assert reloaded.stop() == "Recorded 00:00:45 for Write docs"

        again = SessionController(data_dir=tmp_path, clock=clock)
        assert [e.duration_seconds for e in again.entries()] == [45]
        assert again.list_tasks()[0].total_seconds == 45

    def test_paused_run_survives_restart(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(10)
        controller.pause()

        clock.at(15)
        reloaded = SessionController(data_dir=tmp_path, clock=clock)
        reloaded.start()
        clock.at(20)
        assert reloaded.status() == ("Write docs: 00:00:15", 0)

    def test_no_state_file(self, tmp_path: Path, clock: FakeClock) -> None:
        controller = SessionController(data_dir=tmp_path, clock=clock)
        assert controller.list_tasks() == []
        assert not (tmp_path / "tracker.json").exists()

    @pytest.mark.parametrize(
        "state",
        [
            {"stopwatch": {"status": "ticking", "started_at": 1}},
            {"entries": [{"task_name": "Write", "started_at": 0}]},
            {"tasks": [{"name": "no id"}]},
            {"tasks": "not a list"},
            {"stopwatch": {"status": "running", "started_at": "soon"}},
            {"stopwatch": ["running"]},
        ],
        ids=["unknown-status", "entry-missing-task-id", "task-missing-id", "tasks-not-list", "bad-start", "stopwatch-not-object"],
    )
    def test_malformed_records_raise_store_error(
        self, state: dict, tmp_path: Path, clock: FakeClock
    ) -> None:
        (tmp_path / "tracker.json").write_text(json.dumps(state))
        with pytest.raises(StoreCorruptError):
            SessionController(data_dir=tmp_path, clock=clock)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class TestReports:
    def test_daily_and_weekly(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(120)
        controller.stop()

        [daily] = controller.daily_reports()
        assert daily.total_seconds == 120
        assert daily.tasks[0].task_name == "Write docs"

        week = controller.weekly_report()
        assert week.total_seconds == 120
        assert week.start <= daily.date <= week.end

    def test_weekly_for_other_week_is_empty(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(60)
        controller.stop()
        assert controller.weekly_report(date(2001, 1, 1)).days == []


# ---------------------------------------------------------------------------
# is_stale() — changes made by another invocation
# ---------------------------------------------------------------------------


class TestIsStale:
    """is_stale() detects a run changed through another controller."""

    def test_not_stale_while_only_time_passes(self, tmp_path: Path, clock: FakeClock) -> None:
        controller, _ = _controller_with_task(tmp_path, clock)
        controller.start()
        clock.at(40)
        controller.status()
        assert controller.is_stale() is False

    def test_paused_elsewhere(self, tmp_path: Path, clock: FakeClock) -> None:
        watcher, _ = _controller_with_task(tmp_path, clock)
        watcher.start()

        clock.at(2)
        SessionController(data_dir=tmp_path, clock=clock).pause()
        assert watcher.is_stale() is True

    def test_stopped_elsewhere(self, tmp_path: Path, clock: FakeClock) -> None:
        watcher, _ = _controller_with_task(tmp_path, clock)
        watcher.start()

        clock.at(5)
        SessionController(data_dir=tmp_path, clock=clock).stop()
        assert watcher.is_stale() is True

    def test_reselected_elsewhere(self, tmp_path: Path, clock: FakeClock) -> None:
        watcher, _ = _controller_with_task(tmp_path, clock)
        other = watcher.add_task("Review")
        watcher.start()

        SessionController(data_dir=tmp_path, clock=clock).select_task(other.id)
        assert watcher.is_stale() is True

    def test_state_file_removed(self, tmp_path: Path, clock: FakeClock) -> None:
        watcher, _ = _controller_with_task(tmp_path, clock)
        watcher.start()
        (tmp_path / "tracker.json").unlink()
        assert watcher.is_stale() is True
