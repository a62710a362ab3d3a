"""CLI entry point for tasktimer.

Uses Click to expose the ``tasktimer`` command group with subcommands
that delegate to the SessionController.
"""

from __future__ import annotations

import logging
import signal
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, TypeVar

import click

import tasktimer
from tasktimer.core.errors import TaskTimerError
from tasktimer.core.reports import DailyReport, TaskTotal, format_duration
from tasktimer.core.scheduler import CooperativeScheduler
from tasktimer.core.session import SessionController
from tasktimer.core.stopwatch import StopwatchStatus

T = TypeVar("T")

_TICK_SECONDS = 1.0
_TOP_WEEK_TASKS = 5


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``TaskTimerError`` to a CLI error.

    On ``TaskTimerError`` the message is printed to stderr and the
    process exits with code 1.
    """
    try:
        return action()
    except TaskTimerError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _controller(ctx: click.Context) -> SessionController:
    return SessionController(data_dir=ctx.obj)


def _echo_totals(totals: list[TaskTotal]) -> None:
    for task in totals:
        click.echo(f"  {task.task_name:<30} {format_duration(task.total_seconds)}")


def _echo_day(report: DailyReport) -> None:
    click.echo(f"{report.date}  {format_duration(report.total_seconds)}")
    _echo_totals(sorted(report.tasks, key=lambda t: t.total_seconds, reverse=True))


@click.group()
@click.version_option(version=tasktimer.__version__, prog_name="tasktimer")
@click.option(
    "--data-dir",
    envvar="TASKTIMER_HOME",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding tracker.json (default: ~/.config/tasktimer).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, verbose: bool) -> None:
    """tasktimer: track time spent on tasks from the terminal."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = data_dir


# -- tasks -------------------------------------------------------------------


@cli.command()
@click.argument("name")
@click.pass_context
def add(ctx: click.Context, name: str) -> None:
    """Create a task called NAME."""
    task = _run(lambda: _controller(ctx).add_task(name))
    click.echo(f"Task added: {task.name} ({task.id})")


@cli.command()
@click.pass_context
def tasks(ctx: click.Context) -> None:
    """List tasks and their tracked totals."""
    controller = _run(lambda: _controller(ctx))
    active = controller.active_task
    listed = controller.list_tasks()
    if not listed:
        click.echo("No tasks")
        return
    for task in listed:
        marker = "*" if active is not None and task.id == active.id else " "
        click.echo(f"{marker} {task.id}  {task.name:<30} {format_duration(task.total_seconds)}")


@cli.command()
@click.argument("task_id")
@click.argument("name")
@click.pass_context
def rename(ctx: click.Context, task_id: str, name: str) -> None:
    """Rename task TASK_ID to NAME."""
    click.echo(_run(lambda: _controller(ctx).rename_task(task_id, name)))


@cli.command()
@click.argument("task_id")
@click.pass_context
def remove(ctx: click.Context, task_id: str) -> None:
    """Delete task TASK_ID, recording any run in progress first."""
    click.echo(_run(lambda: _controller(ctx).delete_task(task_id)))


@cli.command()
@click.argument("task_id")
@click.pass_context
def select(ctx: click.Context, task_id: str) -> None:
    """Make TASK_ID the active task."""
    click.echo(_run(lambda: _controller(ctx).select_task(task_id)))


# -- timer -------------------------------------------------------------------


@cli.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Start or resume the timer for the active task."""
    click.echo(_run(lambda: _controller(ctx).start()))


@cli.command()
@click.pass_context
def pause(ctx: click.Context) -> None:
    """Pause the running timer."""
    click.echo(_run(lambda: _controller(ctx).pause()))


@cli.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop the timer and record the time against the active task."""
    click.echo(_run(lambda: _controller(ctx).stop()))


@cli.command()
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Discard the current run without recording it."""
    click.echo(_run(lambda: _controller(ctx).reset()))


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the current timer status."""
    message, exit_code = _run(lambda: _controller(ctx).status())
    click.echo(message)
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Show the running timer live until Ctrl-C."""
    scheduler = CooperativeScheduler()
    controller = _run(lambda: SessionController(data_dir=ctx.obj, scheduler=scheduler))
    stopwatch = controller.stopwatch
    if stopwatch.status != StopwatchStatus.RUNNING:
        message, exit_code = controller.status()
        click.echo(message)
        sys.exit(exit_code)

    task = controller.active_task
    label = task.name if task is not None else "No task"

    def render(seconds: int, state: StopwatchStatus) -> None:
        click.echo(f"\r{label}: {format_duration(seconds)}", nl=False)

    # SIGCONT arrives when the shell resumes a suspended process; the
    # handler only flags it so the loop does the recomputation.
    resumed: list[int] = []
    previous = signal.signal(signal.SIGCONT, lambda signum, frame: resumed.append(signum))
    stopwatch.subscribe(render)
    try:
        stopwatch.resync()
        render(stopwatch.display_seconds, stopwatch.status)
        while True:
            delay = scheduler.next_delay()
            time.sleep(delay if delay is not None else _TICK_SECONDS)
            # another invocation paused, stopped or reselected: show its state
            if _run(controller.is_stale):
                click.echo()
                message, exit_code = _run(lambda: SessionController(data_dir=ctx.obj).status())
                click.echo(message)
                sys.exit(exit_code)
            if resumed:
                resumed.clear()
                stopwatch.resync()
            scheduler.run_pending()
    except KeyboardInterrupt:
        click.echo()
    finally:
        signal.signal(signal.SIGCONT, previous)


# -- reports -----------------------------------------------------------------


@cli.command()
@click.option("--week", is_flag=True, help="Summarise the Monday-Sunday week.")
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Day to report on (default: every day, or this week with --week).",
)
@click.pass_context
def report(ctx: click.Context, week: bool, day: datetime | None) -> None:
    """Show tracked time per day and task."""
    controller = _run(lambda: _controller(ctx))

    if week:
        weekly = controller.weekly_report(day.date() if day is not None else None)
        click.echo(f"Week {weekly.start} .. {weekly.end}  {format_duration(weekly.total_seconds)}")
        if weekly.tasks:
            click.echo("Top tasks")
            _echo_totals(weekly.tasks[:_TOP_WEEK_TASKS])
        for daily in weekly.days:
            _echo_day(daily)
        return

    reports = controller.daily_reports()
    if day is not None:
        reports = [r for r in reports if r.date == day.date().isoformat()]
    if not reports:
        click.echo("No time recorded")
        return
    for daily in reports:
        _echo_day(daily)
