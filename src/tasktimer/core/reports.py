"""Daily and weekly aggregation of time entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from tasktimer.core.models import PALETTE, Task, TimeEntry


@dataclass
class TaskTotal:
    task_id: str
    task_name: str
    total_seconds: int
    color: str


@dataclass
class DailyReport:
    date: str
    tasks: list[TaskTotal] = field(default_factory=list)
    total_seconds: int = 0


@dataclass
class WeeklyReport:
    start: str
    end: str
    days: list[DailyReport] = field(default_factory=list)
    tasks: list[TaskTotal] = field(default_factory=list)

    @property
    def total_seconds(self) -> int:
        return sum(day.total_seconds for day in self.days)


def format_duration(seconds: int) -> str:
    """Format *seconds* as ``HH:MM:SS``."""
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def daily_reports(entries: Iterable[TimeEntry], tasks: Iterable[Task]) -> list[DailyReport]:
    """Group *entries* by date, summing durations per task.

    Dates and tasks keep the order in which they are first seen.
    """
    colors = {task.id: task.color for task in tasks}
    by_date: dict[str, DailyReport] = {}

    for entry in entries:
        report = by_date.setdefault(entry.date, DailyReport(date=entry.date))
        existing = next((t for t in report.tasks if t.task_id == entry.task_id), None)
        if existing is not None:
            existing.total_seconds += entry.duration_seconds
        else:
            report.tasks.append(
                TaskTotal(
                    task_id=entry.task_id,
                    task_name=entry.task_name,
                    total_seconds=entry.duration_seconds,
                    color=colors.get(entry.task_id, PALETTE[0]),
                )
            )
        report.total_seconds += entry.duration_seconds

    return list(by_date.values())


def weekly_report(
    entries: Iterable[TimeEntry], tasks: Iterable[Task], day: date
) -> WeeklyReport:
    """Return the Monday-Sunday week containing *day*."""
    monday = day - timedelta(days=day.weekday())
    sunday = monday + timedelta(days=6)
    start, end = monday.isoformat(), sunday.isoformat()

    in_week = [e for e in entries if start <= e.date <= end]
    days = sorted(daily_reports(in_week, tasks), key=lambda r: r.date)

    # per-task totals across the week, largest first
    totals: dict[str, TaskTotal] = {}
    for day_report in days:
        for total in day_report.tasks:
            if total.task_id in totals:
                totals[total.task_id].total_seconds += total.total_seconds
            else:
                totals[total.task_id] = TaskTotal(
                    task_id=total.task_id,
                    task_name=total.task_name,
                    total_seconds=total.total_seconds,
                    color=total.color,
                )
    ranked = sorted(totals.values(), key=lambda t: t.total_seconds, reverse=True)
    return WeeklyReport(start=start, end=end, days=days, tasks=ranked)
