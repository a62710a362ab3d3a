"""Tasks and recorded time entries."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

PALETTE = (
    "#3B82F6",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#06B6D4",
    "#84CC16",
    "#F97316",
    "#EC4899",
)


@dataclass
class Task:
    id: str
    name: str
    color: str
    total_seconds: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=data["id"],
            name=data["name"],
            color=data.get("color", PALETTE[0]),
            total_seconds=int(data.get("total_seconds", 0)),
        )


@dataclass(frozen=True)
class TimeEntry:
    """One finished run of the stopwatch against a task.

    ``started_at`` and ``ended_at`` are milliseconds since the epoch; ``date``
    is the local ``YYYY-MM-DD`` of ``ended_at``.
    """

    task_id: str
    task_name: str
    started_at: int
    ended_at: int
    duration_seconds: int
    date: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeEntry:
        return cls(
            task_id=data["task_id"],
            task_name=data["task_name"],
            started_at=int(data["started_at"]),
            ended_at=int(data["ended_at"]),
            duration_seconds=int(data["duration_seconds"]),
            date=data["date"],
        )


def local_date(timestamp_ms: int) -> str:
    """Return the local calendar date of *timestamp_ms* as ``YYYY-MM-DD``."""
    return datetime.fromtimestamp(timestamp_ms / 1000).date().isoformat()


def pick_color(used: list[str]) -> str:
    """Return the first palette color not in *used*, else the first one."""
    for color in PALETTE:
        if color not in used:
            return color
    return PALETTE[0]
