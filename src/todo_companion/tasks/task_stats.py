# src/todo_companion/tasks/task_stats.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .task_models import Task, utc_now


@dataclass(frozen=True, slots=True)
class TaskStatistics:
    total: int
    completed: int
    pending: int
    overdue: int
    due_today: int
    completion_rate: float

    @property
    def completion_percentage(self) -> int:
        return int(round(self.completion_rate * 100))

    @property
    def is_healthy(self) -> bool:
        return self.overdue == 0 and self.completion_rate > 0.7

    def to_record(self, *, generated_at: datetime | None = None) -> dict[str, Any]:
        """Persisted (cache-only) shape of the snapshot."""
        return {
            "totalTodos": self.total,
            "completedTodos": self.completed,
            "pendingTodos": self.pending,
            "overdueTodos": self.overdue,
            "dueTodayTodos": self.due_today,
            "completionRate": self.completion_rate,
            "generatedAt": (generated_at or utc_now()).isoformat(timespec="microseconds"),
        }


def compute_statistics(tasks: Iterable[Task], now: datetime | None = None) -> TaskStatistics:
    if now is None:
        now = utc_now()

    total = completed = overdue = due_today = 0
    for t in tasks:
        total += 1
        if t.is_completed:
            completed += 1
        elif t.is_due_on(now):
            due_today += 1
        if t.is_overdue_at(now):
            overdue += 1

    return TaskStatistics(
        total=total,
        completed=completed,
        pending=total - completed,
        overdue=overdue,
        due_today=due_today,
        completion_rate=(completed / total) if total else 0.0,
    )
