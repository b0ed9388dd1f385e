# tests/test_task_stats.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from todo_companion.tasks.task_models import Task
from todo_companion.tasks.task_stats import TaskStatistics, compute_statistics

NOW = datetime.now().astimezone().replace(hour=12, minute=0, second=0, microsecond=0)


def _collection(n_open: int, n_done: int, n_overdue: int, n_today: int) -> list[Task]:
    tasks = [Task(title=f"open {i}") for i in range(n_open)]
    tasks += [Task(title=f"done {i}", is_completed=True) for i in range(n_done)]
    tasks += [Task(title=f"late {i}", due_date=NOW - timedelta(days=2)) for i in range(n_overdue)]
    tasks += [Task(title=f"today {i}", due_date=NOW + timedelta(hours=3)) for i in range(n_today)]
    return tasks


@pytest.mark.parametrize(
    "shape",
    [(0, 0, 0, 0), (1, 0, 0, 0), (0, 3, 0, 0), (2, 5, 1, 1), (4, 1, 3, 2), (10, 30, 0, 0)],
)
def test_statistics_invariants(shape: tuple[int, int, int, int]) -> None:
    tasks = _collection(*shape)
    s = compute_statistics(tasks, NOW)

    assert s.total == len(tasks)
    assert s.pending == s.total - s.completed
    assert s.overdue == shape[2]
    assert s.due_today == shape[3]
    if s.total == 0:
        assert s.completion_rate == 0.0
    else:
        assert s.completion_rate == pytest.approx(s.completed / s.total)


def test_completed_overdue_not_counted() -> None:
    t = Task(title="late but done", due_date=NOW - timedelta(days=1), is_completed=True)
    s = compute_statistics([t], NOW)
    assert s.overdue == 0
    assert s.completion_rate == 1.0


def test_is_healthy() -> None:
    assert TaskStatistics(10, 8, 2, 0, 0, 0.8).is_healthy
    assert not TaskStatistics(10, 8, 2, 1, 0, 0.8).is_healthy
    assert not TaskStatistics(10, 7, 3, 0, 0, 0.7).is_healthy
    assert TaskStatistics(10, 8, 2, 0, 0, 0.8).completion_percentage == 80


def test_statistics_record_shape() -> None:
    rec = compute_statistics(_collection(1, 1, 0, 0), NOW).to_record(generated_at=NOW)
    assert rec["totalTodos"] == 2
    assert rec["pendingTodos"] == 1
    assert rec["completionRate"] == 0.5
    assert datetime.fromisoformat(rec["generatedAt"]) == NOW
