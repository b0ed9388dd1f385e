# src/todo_companion/tasks/samples.py

from __future__ import annotations

from datetime import datetime, timedelta

from .task_models import Task, TaskPriority


def sample_tasks(now: datetime) -> list[Task]:
    """Illustrative first-run content (seed hook for TaskManager)."""
    return [
        Task(
            title="Fix critical payment processing bug",
            subtitle="Users unable to complete checkout - immediate attention required",
            priority=TaskPriority.CRITICAL,
            due_date=now + timedelta(hours=2),
            category="Bug Fix",
            created_at=now,
            updated_at=now,
        ),
        Task(
            title="Prepare quarterly board presentation",
            subtitle="Include metrics, growth projections, and the roadmap",
            priority=TaskPriority.HIGH,
            due_date=now + timedelta(days=1),
            category="Executive",
            created_at=now,
            updated_at=now,
        ),
        Task(
            title="Update API documentation",
            subtitle="Add new endpoints and authentication examples",
            priority=TaskPriority.MEDIUM,
            due_date=now + timedelta(days=5),
            category="Development",
            created_at=now,
            updated_at=now,
        ),
        Task(
            title="Complete client project proposal",
            subtitle="Delivered proposal with timeline and budget",
            priority=TaskPriority.MEDIUM,
            is_completed=True,
            category="Client Work",
            created_at=now - timedelta(days=7),
            updated_at=now - timedelta(days=3),
        ),
    ]


def placeholder_tasks(now: datetime) -> list[Task]:
    """Widget gallery / preview content; never persisted."""
    return [
        Task(
            title="Complete project proposal",
            subtitle="Add final sections and review with team",
            priority=TaskPriority.HIGH,
            due_date=now + timedelta(hours=2),
            category="Work",
        ),
        Task(
            title="Buy groceries",
            subtitle="Milk, bread, eggs, vegetables",
            priority=TaskPriority.MEDIUM,
            category="Personal",
        ),
        Task(
            title="Submit expense report",
            subtitle="Include receipts from last month",
            priority=TaskPriority.CRITICAL,
            due_date=now - timedelta(days=1),
            category="Finance",
        ),
    ]
