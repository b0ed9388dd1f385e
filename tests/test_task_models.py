# tests/test_task_models.py

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from todo_companion.tasks.task_models import StorageStrategy, Task, TaskPriority


def test_defaults_and_identity() -> None:
    t = Task(title="Buy milk")
    assert t.priority is TaskPriority.MEDIUM
    assert t.is_completed is False
    assert t.sort_order == 0
    assert t.created_at.tzinfo is not None

    twin = Task(title="Buy milk")
    assert t != twin, "same content, different id -> distinct"

    edited = replace(t, title="Buy oat milk")
    assert edited == t and hash(edited) == hash(t)


@pytest.mark.parametrize("title", ["", "   "])
def test_blank_title_rejected(title: str) -> None:
    with pytest.raises(ValueError):
        Task(title=title)


def test_priority_order_and_parse() -> None:
    assert TaskPriority.LOW < TaskPriority.MEDIUM < TaskPriority.HIGH < TaskPriority.CRITICAL
    assert TaskPriority.parse("high") is TaskPriority.HIGH
    assert TaskPriority.parse("3") is TaskPriority.CRITICAL
    assert TaskPriority.parse(None) is TaskPriority.MEDIUM
    with pytest.raises(ValueError):
        TaskPriority.parse("urgent")


def test_overdue_and_due_today_are_read_time_predicates() -> None:
    now = datetime.now().astimezone().replace(hour=12, minute=0, second=0, microsecond=0)
    t = Task(title="Call bank", due_date=now + timedelta(hours=1))

    assert not t.is_overdue_at(now)
    assert t.is_due_on(now)
    # Same record, later clock reading: now overdue, still due today.
    later = now + timedelta(hours=2)
    assert t.is_overdue_at(later)
    assert t.is_due_on(later)
    # Next day it is no longer "today".
    assert not t.is_due_on(now + timedelta(days=1))
    assert t.is_due_on(now - timedelta(days=1), days_ahead=1)

    done = replace(t, is_completed=True)
    assert not done.is_overdue_at(later)


def test_no_due_date() -> None:
    t = Task(title="Buy milk")
    assert t.is_overdue is False
    assert t.is_due_today is False
    assert t.is_due_tomorrow is False
    assert t.time_until_due is None


def test_time_until_due_strings() -> None:
    now = datetime(2025, 1, 10, 12, 0, tzinfo=UTC)
    assert Task(title="a", due_date=now + timedelta(minutes=45)).time_until_due_at(now) == "Due in 45min"
    assert Task(title="a", due_date=now + timedelta(hours=3, minutes=5)).time_until_due_at(now) == "Due in 3h"
    assert Task(title="a", due_date=now + timedelta(days=2, hours=1)).time_until_due_at(now) == "Due in 2d"
    assert Task(title="a", due_date=now - timedelta(minutes=10)).time_until_due_at(now) == "Overdue by 10min"
    assert Task(title="a", due_date=now - timedelta(days=3)).time_until_due_at(now) == "Overdue by 3d"
    assert Task(title="a", due_date=now, is_completed=True).time_until_due_at(now) is None


def test_time_until_due_under_a_minute() -> None:
    now = datetime(2025, 1, 10, 12, 0, tzinfo=UTC)
    assert Task(title="a", due_date=now + timedelta(seconds=20)).time_until_due_at(now) == "Due in <1min"
    assert Task(title="a", due_date=now).time_until_due_at(now) == "Due in <1min"
    assert Task(title="a", due_date=now - timedelta(seconds=59)).time_until_due_at(now) == "Overdue by <1min"
    assert Task(title="a", due_date=now + timedelta(seconds=60)).time_until_due_at(now) == "Due in 1min"


def test_naive_datetimes_become_aware() -> None:
    naive = datetime(2025, 1, 10, 9, 30)
    t = Task(title="a", due_date=naive, created_at=naive, updated_at=naive)
    assert t.due_date is not None and t.due_date.tzinfo is not None
    assert t.due_date.replace(tzinfo=None) == naive


def test_only_shared_container_is_cross_process() -> None:
    assert StorageStrategy.SHARED_CONTAINER.is_file_based
    assert StorageStrategy.PRIVATE_DOCUMENTS.is_file_based
    assert not StorageStrategy.KEY_VALUE.is_file_based
    assert "Widget" in StorageStrategy.SHARED_CONTAINER.description
