# src/todo_companion/storage/codec.py

"""
JSON record codec for the task collection.

Field names follow the record layout the widget reads:
    id, title, subtitle, isCompleted, priority, createdAt, updatedAt,
    dueDate, category, sortOrder

Timestamps are ISO-8601 with microseconds and a UTC offset, so the same
instant comes back out of decode_tasks() as went into encode_tasks().
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from ..tasks.task_models import Task, TaskPriority
from .errors import CorruptRecordError


def _ts_to_str(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


def _str_to_ts(raw: Any, field_name: str) -> datetime:
    if not isinstance(raw, str):
        raise CorruptRecordError(f"{field_name}: expected ISO-8601 string, got {type(raw).__name__}")
    try:
        return datetime.fromisoformat(raw)
    except ValueError as e:
        raise CorruptRecordError(f"{field_name}: {e}") from e


def _opt_str(raw: Any, field_name: str) -> str | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise CorruptRecordError(f"{field_name}: expected string or null")
    return raw


def task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "subtitle": task.subtitle,
        "isCompleted": task.is_completed,
        "priority": int(task.priority),
        "createdAt": _ts_to_str(task.created_at),
        "updatedAt": _ts_to_str(task.updated_at),
        "dueDate": _ts_to_str(task.due_date) if task.due_date is not None else None,
        "category": task.category,
        "sortOrder": task.sort_order,
    }


def task_from_dict(obj: Any) -> Task:
    if not isinstance(obj, dict):
        raise CorruptRecordError("task entry is not an object")

    try:
        task_id = obj["id"]
        title = obj["title"]
        created_raw = obj["createdAt"]
        updated_raw = obj["updatedAt"]
    except KeyError as e:
        raise CorruptRecordError(f"task entry is missing {e.args[0]!r}") from e

    if not isinstance(task_id, str) or not task_id:
        raise CorruptRecordError("id: expected non-empty string")

    completed = obj.get("isCompleted", False)
    if not isinstance(completed, bool):
        raise CorruptRecordError("isCompleted: expected boolean")

    sort_order = obj.get("sortOrder", 0)
    if isinstance(sort_order, bool) or not isinstance(sort_order, int):
        raise CorruptRecordError("sortOrder: expected integer")

    try:
        priority = TaskPriority(obj.get("priority", int(TaskPriority.MEDIUM)))
    except (TypeError, ValueError) as e:
        raise CorruptRecordError(f"priority: {e}") from e

    due_raw = obj.get("dueDate")

    try:
        return Task(
            id=task_id,
            title=title,
            subtitle=_opt_str(obj.get("subtitle"), "subtitle"),
            is_completed=completed,
            priority=priority,
            created_at=_str_to_ts(created_raw, "createdAt"),
            updated_at=_str_to_ts(updated_raw, "updatedAt"),
            due_date=_str_to_ts(due_raw, "dueDate") if due_raw is not None else None,
            category=_opt_str(obj.get("category"), "category"),
            sort_order=sort_order,
        )
    except ValueError as e:
        if isinstance(e, CorruptRecordError):
            raise
        raise CorruptRecordError(str(e)) from e


def encode_tasks(tasks: Iterable[Task], *, indent: int | None = 2) -> bytes:
    payload = [task_to_dict(t) for t in tasks]
    return json.dumps(payload, ensure_ascii=False, indent=indent).encode("utf-8")


def decode_tasks(data: bytes | str) -> list[Task]:
    try:
        raw = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptRecordError(f"invalid JSON: {e}") from e

    if not isinstance(raw, list):
        raise CorruptRecordError("task record is not a JSON array")

    return [task_from_dict(item) for item in raw]


def encode_json_object(obj: dict[str, Any]) -> bytes:
    return json.dumps(obj, ensure_ascii=False, indent=2).encode("utf-8")
