# src/todo_companion/tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum, IntEnum, StrEnum


def utc_now() -> datetime:
    return datetime.now(UTC)


class TaskPriority(IntEnum):
    """Ordered priority: LOW < MEDIUM < HIGH < CRITICAL."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, raw: str | int | None) -> TaskPriority:
        """Accept an int value or a case-insensitive member name ("high")."""
        if raw is None or raw == "":
            return cls.MEDIUM
        if isinstance(raw, int):
            return cls(raw)
        s = str(raw).strip()
        if s.isdigit():
            return cls(int(s))
        try:
            return cls[s.upper()]
        except KeyError:
            raise ValueError(f"unknown priority: {raw!r}") from None


class SyncStatus(StrEnum):
    UNKNOWN = "unknown"
    READY = "ready"
    SYNCING = "syncing"
    SYNCED = "synced"
    FAILED = "failed"

    @property
    def display_name(self) -> str:
        return _SYNC_STATUS_NAMES[self]


_SYNC_STATUS_NAMES = {
    SyncStatus.UNKNOWN: "Unknown",
    SyncStatus.READY: "Ready",
    SyncStatus.SYNCING: "Syncing...",
    SyncStatus.SYNCED: "Synced",
    SyncStatus.FAILED: "Failed",
}


class StorageStrategy(str, Enum):
    """
    Storage medium committed to by a process.

    Only SHARED_CONTAINER is visible to the other process (app <-> widget).
    """

    SHARED_CONTAINER = "shared_container"
    PRIVATE_DOCUMENTS = "private_documents"
    KEY_VALUE = "key_value"

    @property
    def display_name(self) -> str:
        return _STRATEGY_NAMES[self][0]

    @property
    def description(self) -> str:
        return _STRATEGY_NAMES[self][1]

    @property
    def is_file_based(self) -> bool:
        return self is not StorageStrategy.KEY_VALUE


_STRATEGY_NAMES = {
    StorageStrategy.SHARED_CONTAINER: ("Shared Container", "Shared Container (Shared with Widget)"),
    StorageStrategy.PRIVATE_DOCUMENTS: ("Documents", "Documents Directory (App Only)"),
    StorageStrategy.KEY_VALUE: ("Key-Value Store", "Key-Value Store (Limited Sync)"),
}


def _local_day(dt: datetime) -> datetime:
    return dt.astimezone()


def _format_delta(seconds: float) -> str:
    if seconds < 60:
        return "<1min"
    if seconds < 3600:
        return f"{int(seconds // 60)}min"
    if seconds < 86400:
        return f"{int(seconds // 3600)}h"
    return f"{int(seconds // 86400)}d"


@dataclass(frozen=True, slots=True, eq=False)
class Task:
    """
    A single to-do record.

    Identity is the `id` alone: two tasks with the same content but different ids
    are distinct, and an edited copy still equals the original.
    Scheduling predicates are evaluated against the clock at read time.
    """

    title: str
    subtitle: str | None = None
    is_completed: bool = False
    priority: TaskPriority = TaskPriority.MEDIUM
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    due_date: datetime | None = None
    category: str | None = None
    sort_order: int = 0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValueError("title is required")
        if not isinstance(self.priority, TaskPriority):
            object.__setattr__(self, "priority", TaskPriority(int(self.priority)))
        # Naive datetimes are taken as local wall-clock time.
        for name in ("created_at", "updated_at", "due_date"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                object.__setattr__(self, name, value.astimezone())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    # ---- scheduling predicates ----

    def is_overdue_at(self, now: datetime) -> bool:
        if self.due_date is None or self.is_completed:
            return False
        return self.due_date < now

    def is_due_on(self, now: datetime, *, days_ahead: int = 0) -> bool:
        if self.due_date is None:
            return False
        day = (_local_day(now) + timedelta(days=days_ahead)).date()
        return _local_day(self.due_date).date() == day

    def time_until_due_at(self, now: datetime) -> str | None:
        if self.due_date is None or self.is_completed:
            return None
        delta = (self.due_date - now).total_seconds()
        if delta < 0:
            return f"Overdue by {_format_delta(-delta)}"
        return f"Due in {_format_delta(delta)}"

    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_at(utc_now())

    @property
    def is_due_today(self) -> bool:
        return self.is_due_on(utc_now())

    @property
    def is_due_tomorrow(self) -> bool:
        return self.is_due_on(utc_now(), days_ahead=1)

    @property
    def time_until_due(self) -> str | None:
        return self.time_until_due_at(utc_now())
