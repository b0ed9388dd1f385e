# src/todo_companion/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task manager depends on Protocols instead of concrete implementations.
This keeps storage mediums and refresh transports swappable and makes testing easier.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..storage.persistence import LoadResult
    from ..tasks.task_models import Task

SeedProvider = Callable[[datetime], "list[Task]"]
# Called once with the current time when the first load leaves the collection empty.


class RefreshNotifier(Protocol):
    """
    "The shared data has changed" signal for out-of-process observers.

    Fired exactly once per completed save, after the write is durable.
    How the widget re-reads the data is the widget host's business.
    """

    def notify(self) -> None: ...


class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None: ...
    def set(self, key: str, value: bytes) -> None: ...
    def delete(self, key: str) -> None: ...


class TaskPersistence(Protocol):
    """Load/save of the whole task collection on one storage medium."""

    def load(self) -> LoadResult: ...
    def save(self, tasks: Sequence[Task]) -> None: ...
