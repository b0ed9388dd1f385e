# src/todo_companion/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_manager import TaskManager
from .ports import KeyValueStore


@dataclass
class AppState:
    """
    Everything one process owns: settings and its single TaskManager.

    The manager is constructed once in cli.bootstrap and passed around explicitly;
    the console, the commands and the widget host never keep their own task copies.
    """

    settings: Any
    manager: TaskManager
    kv_store: KeyValueStore

    # Last listing shown in the console; lets commands accept "/done 2".
    last_listing: list[str] = field(default_factory=list)
