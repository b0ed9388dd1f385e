# tests/conftest.py

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_companion.core.state import AppState
from todo_companion.storage.kv_store import MemoryKeyValueStore
from todo_companion.storage.selector import StorageSelector
from todo_companion.tasks.task_manager import TaskManager

from .fakes import FixedClock, RecordingNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-test",
        process_role="app",
        data_dir=tmp_path,
        shared_dir=tmp_path / "shared",
        private_dir=tmp_path / "private",
        kv_db_path=tmp_path / "defaults.sqlite3",
        seed_sample_data=False,
        console_enabled=False,
        widget_limit=10,
        widget_urgent_minutes=5,
        widget_default_minutes=15,
        watch_interval_seconds=0.01,
    )


@pytest.fixture()
def blocked_dir(tmp_path: Path) -> Path:
    """A regular file: any directory "under" it can never be created."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", "utf-8")
    return blocker


@pytest.fixture()
def noon_clock() -> FixedClock:
    """Local noon today, so due-today / overdue checks never straddle midnight."""
    now = datetime.now().astimezone().replace(hour=12, minute=0, second=0, microsecond=0)
    return FixedClock(now)


@pytest.fixture()
def make_manager(tmp_path: Path) -> Callable[..., TaskManager]:
    """
    Build a TaskManager over tmp dirs.

    Defaults: shared container at <tmp>/shared, a RecordingNotifier, no seed.
    """

    def _make(
        *,
        shared_dir: Path | None = tmp_path / "shared",
        private_dir: Path | None = tmp_path / "private",
        role: str = "app",
        notifier=None,
        kv_store=None,
        seed=None,
        clock=None,
    ) -> TaskManager:
        selector = StorageSelector(shared_dir=shared_dir, private_dir=private_dir, process_role=role)
        kwargs = {}
        if clock is not None:
            kwargs["clock"] = clock
        return TaskManager(
            selector,
            kv_store if kv_store is not None else MemoryKeyValueStore(),
            notifier=notifier if notifier is not None else RecordingNotifier(),
            seed=seed,
            **kwargs,
        )

    return _make


@pytest.fixture()
def state(settings: SimpleNamespace, make_manager) -> AppState:
    """AppState wired with a real manager over tmp storage (not started)."""
    return AppState(settings=settings, manager=make_manager(), kv_store=MemoryKeyValueStore())
