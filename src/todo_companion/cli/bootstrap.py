# src/todo_companion/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the selector, the key-value fallback and the TaskManager into AppState.
"""

from __future__ import annotations

import contextlib
import logging

from ..config import get_settings
from ..core.ports import KeyValueStore
from ..core.state import AppState
from ..storage.kv_store import MemoryKeyValueStore, SqliteKeyValueStore
from ..storage.selector import StorageSelector
from ..tasks.samples import sample_tasks
from ..tasks.task_manager import TaskManager

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    # Storage directories are created (and probed) by the selector, not here.
    with contextlib.suppress(OSError):
        settings.data_dir.mkdir(parents=True, exist_ok=True)


def open_kv_store(settings) -> KeyValueStore:
    """
    SQLite preferences store; process memory if even that cannot be opened.

    The key-value medium is the selector's last resort, so it must always exist.
    """
    store = SqliteKeyValueStore(settings.kv_db_path)
    try:
        store.get("__open__")
    except Exception as e:
        logger.error("Key-value store at %s unusable (%s); changes will not survive restart.", settings.kv_db_path, e)
        return MemoryKeyValueStore()
    return store


def create_app_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    The manager is not started here; call `await state.manager.start()` inside the event loop.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    selector = StorageSelector(
        shared_dir=settings.shared_dir,
        private_dir=settings.private_dir,
        process_role=settings.process_role,
    )
    kv_store = open_kv_store(settings)

    manager = TaskManager(
        selector,
        kv_store,
        seed=sample_tasks if settings.seed_sample_data and settings.process_role == "app" else None,
    )
    return AppState(settings=settings, manager=manager, kv_store=kv_store)
