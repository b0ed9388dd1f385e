# src/todo_companion/tasks/task_manager.py

from __future__ import annotations

"""
Task manager: the single authoritative task collection of a process.

- Mutations are synchronous edits of the in-memory list (single writer, RLock),
  each followed by a scheduled save.
- Saves run one at a time on the manager's event loop (worker thread for I/O)
  and always write the newest snapshot, so an older snapshot can never land
  after a newer one. Bursts of mutations coalesce into fewer saves.
- A failed save leaves the collection "unsaved": loads refuse to replace it,
  and refresh() writes it again before reading anything back.
- Queries are pure functions over a snapshot; storage errors never reach them.
  Status / last_error are the only error side-channel.
- start() is the readiness gate: storage selection + first load (+ optional seed).
  The widget path awaits wait_until_ready() before querying.
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from ..core.ports import KeyValueStore, RefreshNotifier, SeedProvider, TaskPersistence
from ..storage.errors import StorageError
from ..storage.persistence import LoadOutcome, LoadResult, PersistenceEngine, build_persistence
from ..storage.selector import StorageSelection, StorageSelector
from ..sync.notifier import default_notifier
from .task_models import StorageStrategy, SyncStatus, Task, TaskPriority, utc_now
from .task_stats import TaskStatistics, compute_statistics

logger = logging.getLogger(__name__)

_UNSET: Any = object()
_MIN_TICK = timedelta(microseconds=1)

MSG_UNSAVED = "Changes not saved yet; kept in memory"

TaskRef = Task | str


def _ref_id(ref: TaskRef) -> str:
    return ref.id if isinstance(ref, Task) else str(ref)


def _replay(tasks: list[Task], journal: Sequence[tuple[str, Any]]) -> list[Task]:
    """Apply journaled mutations ("put", "delete", "clear") on top of a freshly read collection."""
    out = list(tasks)
    for op, value in journal:
        if op == "clear":
            out = []
        elif op == "delete":
            out = [t for t in out if t.id != value]
        elif op == "put":
            for i, t in enumerate(out):
                if t.id == value.id:
                    out[i] = value
                    break
            else:
                out.append(value)
        else:
            raise ValueError(f"unknown journal op: {op!r}")
    return out


def _ts(dt: datetime) -> float:
    return dt.timestamp()


class TaskManager:
    def __init__(
        self,
        selector: StorageSelector,
        kv_store: KeyValueStore,
        *,
        notifier: RefreshNotifier | None = None,
        seed: SeedProvider | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._selector = selector
        self._kv_store = kv_store
        self._notifier = notifier
        self._seed = seed
        self._clock = clock

        self._lock = threading.RLock()
        self._tasks: list[Task] = []
        self._max_sort_order = 0

        self._status = SyncStatus.UNKNOWN
        self._last_error: str | None = None
        self._is_loading = False

        self._selection: StorageSelection | None = None
        self._engine: TaskPersistence | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

        self._ready = asyncio.Event()
        self._start_lock = asyncio.Lock()
        self._load_lock = asyncio.Lock()
        self._load_idle = asyncio.Event()
        self._load_idle.set()
        # Mutations made while a load is reading; None when no load is in flight.
        self._journal: list[tuple[str, Any]] | None = None

        self._dirty_version = 0
        self._saved_version = 0
        self._save_failed = False
        self._flusher: asyncio.Task[None] | None = None

    # ---- state / diagnostics ----

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def strategy(self) -> StorageStrategy | None:
        return self._selection.strategy if self._selection else None

    @property
    def selection(self) -> StorageSelection | None:
        return self._selection

    @property
    def engine(self) -> TaskPersistence | None:
        return self._engine

    @property
    def tasks(self) -> tuple[Task, ...]:
        with self._lock:
            return tuple(self._tasks)

    def can_sync_with_widget(self) -> bool:
        return self._selection is not None and self._selection.can_sync_with_widget()

    def storage_info(self) -> str:
        return self._selector.describe()

    def run_diagnostics(self) -> list[str]:
        lines = [
            f"Storage Strategy: {self.strategy.display_name if self.strategy else 'Not selected'}",
            f"Sync Status: {self._status.display_name}",
            f"Can Sync with Widget: {'Yes' if self.can_sync_with_widget() else 'No'}",
            f"Total Todos: {len(self.tasks)}",
        ]
        if self._last_error:
            lines.append(f"Last Error: {self._last_error}")
        if self._selection is not None:
            if self._selection.root is not None:
                lines.append(f"Data Directory: {self._selection.root}")
            for note in self._selection.probe_failures:
                lines.append(f"Probe Failed: {note}")
        return lines

    def _set_status(self, status: SyncStatus, error: str | None | Any = _UNSET) -> None:
        if status is not self._status:
            logger.debug("Sync status %s -> %s", self._status.value, status.value)
        self._status = status
        if error is not _UNSET:
            self._last_error = error

    # ---- lifecycle ----

    async def select_storage(self) -> StorageSelection:
        """Commit to a storage medium (probes run in a worker thread)."""
        self._loop = asyncio.get_running_loop()
        selection = await asyncio.to_thread(self._selector.select)
        self._apply_selection(selection)
        return selection

    async def refresh_storage(self) -> LoadResult:
        """
        Explicit re-probe (diagnostics): re-select, then reload from the new medium.

        Changes that never reached the old medium are written to the new one
        instead of being replaced by its contents.
        """
        await self._settle()
        selection = await asyncio.to_thread(self._selector.refresh)
        self._apply_selection(selection)
        return await self._resave_or_load()

    def _apply_selection(self, selection: StorageSelection) -> None:
        notifier = self._notifier if self._notifier is not None else default_notifier(selection.root)
        self._engine = build_persistence(
            selection.strategy,
            root=selection.root,
            kv_store=self._kv_store,
            notifier=notifier,
        )
        self._selection = selection
        self._set_status(SyncStatus.READY)

        if not selection.can_sync_with_widget():
            logger.warning(
                "Storage is %s: the other process will not see these changes.",
                selection.strategy.description,
            )

    async def start(self) -> None:
        """Selector commit + first load (+ seed if empty). Opens the readiness gate."""
        async with self._start_lock:
            if self._ready.is_set():
                return
            try:
                await self.select_storage()
                await self.load()
                if self._seed is not None:
                    self._seed_if_empty()
            finally:
                self._ready.set()
            logger.info(
                "TaskManager ready strategy=%s status=%s total=%d",
                self.strategy.value if self.strategy else None,
                self._status.value,
                len(self.tasks),
            )

    async def wait_until_ready(self) -> None:
        await self._ready.wait()

    async def load(self) -> LoadResult:
        """
        Replace the collection with the medium's contents.

        Unsaved changes (a failed save) are never overwritten: the collection is
        kept and the status stays FAILED. Mutations made while the read is in
        flight are replayed on top of what was read.
        """
        engine = self._require_engine()
        async with self._load_lock:
            await self._settle()
            if self.has_unsaved_changes:
                return self._keep_unsaved()

            with self._lock:
                self._journal = []
            self._load_idle.clear()
            self._is_loading = True
            self._set_status(SyncStatus.SYNCING)
            replayed = 0
            try:
                try:
                    result = await asyncio.to_thread(engine.load)
                except Exception as e:
                    logger.exception("Unexpected error while loading todos.")
                    result = LoadResult(outcome=LoadOutcome.FAILED, message=f"Failed to load data: {e}")

                with self._lock:
                    journal = self._journal or []
                    tasks = list(result.tasks)
                    if journal:
                        tasks = self._dedupe_sort_orders(_replay(tasks, journal))
                        replayed = len(journal)
                    self._tasks = tasks
                    highest = max((t.sort_order for t in self._tasks), default=0)
                    self._max_sort_order = max(self._max_sort_order, highest)
            finally:
                with self._lock:
                    self._journal = None
                self._is_loading = False
                self._load_idle.set()

        if replayed:
            logger.info("Kept %d change(s) made while loading", replayed)
        if result.ok:
            self._set_status(SyncStatus.SYNCED, result.message)
        else:
            self._set_status(SyncStatus.FAILED, result.message)
        return result

    async def refresh(self) -> LoadResult:
        """Manual refresh: let pending saves land, retry a failed one, then re-read the medium."""
        logger.info("Manual data refresh triggered")
        await self._settle()
        return await self._resave_or_load()

    async def flush(self) -> None:
        """Wait until every scheduled save has completed (or failed)."""
        while self._flusher is not None and not self._flusher.done():
            await asyncio.shield(self._flusher)

    async def close(self) -> None:
        await self.flush()

    @property
    def has_unsaved_changes(self) -> bool:
        with self._lock:
            return self._dirty_version > self._saved_version

    async def _settle(self) -> None:
        # Saves requested from other threads reach the loop one callback later.
        await self.flush()
        while self.has_unsaved_changes and not self._save_failed:
            await asyncio.sleep(0)
            await self.flush()

    async def _resave_or_load(self) -> LoadResult:
        if self.has_unsaved_changes:
            self._ensure_flusher()
            await self.flush()
            if self.has_unsaved_changes:
                return self._keep_unsaved()
        return await self.load()

    def _keep_unsaved(self) -> LoadResult:
        message = self._last_error or MSG_UNSAVED
        logger.warning("Not reloading: changes not yet saved are kept in memory (%s)", message)
        self._set_status(SyncStatus.FAILED, message)
        return LoadResult(tasks=list(self.tasks), outcome=LoadOutcome.FAILED, message=message)

    def _dedupe_sort_orders(self, tasks: list[Task]) -> list[Task]:
        # Tasks created during a load may share an order with what another process saved.
        top = max([self._max_sort_order, *(t.sort_order for t in tasks)])
        seen: set[int] = set()
        out: list[Task] = []
        for t in tasks:
            if t.sort_order in seen:
                top += 1
                t = replace(t, sort_order=top)
            seen.add(t.sort_order)
            out.append(t)
        return out

    def _require_engine(self) -> TaskPersistence:
        if self._engine is None:
            raise RuntimeError("TaskManager is not started (no storage selected)")
        return self._engine

    def _seed_if_empty(self) -> None:
        assert self._seed is not None
        with self._lock:
            if self._tasks:
                return
            samples = list(self._seed(self._clock()))
            if not samples:
                return
            for t in samples:
                self._max_sort_order += 1
                self._tasks.append(replace(t, sort_order=self._max_sort_order))
        logger.info("Created %d sample todos", len(samples))
        self._request_save()

    # ---- save scheduling ----

    def _record(self, op: str, value: Any) -> None:
        # Caller holds self._lock.
        if self._journal is not None:
            self._journal.append((op, value))

    def _request_save(self) -> None:
        with self._lock:
            self._dirty_version += 1

        loop = self._loop
        if loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._ensure_flusher()
            return
        try:
            loop.call_soon_threadsafe(self._ensure_flusher)
        except RuntimeError:
            logger.warning("Event loop is closed; change kept in memory only.")

    def _ensure_flusher(self) -> None:
        if self._flusher is None or self._flusher.done():
            assert self._loop is not None
            self._flusher = self._loop.create_task(self._flush_pending())

    async def _flush_pending(self) -> None:
        while True:
            # Never write while a load is replacing the collection.
            await self._load_idle.wait()
            with self._lock:
                version = self._dirty_version
                if version <= self._saved_version:
                    return
                snapshot = list(self._tasks)

            engine = self._require_engine()
            self._set_status(SyncStatus.SYNCING)
            try:
                await asyncio.to_thread(engine.save, snapshot)
            except StorageError as e:
                logger.error("Error saving todos: %s", e)
                self._save_failed = True
                self._set_status(SyncStatus.FAILED, str(e))
                return
            except Exception as e:
                logger.exception("Unexpected error while saving todos.")
                self._save_failed = True
                self._set_status(SyncStatus.FAILED, f"Failed to save todos: {e}")
                return

            with self._lock:
                self._saved_version = max(self._saved_version, version)
            self._save_failed = False
            self._set_status(SyncStatus.SYNCED, None)

    # ---- mutations ----

    def _touched(self, previous: datetime) -> datetime:
        # updated_at must move forward even when the clock has not.
        return max(self._clock(), previous + _MIN_TICK)

    def _index_of(self, task_id: str) -> int | None:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def create(
        self,
        title: str,
        *,
        subtitle: str | None = None,
        priority: TaskPriority | int | str = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
        category: str | None = None,
    ) -> Task:
        self._require_engine()
        now = self._clock()
        task = Task(
            title=title,
            subtitle=subtitle,
            priority=TaskPriority.parse(priority),
            created_at=now,
            updated_at=now,
            due_date=due_date,
            category=category,
        )
        with self._lock:
            self._max_sort_order += 1
            task = replace(task, sort_order=self._max_sort_order)
            self._tasks.append(task)
            self._record("put", task)

        logger.info("Created todo: %s", task.title)
        self._request_save()
        return task

    def update(self, task: Task) -> Task | None:
        """Replace a stored task with the given version (matched by id)."""
        self._require_engine()
        with self._lock:
            idx = self._index_of(task.id)
            if idx is None:
                logger.warning("Attempted to update non-existent todo: %s", task.id)
                return None
            current = self._tasks[idx]
            updated = replace(
                task,
                sort_order=current.sort_order,
                updated_at=self._touched(current.updated_at),
            )
            self._tasks[idx] = updated
            self._record("put", updated)

        logger.info("Updated todo: %s", updated.title)
        self._request_save()
        return updated

    def update_fields(
        self,
        task_id: str,
        *,
        title: str = _UNSET,
        subtitle: str | None = _UNSET,
        is_completed: bool = _UNSET,
        priority: TaskPriority | int | str = _UNSET,
        due_date: datetime | None = _UNSET,
        category: str | None = _UNSET,
    ) -> Task | None:
        """Partial update: only the given fields change."""
        self._require_engine()
        changes: dict[str, Any] = {}
        if title is not _UNSET:
            changes["title"] = title
        if subtitle is not _UNSET:
            changes["subtitle"] = subtitle
        if is_completed is not _UNSET:
            changes["is_completed"] = bool(is_completed)
        if priority is not _UNSET:
            changes["priority"] = TaskPriority.parse(priority)
        if due_date is not _UNSET:
            changes["due_date"] = due_date
        if category is not _UNSET:
            changes["category"] = category

        with self._lock:
            current = self.get(task_id)
            if current is None:
                logger.warning("Attempted to update non-existent todo: %s", task_id)
                return None
            return self.update(replace(current, **changes))

    def delete(self, task: TaskRef) -> bool:
        self._require_engine()
        task_id = _ref_id(task)
        with self._lock:
            idx = self._index_of(task_id)
            if idx is None:
                return False
            removed = self._tasks.pop(idx)
            self._record("delete", task_id)

        logger.info("Deleted todo: %s", removed.title)
        self._request_save()
        return True

    def toggle_complete(self, task: TaskRef) -> Task | None:
        self._require_engine()
        task_id = _ref_id(task)
        with self._lock:
            idx = self._index_of(task_id)
            if idx is None:
                return None
            current = self._tasks[idx]
            toggled = replace(
                current,
                is_completed=not current.is_completed,
                updated_at=self._touched(current.updated_at),
            )
            self._tasks[idx] = toggled
            self._record("put", toggled)

        logger.info("Todo %s: %s", "completed" if toggled.is_completed else "reopened", toggled.title)
        self._request_save()
        return toggled

    def bulk_update(self, tasks: Iterable[Task]) -> int:
        """Apply several whole-task updates with a single save. Unknown ids are skipped."""
        self._require_engine()
        count = 0
        with self._lock:
            for task in tasks:
                idx = self._index_of(task.id)
                if idx is None:
                    continue
                current = self._tasks[idx]
                updated = replace(
                    task,
                    sort_order=current.sort_order,
                    updated_at=self._touched(current.updated_at),
                )
                self._tasks[idx] = updated
                self._record("put", updated)
                count += 1

        logger.info("Bulk updated %d todos", count)
        self._request_save()
        return count

    def clear_all(self) -> None:
        self._require_engine()
        with self._lock:
            self._tasks.clear()
            self._record("clear", None)
        logger.info("Cleared all data")
        self._request_save()

    def import_json(self, text: str) -> int:
        """
        Append tasks from an exported JSON document.

        Raises CorruptRecordError (a ValueError) on malformed input, before any change.
        Tasks whose id is already present are skipped; imported tasks get fresh sort orders.
        """
        self._require_engine()
        incoming = PersistenceEngine.import_json(text)
        added = 0
        with self._lock:
            known = {t.id for t in self._tasks}
            for t in incoming:
                if t.id in known:
                    continue
                self._max_sort_order += 1
                imported = replace(t, sort_order=self._max_sort_order)
                self._tasks.append(imported)
                self._record("put", imported)
                known.add(t.id)
                added += 1

        logger.info("Imported %d todos", added)
        if added:
            self._request_save()
        return added

    def export_json(self) -> str:
        return PersistenceEngine.export_json(self.tasks)

    # ---- queries ----

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            idx = self._index_of(task_id)
            return self._tasks[idx] if idx is not None else None

    def fetch_all(self) -> list[Task]:
        return sorted(
            self.tasks,
            key=lambda t: (t.is_completed, -int(t.priority), -_ts(t.created_at)),
        )

    def fetch_incomplete(self, limit: int | None = None) -> list[Task]:
        now = self._clock()
        out = sorted(
            (t for t in self.tasks if not t.is_completed),
            key=lambda t: (
                -int(t.priority),
                not t.is_overdue_at(now),
                not t.is_due_on(now),
                -_ts(t.created_at),
            ),
        )
        return _truncate(out, limit)

    def fetch_due_today(self) -> list[Task]:
        now = self._clock()
        return sorted(
            (t for t in self.tasks if not t.is_completed and t.is_due_on(now)),
            key=lambda t: -int(t.priority),
        )

    def fetch_overdue(self) -> list[Task]:
        now = self._clock()
        overdue = [t for t in self.tasks if t.is_overdue_at(now)]
        # due_date is always set for overdue tasks.
        return sorted(overdue, key=lambda t: (-int(t.priority), _ts(t.due_date)))  # type: ignore[arg-type]

    def fetch_high_priority(self, limit: int = 5) -> list[Task]:
        out = sorted(
            (t for t in self.tasks if not t.is_completed and t.priority >= TaskPriority.HIGH),
            key=lambda t: -int(t.priority),
        )
        return _truncate(out, limit)

    def fetch_by_category(self, category: str) -> list[Task]:
        wanted = (category or "").casefold()
        return sorted(
            (t for t in self.tasks if t.category is not None and t.category.casefold() == wanted),
            key=lambda t: -int(t.priority),
        )

    def fetch_recently_completed(self, limit: int = 5) -> list[Task]:
        out = sorted(
            (t for t in self.tasks if t.is_completed),
            key=lambda t: -_ts(t.updated_at),
        )
        return _truncate(out, limit)

    def widget_tasks(self, limit: int = 10) -> list[Task]:
        return self.fetch_incomplete(limit)

    def unique_categories(self) -> list[str]:
        return sorted({t.category for t in self.tasks if t.category})

    def statistics(self) -> TaskStatistics:
        return compute_statistics(self.tasks, self._clock())


def _truncate(items: Sequence[Task], limit: int | None) -> list[Task]:
    if limit is None:
        return list(items)
    return list(items[: max(0, int(limit))])
