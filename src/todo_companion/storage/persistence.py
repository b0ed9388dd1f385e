# src/todo_companion/storage/persistence.py

"""
Persistence engines for the task collection.

Both engines share the same load/save contract:

save(tasks):
- best-effort backup of the current primary record,
- atomic write of the whole collection,
- best-effort statistics record,
- notifier fired once, after the durable write.

load():
- primary absent       -> empty collection, outcome FRESH (first run, not an error)
- primary readable     -> outcome LOADED
- anything else        -> restore from backup and re-save it as primary (RESTORED),
                          or an empty collection with a user-visible message (FAILED)
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from ..core.ports import KeyValueStore, RefreshNotifier
from ..sync.notifier import NullNotifier
from ..tasks.task_models import StorageStrategy, Task
from ..tasks.task_stats import compute_statistics
from .codec import decode_tasks, encode_json_object, encode_tasks
from .errors import CorruptRecordError, StorageWriteError

logger = logging.getLogger(__name__)

TODOS_FILENAME = "todos.json"
BACKUP_FILENAME = "todos_backup.json"
STATS_FILENAME = "stats.json"

KV_DATA_KEY = "TodoManagerData"
KV_STATS_KEY = "TodoManagerStatistics"

MSG_RESTORED = "Restored from backup"
MSG_NO_BACKUP = "Failed to load data and no backup available"


class LoadOutcome(StrEnum):
    FRESH = "fresh"
    LOADED = "loaded"
    RESTORED = "restored"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class LoadResult:
    tasks: list[Task] = field(default_factory=list)
    outcome: LoadOutcome = LoadOutcome.FRESH
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not LoadOutcome.FAILED


class PersistenceEngine:
    """Shared load/save algorithm; subclasses provide the medium-specific record I/O."""

    strategy: StorageStrategy

    def __init__(self, notifier: RefreshNotifier | None = None) -> None:
        self._notifier: RefreshNotifier = notifier or NullNotifier()

    # ---- medium-specific hooks ----

    def _read_primary(self) -> bytes | None:
        """Return the primary record, or None when it does not exist yet."""
        raise NotImplementedError

    def _write_primary(self, data: bytes) -> None:
        raise NotImplementedError

    def _backup(self) -> None:
        """Copy the current primary record aside. Best-effort: may raise, caller logs."""
        return

    def _read_backup(self) -> bytes | None:
        return None

    def _write_statistics(self, data: bytes) -> None:
        raise NotImplementedError

    # ---- public API ----

    def _has_backup(self) -> bool:
        return False

    def save(self, tasks: Sequence[Task]) -> None:
        self._save(tasks, backup=True)

    def _save(self, tasks: Sequence[Task], *, backup: bool) -> None:
        if backup:
            try:
                self._backup()
            except Exception as e:
                logger.warning("Could not create backup: %s", e)

        try:
            data = encode_tasks(tasks)
            self._write_primary(data)
        except Exception as e:
            raise StorageWriteError(f"Failed to save todos: {e}") from e

        logger.info("Saved %d todos to %s", len(tasks), self.strategy.display_name)

        try:
            stats = compute_statistics(tasks)
            self._write_statistics(encode_json_object(stats.to_record()))
        except Exception as e:
            logger.warning("Could not save statistics: %s", e)

        try:
            self._notifier.notify()
        except Exception:
            logger.exception("Refresh notifier failed after save.")

    def load(self) -> LoadResult:
        try:
            data = self._read_primary()
            if data is None:
                if self._has_backup():
                    return self._restore_from_backup(FileNotFoundError("primary record is missing"))
                logger.info("No existing todos in %s - starting fresh", self.strategy.display_name)
                return LoadResult(tasks=[], outcome=LoadOutcome.FRESH)
            tasks = decode_tasks(data)
        except Exception as e:
            logger.error("Error loading todos from %s: %s", self.strategy.display_name, e)
            return self._restore_from_backup(e)

        logger.info("Loaded %d todos from %s", len(tasks), self.strategy.display_name)
        return LoadResult(tasks=tasks, outcome=LoadOutcome.LOADED)

    def _restore_from_backup(self, cause: Exception) -> LoadResult:
        try:
            data = self._read_backup()
        except Exception as e:
            logger.error("Error reading backup: %s", e)
            return LoadResult(
                outcome=LoadOutcome.FAILED,
                message=f"Failed to load data and backup: {e}",
            )

        if data is None:
            return LoadResult(outcome=LoadOutcome.FAILED, message=MSG_NO_BACKUP)

        try:
            tasks = decode_tasks(data)
        except CorruptRecordError as e:
            logger.error("Error loading backup: %s", e)
            return LoadResult(
                outcome=LoadOutcome.FAILED,
                message=f"Failed to load data and backup: {e}",
            )

        logger.info("Restored %d todos from backup (primary failed: %s)", len(tasks), cause)

        # Self-heal: the restored set becomes the primary record again.
        # No backup step here, it would copy the broken primary over the good backup.
        try:
            self._save(tasks, backup=False)
        except StorageWriteError as e:
            logger.error("Re-saving restored backup failed: %s", e)
            return LoadResult(
                tasks=tasks,
                outcome=LoadOutcome.RESTORED,
                message=f"{MSG_RESTORED} (re-save failed: {e})",
            )

        return LoadResult(tasks=tasks, outcome=LoadOutcome.RESTORED, message=MSG_RESTORED)

    # ---- export / import ----

    @staticmethod
    def export_json(tasks: Sequence[Task]) -> str:
        return encode_tasks(tasks).decode("utf-8")

    @staticmethod
    def import_json(text: str) -> list[Task]:
        return decode_tasks(text)


def _atomic_write(path: Path, data: bytes) -> None:
    """Write to a temp file in the same directory, fsync, then os.replace over `path`."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(Exception):
            tmp.unlink()
        raise


class FilePersistence(PersistenceEngine):
    """JSON files under the directory the selector committed to (shared or private)."""

    def __init__(
        self,
        root: str | Path,
        *,
        strategy: StorageStrategy = StorageStrategy.SHARED_CONTAINER,
        notifier: RefreshNotifier | None = None,
    ) -> None:
        super().__init__(notifier)
        if not strategy.is_file_based:
            raise ValueError(f"{strategy} is not a file-based strategy")
        self.strategy = strategy
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def todos_path(self) -> Path:
        return self._root / TODOS_FILENAME

    @property
    def backup_path(self) -> Path:
        return self._root / BACKUP_FILENAME

    @property
    def stats_path(self) -> Path:
        return self._root / STATS_FILENAME

    def _read_primary(self) -> bytes | None:
        try:
            return self.todos_path.read_bytes()
        except FileNotFoundError:
            return None

    def _write_primary(self, data: bytes) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        _atomic_write(self.todos_path, data)

    def _backup(self) -> None:
        if not self.todos_path.exists():
            return
        # Copy through a temp name so a reader never sees a half-copied backup.
        tmp = self.backup_path.with_name(f".{BACKUP_FILENAME}.{os.getpid()}.tmp")
        try:
            shutil.copyfile(self.todos_path, tmp)
            os.replace(tmp, self.backup_path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()

    def _has_backup(self) -> bool:
        return self.backup_path.is_file()

    def _read_backup(self) -> bytes | None:
        try:
            return self.backup_path.read_bytes()
        except FileNotFoundError:
            return None

    def _write_statistics(self, data: bytes) -> None:
        _atomic_write(self.stats_path, data)


class KeyValuePersistence(PersistenceEngine):
    """
    Whole collection under one namespaced key.

    No backup record: the store's own durability is assumed.
    """

    strategy = StorageStrategy.KEY_VALUE

    def __init__(self, store: KeyValueStore, *, notifier: RefreshNotifier | None = None) -> None:
        super().__init__(notifier)
        self._store = store

    def _read_primary(self) -> bytes | None:
        return self._store.get(KV_DATA_KEY)

    def _write_primary(self, data: bytes) -> None:
        self._store.set(KV_DATA_KEY, data)

    def _write_statistics(self, data: bytes) -> None:
        self._store.set(KV_STATS_KEY, data)


def build_persistence(
    strategy: StorageStrategy,
    *,
    root: Path | None,
    kv_store: KeyValueStore,
    notifier: RefreshNotifier | None = None,
) -> PersistenceEngine:
    if strategy is StorageStrategy.KEY_VALUE:
        return KeyValuePersistence(kv_store, notifier=notifier)
    if strategy in (StorageStrategy.SHARED_CONTAINER, StorageStrategy.PRIVATE_DOCUMENTS):
        if root is None:
            raise ValueError(f"{strategy.display_name} storage needs a root directory")
        return FilePersistence(root, strategy=strategy, notifier=notifier)
    raise ValueError(f"unhandled storage strategy: {strategy!r}")
