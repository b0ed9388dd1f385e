# src/todo_companion/storage/selector.py

"""
Storage backend selection.

At process start, probe the candidate mediums in priority order and commit to
the first one this process can actually write to:

1. shared container (visible to both the app and the widget process),
2. private per-role directory,
3. key-value fallback (always available, never probed).

The commitment holds for the process lifetime; refresh() re-probes only when
explicitly asked for (diagnostics).
"""

from __future__ import annotations

import logging
import os
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from ..tasks.task_models import StorageStrategy

logger = logging.getLogger(__name__)

_PROBE_PAYLOAD = "test"


@dataclass(frozen=True, slots=True)
class StorageSelection:
    strategy: StorageStrategy
    root: Path | None
    probe_failures: tuple[str, ...] = field(default_factory=tuple)

    def can_sync_with_widget(self) -> bool:
        return self.strategy is StorageStrategy.SHARED_CONTAINER


def probe_directory(directory: Path) -> None:
    """
    Write-then-read-then-delete round-trip on a throwaway file.

    Raises OSError (or ValueError on a read-back mismatch) when the directory
    is not usable from this process.
    """
    directory.mkdir(parents=True, exist_ok=True)
    probe = directory / f".probe-{os.getpid()}-{uuid.uuid4().hex[:8]}.txt"
    try:
        probe.write_text(_PROBE_PAYLOAD, "utf-8")
        if probe.read_text("utf-8") != _PROBE_PAYLOAD:
            raise ValueError(f"probe read-back mismatch in {directory}")
    finally:
        try:
            probe.unlink()
        except FileNotFoundError:
            pass


class StorageSelector:
    def __init__(
        self,
        *,
        shared_dir: str | Path | None,
        private_dir: str | Path | None,
        process_role: str = "app",
    ) -> None:
        self._shared_dir = Path(shared_dir).expanduser() if shared_dir else None
        self._private_dir = Path(private_dir).expanduser() if private_dir else None
        self._role = (process_role or "app").strip() or "app"
        self._lock = threading.Lock()
        self._selection: StorageSelection | None = None

    # ---- public API ----

    @property
    def selection(self) -> StorageSelection | None:
        return self._selection

    @property
    def strategy(self) -> StorageStrategy | None:
        return self._selection.strategy if self._selection else None

    @property
    def root(self) -> Path | None:
        return self._selection.root if self._selection else None

    def select(self) -> StorageSelection:
        """Probe once and commit. Later calls return the committed selection."""
        with self._lock:
            if self._selection is None:
                self._selection = self._probe_all()
            return self._selection

    def refresh(self) -> StorageSelection:
        """Drop the commitment and probe again (explicit diagnostics request only)."""
        with self._lock:
            logger.info("Re-probing storage mediums (was %s)", self.strategy)
            self._selection = self._probe_all()
            return self._selection

    def can_sync_with_widget(self) -> bool:
        return self._selection is not None and self._selection.can_sync_with_widget()

    def describe(self) -> str:
        sel = self._selection
        if sel is None:
            return "Storage not selected yet"
        text = sel.strategy.description
        if sel.root is not None:
            text += f" at {sel.root}"
        return text

    # ---- probing ----

    def _candidates(self) -> list[tuple[StorageStrategy, Path | None]]:
        private = self._private_dir / self._role if self._private_dir is not None else None
        return [
            (StorageStrategy.SHARED_CONTAINER, self._shared_dir),
            (StorageStrategy.PRIVATE_DOCUMENTS, private),
        ]

    def _probe_all(self) -> StorageSelection:
        failures: list[str] = []

        for strategy, directory in self._candidates():
            if directory is None:
                note = f"{strategy.display_name}: location not configured"
                logger.warning("%s storage unavailable: location not configured", strategy.display_name)
                failures.append(note)
                continue
            try:
                probe_directory(directory)
            except (OSError, ValueError) as e:
                logger.warning("%s storage failed at %s: %s", strategy.display_name, directory, e)
                failures.append(f"{strategy.display_name}: {e}")
                continue

            logger.info("Using %s storage at %s", strategy.display_name, directory)
            return StorageSelection(strategy=strategy, root=directory, probe_failures=tuple(failures))

        logger.warning("All file-based storage probes failed; using key-value fallback")
        return StorageSelection(
            strategy=StorageStrategy.KEY_VALUE,
            root=None,
            probe_failures=tuple(failures),
        )
