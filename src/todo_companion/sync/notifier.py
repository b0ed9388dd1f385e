# src/todo_companion/sync/notifier.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class NullNotifier:
    def notify(self) -> None:
        return


class CallbackNotifier:
    """In-process notifier: forwards each signal to a plain callable."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback

    def notify(self) -> None:
        try:
            self._callback()
        except Exception:
            logger.exception("Refresh callback failed.")


@dataclass(frozen=True, slots=True)
class ChangeMarker:
    counter: int
    written_at: float
    pid: int


def read_marker(path: str | Path) -> ChangeMarker | None:
    """Best-effort read of a change marker. Returns None if absent or unreadable."""
    p = Path(path)
    try:
        data = json.loads(p.read_text("utf-8"))
        return ChangeMarker(
            counter=int(data.get("counter", 0)),
            written_at=float(data.get("writtenAt", 0.0)),
            pid=int(data.get("pid", 0)),
        )
    except FileNotFoundError:
        return None
    except Exception:
        logger.debug("Unreadable change marker at %s", p, exc_info=True)
        return None


class MarkerFileNotifier:
    """
    Cross-process refresh transport: a small JSON marker file that is
    atomically rewritten after every durable save.

    The widget host polls the marker (see widget.provider.run_change_watcher)
    and re-queries when the counter or writer changes.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._counter = 0

    @property
    def path(self) -> Path:
        return self._path

    def notify(self) -> None:
        with self._lock:
            self._counter += 1
            payload = {"counter": self._counter, "writtenAt": time.time(), "pid": os.getpid()}
            tmp = self._path.with_name(f"{self._path.name}.{os.getpid()}.tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(payload), "utf-8")
                os.replace(tmp, self._path)
            except Exception:
                logger.exception("Failed to write change marker %s", self._path)
                with contextlib.suppress(Exception):
                    tmp.unlink()
                return
        logger.debug("Change marker bumped counter=%s path=%s", self._counter, self._path)


MARKER_FILENAME = ".todos-changed"


def default_notifier(root: Path | None) -> MarkerFileNotifier | NullNotifier:
    """Marker file next to the data for file-based storage; nothing to poll otherwise."""
    if root is None:
        return NullNotifier()
    return MarkerFileNotifier(Path(root) / MARKER_FILENAME)
