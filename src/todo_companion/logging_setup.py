# src/todo_companion/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console filter for the app prompt and the widget host output.

    Every edit triggers a save, a statistics write and a marker bump; those
    records only reach the console at WARNING or above (a failed probe, a
    failed save). Everything else from todo_companion passes; captured
    warnings and other libraries need ERROR.
    """

    _QUIET_PREFIXES = (
        "todo_companion.storage.persistence",
        "todo_companion.storage.kv_store",
        "todo_companion.sync.",
    )

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("todo_companion."):
            # Saves happen on every edit; the console prompt would drown otherwise.
            if name.startswith(self._QUIET_PREFIXES):
                return record.levelno >= logging.WARNING
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/todo",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_name: str = "todo.log",
) -> None:
    """
    Route todo_companion logs to the console (filtered) and to <log_dir>/<log_name>.

    The app and the widget host pass different log_name values, so two processes
    sharing one data directory never interleave lines in the same file.
    The file keeps the per-save storage records the console hides.
    Call once per process, before the first record is emitted.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_name

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console (interactive)
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    # File (everything). App and widget processes write separate files.
    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
