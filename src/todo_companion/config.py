# src/todo_companion/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object per process (the app and the widget host each build their own).
- Nothing at import time depends on the storage being reachable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TODO"

PROCESS_ROLES = ("app", "widget")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env (gitignored) fills in anything the real environment does not set.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_optional_path(name: str, default: Path) -> Path | None:
    """Like _env_path, but an explicitly empty value disables the location."""
    raw = os.getenv(name)
    if raw is None:
        return default
    if raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    process_role: str

    # ---- Storage locations ----
    data_dir: Path
    shared_dir: Path | None
    private_dir: Path
    kv_db_path: Path

    # ---- Behaviour ----
    seed_sample_data: bool
    console_enabled: bool

    # ---- Widget ----
    widget_limit: int
    widget_urgent_minutes: int
    widget_default_minutes: int
    watch_interval_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo-companion") or "todo-companion"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        process_role = _env(_k("PROCESS_ROLE"), "app").strip().lower()
        if process_role not in PROCESS_ROLES:
            process_role = "app"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo"))
        shared_dir = _env_optional_path(_k("SHARED_DIR"), data_dir / "shared")
        private_dir = _env_path(_k("PRIVATE_DIR"), data_dir / "private")
        kv_db_path = _env_path(_k("KV_DB_PATH"), data_dir / "defaults.sqlite3")

        seed_sample_data = _env_bool(_k("SEED_SAMPLE_DATA"), True)
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        widget_limit = max(1, _env_int(_k("WIDGET_LIMIT"), 10))
        widget_urgent_minutes = max(1, _env_int(_k("WIDGET_URGENT_MINUTES"), 5))
        widget_default_minutes = max(1, _env_int(_k("WIDGET_DEFAULT_MINUTES"), 15))
        watch_interval_seconds = max(0.1, _env_float(_k("WATCH_INTERVAL_SECONDS"), 2.0))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            process_role=process_role,
            data_dir=data_dir,
            shared_dir=shared_dir,
            private_dir=private_dir,
            kv_db_path=kv_db_path,
            seed_sample_data=seed_sample_data,
            console_enabled=console_enabled,
            widget_limit=widget_limit,
            widget_urgent_minutes=widget_urgent_minutes,
            widget_default_minutes=widget_default_minutes,
            watch_interval_seconds=watch_interval_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
