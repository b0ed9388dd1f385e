# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from todo_companion.config import Settings


def test_defaults_follow_data_dir(monkeypatch, tmp_path: Path) -> None:
    for name in ("TODO_SHARED_DIR", "TODO_PRIVATE_DIR", "TODO_KV_DB_PATH", "TODO_PROCESS_ROLE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TODO_DATA_DIR", str(tmp_path))

    s = Settings.from_env()

    assert s.process_role == "app"
    assert s.shared_dir == tmp_path / "shared"
    assert s.private_dir == tmp_path / "private"
    assert s.kv_db_path == tmp_path / "defaults.sqlite3"


def test_overrides_and_sanitizing(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TODO_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TODO_SHARED_DIR", "")
    monkeypatch.setenv("TODO_PROCESS_ROLE", "Widget")
    monkeypatch.setenv("TODO_SEED_SAMPLE_DATA", "no")
    monkeypatch.setenv("TODO_WIDGET_LIMIT", "0")
    monkeypatch.setenv("TODO_WIDGET_URGENT_MINUTES", "not a number")
    monkeypatch.setenv("TODO_WATCH_INTERVAL_SECONDS", "0.5")

    s = Settings.from_env()

    assert s.shared_dir is None, "empty value disables the shared container"
    assert s.process_role == "widget"
    assert s.seed_sample_data is False
    assert s.widget_limit == 1
    assert s.widget_urgent_minutes == 5
    assert s.watch_interval_seconds == 0.5


def test_unknown_role_falls_back_to_app(monkeypatch) -> None:
    monkeypatch.setenv("TODO_PROCESS_ROLE", "daemon")
    assert Settings.from_env().process_role == "app"
