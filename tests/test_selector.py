# tests/test_selector.py

from __future__ import annotations

import shutil
from pathlib import Path

from todo_companion.storage.selector import StorageSelector
from todo_companion.tasks.task_models import StorageStrategy


def test_shared_container_preferred(tmp_path: Path) -> None:
    shared = tmp_path / "group" / "container"
    sel = StorageSelector(shared_dir=shared, private_dir=tmp_path / "private").select()

    assert sel.strategy is StorageStrategy.SHARED_CONTAINER
    assert sel.root == shared
    assert sel.can_sync_with_widget()
    assert shared.is_dir(), "missing shared dir is created"
    assert list(shared.iterdir()) == [], "probe file is cleaned up"


def test_falls_back_to_private_dir_per_role(tmp_path: Path, blocked_dir: Path) -> None:
    selector = StorageSelector(
        shared_dir=blocked_dir / "shared",
        private_dir=tmp_path / "private",
        process_role="widget",
    )
    sel = selector.select()

    assert sel.strategy is StorageStrategy.PRIVATE_DOCUMENTS
    assert sel.root == tmp_path / "private" / "widget"
    assert not selector.can_sync_with_widget()
    assert len(sel.probe_failures) == 1
    assert "Documents Directory" in selector.describe()


def test_unresolvable_shared_location_is_a_probe_failure(tmp_path: Path) -> None:
    sel = StorageSelector(shared_dir=None, private_dir=tmp_path / "private").select()
    assert sel.strategy is StorageStrategy.PRIVATE_DOCUMENTS
    assert "not configured" in sel.probe_failures[0]


def test_all_probes_fail_key_value_fallback(blocked_dir: Path) -> None:
    selector = StorageSelector(shared_dir=blocked_dir / "a", private_dir=blocked_dir / "b")
    sel = selector.select()

    assert sel.strategy is StorageStrategy.KEY_VALUE
    assert sel.root is None
    assert len(sel.probe_failures) == 2
    assert not sel.can_sync_with_widget()


def test_commitment_holds_until_explicit_refresh(tmp_path: Path) -> None:
    shared = tmp_path / "shared"
    selector = StorageSelector(shared_dir=shared, private_dir=tmp_path / "private")
    first = selector.select()
    assert first.strategy is StorageStrategy.SHARED_CONTAINER

    # Make the shared location unusable: a file where the directory was.
    shutil.rmtree(shared)
    shared.write_text("blocked", "utf-8")

    assert selector.select() is first, "no re-probing mid-session"
    assert selector.strategy is StorageStrategy.SHARED_CONTAINER

    again = selector.refresh()
    assert again.strategy is StorageStrategy.PRIVATE_DOCUMENTS
    assert selector.select() is again


def test_describe_before_selection(tmp_path: Path) -> None:
    selector = StorageSelector(shared_dir=tmp_path, private_dir=None)
    assert selector.strategy is None
    assert "not selected" in selector.describe()
