# tests/test_widget_provider.py

from __future__ import annotations

import asyncio
import contextlib
from datetime import timedelta
from pathlib import Path

import pytest

from todo_companion.connectors.widget_host import render_entry
from todo_companion.sync.notifier import MARKER_FILENAME, MarkerFileNotifier, read_marker
from todo_companion.tasks.task_models import Task
from todo_companion.widget.provider import (
    DEFAULT_REFRESH_MINUTES,
    URGENT_REFRESH_MINUTES,
    WidgetTimelineProvider,
    run_change_watcher,
    suggest_refresh_interval,
)

from .fakes import FixedClock


def test_refresh_interval_suggestion(noon_clock: FixedClock) -> None:
    now = noon_clock.now
    calm = [Task(title="someday"), Task(title="next week", due_date=now + timedelta(days=7))]
    assert suggest_refresh_interval(calm, now) == timedelta(minutes=DEFAULT_REFRESH_MINUTES)

    busy = calm + [Task(title="tonight", due_date=now + timedelta(hours=6))]
    assert suggest_refresh_interval(busy, now) == timedelta(minutes=URGENT_REFRESH_MINUTES)

    late = [Task(title="late", due_date=now - timedelta(days=2))]
    assert suggest_refresh_interval(late, now, urgent_minutes=1) == timedelta(minutes=1)


def test_placeholder_entry(make_manager, noon_clock: FixedClock) -> None:
    entry = WidgetTimelineProvider(make_manager(), clock=noon_clock).placeholder()
    assert entry.is_placeholder
    assert entry.tasks
    assert entry.statistics.total == len(entry.tasks)
    assert entry.next_refresh == noon_clock.now + timedelta(minutes=DEFAULT_REFRESH_MINUTES)


@pytest.mark.asyncio
async def test_timeline_waits_for_readiness(make_manager, noon_clock: FixedClock) -> None:
    m = make_manager(clock=noon_clock)
    provider = WidgetTimelineProvider(m, limit=2, clock=noon_clock)

    pending = asyncio.create_task(provider.get_timeline())
    await asyncio.sleep(0)
    assert not pending.done()

    await m.start()
    m.create("a")
    m.create("b", priority="high", due_date=noon_clock.now + timedelta(hours=1))
    noon_clock.advance(seconds=1)
    m.create("c")
    entry = await asyncio.wait_for(pending, timeout=1)

    # The entry reflects the collection as of the query, after readiness.
    assert [t.title for t in entry.tasks] == ["b", "c"]
    assert entry.statistics.total == 3
    assert entry.next_refresh - entry.date == timedelta(minutes=URGENT_REFRESH_MINUTES)
    assert "] b" in render_entry(entry)


def test_marker_notifier_bumps_counter(tmp_path: Path) -> None:
    path = tmp_path / MARKER_FILENAME
    notifier = MarkerFileNotifier(path)
    assert read_marker(path) is None

    notifier.notify()
    notifier.notify()

    marker = read_marker(path)
    assert marker is not None and marker.counter == 2


@pytest.mark.asyncio
async def test_change_watcher_reloads_after_other_process_saves(make_manager, tmp_path: Path) -> None:
    shared = tmp_path / "shared"
    app = make_manager(role="app", notifier=MarkerFileNotifier(shared / MARKER_FILENAME))
    widget = make_manager(role="widget")
    await app.start()
    await widget.start()

    reloaded = asyncio.Event()

    async def on_change() -> None:
        reloaded.set()

    watcher = asyncio.create_task(
        run_change_watcher(widget, shared / MARKER_FILENAME, interval_seconds=0.01, on_change=on_change)
    )
    try:
        # Let the watcher take its baseline reading before the app saves.
        await asyncio.sleep(0.05)
        t = app.create("written by the app")
        await app.flush()

        await asyncio.wait_for(reloaded.wait(), timeout=2)
        assert widget.get(t.id) == t
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
