# src/todo_companion/connectors/widget_host.py

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..core.state import AppState
from ..sync.notifier import MARKER_FILENAME
from ..widget.provider import WidgetEntry, WidgetTimelineProvider, run_change_watcher

logger = logging.getLogger(__name__)


def render_entry(entry: WidgetEntry) -> str:
    stats = entry.statistics
    lines = [
        f"Todos: {stats.pending} pending, {stats.overdue} overdue, {stats.due_today} due today "
        f"({stats.completion_percentage}% done)"
    ]
    for t in entry.tasks:
        due = t.time_until_due_at(entry.date)
        lines.append(f"  - [{t.priority.display_name}] {t.title}" + (f" ({due})" if due else ""))
    return "\n".join(lines)


async def run_widget_host(state: AppState) -> None:
    """
    Headless widget host: re-render on the suggested schedule, or as soon as the
    app process signals a save through the change marker.

    Runs until cancelled.
    """
    settings = state.settings
    manager = state.manager
    provider = WidgetTimelineProvider(
        manager,
        limit=settings.widget_limit,
        urgent_minutes=settings.widget_urgent_minutes,
        default_minutes=settings.widget_default_minutes,
    )

    await manager.wait_until_ready()
    if not manager.can_sync_with_widget():
        logger.warning("Widget storage is %s; app changes will not show up here.", manager.storage_info())

    changed = asyncio.Event()

    async def _on_change() -> None:
        changed.set()

    watcher: asyncio.Task[None] | None = None
    root = manager.selection.root if manager.selection else None
    if root is not None:
        watcher = asyncio.create_task(
            run_change_watcher(
                manager,
                root / MARKER_FILENAME,
                interval_seconds=settings.watch_interval_seconds,
                on_change=_on_change,
            )
        )

    try:
        while True:
            entry = await provider.get_timeline()
            logger.info("Widget timeline:\n%s", render_entry(entry))

            timeout = max(1.0, (entry.next_refresh - entry.date).total_seconds())
            changed.clear()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(changed.wait(), timeout=timeout)
    finally:
        if watcher is not None:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
