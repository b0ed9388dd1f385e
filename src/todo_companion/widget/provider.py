# src/todo_companion/widget/provider.py

from __future__ import annotations

"""
Widget-side glue.

The widget host is a separate process with its own TaskManager. It:
- waits for the manager's readiness gate before the first query,
- builds a timeline entry (ordered tasks + statistics + suggested next refresh),
- watches the change marker written after every durable save by the app process
  and re-loads when it moves.

The refresh interval is only a suggestion; the host decides its own schedule.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from ..sync.notifier import ChangeMarker, read_marker
from ..tasks.samples import placeholder_tasks
from ..tasks.task_manager import TaskManager
from ..tasks.task_models import Task, utc_now
from ..tasks.task_stats import TaskStatistics, compute_statistics

logger = logging.getLogger(__name__)

URGENT_REFRESH_MINUTES = 5
DEFAULT_REFRESH_MINUTES = 15


@dataclass(slots=True, frozen=True)
class WidgetEntry:
    date: datetime
    tasks: list[Task]
    statistics: TaskStatistics
    next_refresh: datetime
    is_placeholder: bool = False


def suggest_refresh_interval(
    tasks: Iterable[Task],
    now: datetime,
    *,
    urgent_minutes: int = URGENT_REFRESH_MINUTES,
    default_minutes: int = DEFAULT_REFRESH_MINUTES,
) -> timedelta:
    """Shorter interval when anything shown is overdue or due today."""
    urgent = any(t.is_overdue_at(now) or t.is_due_on(now) for t in tasks)
    return timedelta(minutes=urgent_minutes if urgent else default_minutes)


class WidgetTimelineProvider:
    def __init__(
        self,
        manager: TaskManager,
        *,
        limit: int = 10,
        urgent_minutes: int = URGENT_REFRESH_MINUTES,
        default_minutes: int = DEFAULT_REFRESH_MINUTES,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._manager = manager
        self._limit = limit
        self._urgent_minutes = urgent_minutes
        self._default_minutes = default_minutes
        self._clock = clock

    def placeholder(self) -> WidgetEntry:
        now = self._clock()
        tasks = placeholder_tasks(now)
        return WidgetEntry(
            date=now,
            tasks=tasks,
            statistics=compute_statistics(tasks, now),
            next_refresh=now + timedelta(minutes=self._default_minutes),
            is_placeholder=True,
        )

    async def get_timeline(self) -> WidgetEntry:
        await self._manager.wait_until_ready()

        now = self._clock()
        tasks = self._manager.widget_tasks(self._limit)
        stats = self._manager.statistics()
        interval = suggest_refresh_interval(
            tasks,
            now,
            urgent_minutes=self._urgent_minutes,
            default_minutes=self._default_minutes,
        )
        logger.debug("Widget timeline: %d todos, next update in %s", len(tasks), interval)
        return WidgetEntry(date=now, tasks=tasks, statistics=stats, next_refresh=now + interval)


def _marker_key(marker: ChangeMarker | None) -> tuple[int, int, float] | None:
    if marker is None:
        return None
    return (marker.pid, marker.counter, marker.written_at)


async def run_change_watcher(
    manager: TaskManager,
    marker_path: str | Path,
    *,
    interval_seconds: float = 2.0,
    on_change: Callable[[], Awaitable[None]] | None = None,
) -> None:
    """
    Poll the change marker and reload the manager when another process saved.

    To stop the watcher, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    await manager.wait_until_ready()

    last = _marker_key(await asyncio.to_thread(read_marker, marker_path))

    while True:
        await asyncio.sleep(sleep_s)

        current = _marker_key(await asyncio.to_thread(read_marker, marker_path))
        if current is None or current == last:
            continue
        last = current

        logger.info("Change marker moved; reloading todos.")
        try:
            await manager.refresh()
            if on_change is not None:
                await on_change()
        except Exception:
            logger.exception("Reload after change marker failed")
