# src/todo_companion/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import re
import shlex
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, cast

from ..core.state import AppState
from ..storage.errors import CorruptRecordError
from ..tasks.task_models import Task, TaskPriority, utc_now
from ..widget.provider import WidgetTimelineProvider

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            result = cast(CommandHandler3, handler)(state, args, emit)
        else:
            result = cast(CommandHandler2, handler)(state, args)

        if inspect.isawaitable(result):
            return await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing / formatting helpers ----

_REL_DUE = re.compile(r"^([+-]?)(\d+)([mhdw])$")
_UNITS = {"m": "minutes", "h": "hours", "d": "days", "w": "weeks"}


def parse_due(raw: str, now: datetime | None = None) -> datetime | None:
    """
    Parse a due-date argument:
      +30m, +2h, -1d, 3w  (relative to now)
      today, tomorrow     (end of that local day, 23:59)
      2025-03-01, 2025-03-01T09:30 (local time unless an offset is given)
      none / clear        -> None
    """
    if now is None:
        now = utc_now()
    s = raw.strip().lower()
    if s in ("none", "clear", "-"):
        return None

    m = _REL_DUE.match(s)
    if m:
        sign, amount, unit = m.groups()
        delta = timedelta(**{_UNITS[unit]: int(amount)})
        return now - delta if sign == "-" else now + delta

    if s in ("today", "tomorrow"):
        local = now.astimezone()
        if s == "tomorrow":
            local += timedelta(days=1)
        return local.replace(hour=23, minute=59, second=0, microsecond=0)

    try:
        dt = datetime.fromisoformat(raw.strip())
    except ValueError:
        raise ValueError(f"unrecognized due date: {raw!r}") from None
    return dt if dt.tzinfo is not None else dt.astimezone()


def format_task(task: Task, index: int | None = None, now: datetime | None = None) -> str:
    now = now or utc_now()
    mark = "x" if task.is_completed else " "
    head = f"{index}. " if index is not None else ""
    line = f"{head}[{mark}] {task.title} ({task.priority.display_name}) #{task.id[:8]}"
    extras: list[str] = []
    if task.category:
        extras.append(f"@{task.category}")
    due = task.time_until_due_at(now)
    if due:
        extras.append(due)
    if extras:
        line += " - " + ", ".join(extras)
    if task.subtitle:
        line += f"\n      {task.subtitle}"
    return line


def _render_list(state: AppState, title: str, tasks: list[Task]) -> str:
    state.last_listing = [t.id for t in tasks]
    if not tasks:
        return f"{title}: nothing here."
    now = utc_now()
    lines = [f"{title} ({len(tasks)}):"]
    lines.extend(format_task(t, i, now) for i, t in enumerate(tasks, start=1))
    return "\n".join(lines)


def resolve_task(state: AppState, ref: str) -> Task | None:
    """Accept a number from the last listing, or a (prefix of a) task id."""
    manager = state.manager
    ref = ref.strip().lstrip("#")
    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(state.last_listing):
            return manager.get(state.last_listing[idx])
        return None
    matches = [t for t in manager.tasks if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _split_add_args(args: list[str]) -> dict[str, Any]:
    """
    /add Buy milk !high @Errands due:+2h | two litres
    Tokens: !priority, @category, due:<when>; text after "|" is the subtitle.
    """
    title_parts: list[str] = []
    subtitle_parts: list[str] = []
    out: dict[str, Any] = {}
    target = title_parts
    for tok in args:
        if tok == "|":
            target = subtitle_parts
            continue
        if tok.startswith("!") and len(tok) > 1:
            out["priority"] = TaskPriority.parse(tok[1:])
        elif tok.startswith("@") and len(tok) > 1:
            out["category"] = tok[1:]
        elif tok.lower().startswith("due:"):
            out["due_date"] = parse_due(tok[4:])
        else:
            target.append(tok)
    out["title"] = " ".join(title_parts)
    if subtitle_parts:
        out["subtitle"] = " ".join(subtitle_parts)
    return out


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /add <title> [!low|!medium|!high|!critical] [@category] [due:+2h|today|2025-03-01] [| subtitle]"
    try:
        fields = _split_add_args(args)
        task = state.manager.create(**fields)
    except ValueError as e:
        return f"Cannot add: {e}"
    return f"Added: {format_task(task)}"


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list        -> everything (open first)
    /list open   -> incomplete, most urgent first
    /list done   -> recently completed
    """
    manager = state.manager
    sub = args[0].lower() if args else "all"
    if sub in ("open", "todo", "pending"):
        return _render_list(state, "Open", manager.fetch_incomplete())
    if sub in ("done", "completed"):
        return _render_list(state, "Recently completed", manager.fetch_recently_completed(limit=20))
    if sub == "high":
        return _render_list(state, "High priority", manager.fetch_high_priority(limit=20))
    return _render_list(state, "All", manager.fetch_all())


def cmd_today(state: AppState, args: list[str]) -> str:
    return _render_list(state, "Due today", state.manager.fetch_due_today())


def cmd_overdue(state: AppState, args: list[str]) -> str:
    return _render_list(state, "Overdue", state.manager.fetch_overdue())


def cmd_cat(state: AppState, args: list[str]) -> str:
    if not args:
        cats = state.manager.unique_categories()
        return "Categories: " + (", ".join(cats) if cats else "(none)")
    name = " ".join(args)
    return _render_list(state, f"Category {name}", state.manager.fetch_by_category(name))


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <number|id>"
    task = resolve_task(state, args[0])
    if task is None:
        return f"No such todo: {args[0]}"
    toggled = state.manager.toggle_complete(task)
    if toggled is None:
        return f"No such todo: {args[0]}"
    return ("Completed: " if toggled.is_completed else "Reopened: ") + toggled.title


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <number|id> title=... subtitle=... priority=high category=Work due=+1d"""
    if len(args) < 2:
        return "Usage: /edit <number|id> field=value ... (title, subtitle, priority, category, due)"
    task = resolve_task(state, args[0])
    if task is None:
        return f"No such todo: {args[0]}"

    changes: dict[str, Any] = {}
    try:
        for pair in args[1:]:
            key, sep, value = pair.partition("=")
            if not sep:
                return f"Expected field=value, got {pair!r}"
            key = key.strip().lower()
            if key == "title":
                changes["title"] = value
            elif key == "subtitle":
                changes["subtitle"] = value or None
            elif key == "priority":
                changes["priority"] = TaskPriority.parse(value)
            elif key == "category":
                changes["category"] = value or None
            elif key == "due":
                changes["due_date"] = parse_due(value)
            else:
                return f"Unknown field: {key}"
        updated = state.manager.update_fields(task.id, **changes)
    except ValueError as e:
        return f"Cannot edit: {e}"

    if updated is None:
        return f"No such todo: {args[0]}"
    return f"Updated: {format_task(updated)}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <number|id>"
    task = resolve_task(state, args[0])
    if task is None or not state.manager.delete(task):
        return f"No such todo: {args[0]}"
    return f"Deleted: {task.title}"


def cmd_clear(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes every todo. Confirm with: /clear yes"
    state.manager.clear_all()
    return "All todos deleted."


def cmd_stats(state: AppState, args: list[str]) -> str:
    s = state.manager.statistics()
    return (
        "Statistics:\n"
        f"  Total: {s.total}\n"
        f"  Completed: {s.completed}\n"
        f"  Pending: {s.pending}\n"
        f"  Overdue: {s.overdue}\n"
        f"  Due today: {s.due_today}\n"
        f"  Completion: {s.completion_percentage}%\n"
        f"  Healthy: {'yes' if s.is_healthy else 'no'}"
    )


def cmd_diag(state: AppState, args: list[str]) -> str:
    lines = ["Diagnostics:"]
    lines.extend(f"  {line}" for line in state.manager.run_diagnostics())
    lines.append(f"  Storage: {state.manager.storage_info()}")
    if not state.manager.can_sync_with_widget():
        lines.append("  WARNING: the widget cannot see changes made here.")
    return "\n".join(lines)


async def cmd_refresh(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /refresh          -> reload from the current medium
    /refresh storage  -> re-probe storage mediums, then reload
    """
    manager = state.manager
    if args and args[0].lower() == "storage":
        if emit:
            with contextlib.suppress(Exception):
                emit("Re-probing storage...")
        await manager.refresh_storage()
    else:
        await manager.refresh()
    return f"Reloaded {len(manager.tasks)} todos ({manager.status.display_name})."


async def cmd_widget(state: AppState, args: list[str]) -> str:
    settings = state.settings
    provider = WidgetTimelineProvider(
        state.manager,
        limit=getattr(settings, "widget_limit", 10),
        urgent_minutes=getattr(settings, "widget_urgent_minutes", 5),
        default_minutes=getattr(settings, "widget_default_minutes", 15),
    )
    entry = await provider.get_timeline()
    minutes = int((entry.next_refresh - entry.date).total_seconds() // 60)
    body = _render_list(state, "Widget preview", entry.tasks)
    return f"{body}\nNext widget refresh in {minutes} min; completion {entry.statistics.completion_percentage}%."


def cmd_export(state: AppState, args: list[str]) -> str:
    text = state.manager.export_json()
    if not args:
        return text
    path = Path(args[0]).expanduser()
    try:
        path.write_text(text, "utf-8")
    except OSError as e:
        logger.exception("Export to %s failed", path)
        return f"Export failed: {e}"
    return f"Exported {len(state.manager.tasks)} todos to {path}"


def cmd_import(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /import <path>"
    path = Path(args[0]).expanduser()
    try:
        added = state.manager.import_json(path.read_text("utf-8"))
    except OSError as e:
        return f"Import failed: {e}"
    except CorruptRecordError as e:
        return f"Import failed: not a todo export ({e})"
    return f"Imported {added} todos."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Add a todo: /add Buy milk !high @Errands due:+2h")
registry.register("list", cmd_list, help_text="List todos: /list | /list open | /list done | /list high.", aliases=["ls"])
registry.register("today", cmd_today, help_text="Todos due today.")
registry.register("overdue", cmd_overdue, help_text="Overdue todos.")
registry.register("cat", cmd_cat, help_text="Categories, or todos in one: /cat Work.")
registry.register("done", cmd_done, help_text="Toggle completion: /done 2 | /done <id>.", aliases=["toggle"])
registry.register("edit", cmd_edit, help_text="Edit fields: /edit 2 priority=high due=tomorrow.")
registry.register("rm", cmd_rm, help_text="Delete a todo: /rm 2.", aliases=["del"])
registry.register("clear", cmd_clear, help_text="Delete every todo: /clear yes.")
registry.register("stats", cmd_stats, help_text="Completion statistics.")
registry.register("diag", cmd_diag, help_text="Storage / sync diagnostics.")
registry.register("refresh", cmd_refresh, help_text="Reload data: /refresh | /refresh storage.")
registry.register("widget", cmd_widget, help_text="Preview what the widget shows.")
registry.register("export", cmd_export, help_text="Export JSON: /export [path].")
registry.register("import", cmd_import, help_text="Import a JSON export: /import <path>.")
