# tests/test_commands.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from todo_companion.cli.commands import CommandRegistry, parse_due, registry
from todo_companion.tasks.task_models import TaskPriority


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(state, '/a x "y z"') == "h2:x,y z"
    assert await reg.handle(state, "/AA") == "h2:"
    assert await reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_add_list_done_flow(state) -> None:
    await state.manager.start()

    reply = await registry.handle(state, "/add Buy milk !high @Errands | two litres")
    assert reply is not None and reply.startswith("Added:")
    (task,) = state.manager.tasks
    assert (task.title, task.priority, task.category, task.subtitle) == (
        "Buy milk",
        TaskPriority.HIGH,
        "Errands",
        "two litres",
    )

    listing = await registry.handle(state, "/list open")
    assert "1. [ ] Buy milk" in (listing or "")

    assert await registry.handle(state, "/done 1") == "Completed: Buy milk"
    assert state.manager.get(task.id).is_completed
    assert await registry.handle(state, f"/toggle {task.id[:8]}") == "Reopened: Buy milk"
    assert "No such todo" in (await registry.handle(state, "/done 9") or "")


@pytest.mark.asyncio
async def test_edit_rm_and_clear(state) -> None:
    await state.manager.start()
    await registry.handle(state, "/add Draft")
    await registry.handle(state, "/list")

    reply = await registry.handle(state, "/edit 1 title=Final priority=critical due=none")
    assert reply is not None and reply.startswith("Updated:")
    (task,) = state.manager.tasks
    assert (task.title, task.priority, task.due_date) == ("Final", TaskPriority.CRITICAL, None)

    assert "Unknown field" in (await registry.handle(state, "/edit 1 colour=red") or "")
    assert "Cannot edit" in (await registry.handle(state, "/edit 1 priority=urgent") or "")

    assert "Confirm" in (await registry.handle(state, "/clear") or "")
    assert await registry.handle(state, "/rm 1") == "Deleted: Final"
    assert state.manager.tasks == ()


@pytest.mark.asyncio
async def test_add_rejects_blank_title(state) -> None:
    await state.manager.start()
    reply = await registry.handle(state, "/add !high")
    assert reply is not None and reply.startswith("Cannot add")
    assert state.manager.tasks == ()


@pytest.mark.asyncio
async def test_stats_diag_and_refresh(state) -> None:
    await state.manager.start()
    await registry.handle(state, "/add a")
    await registry.handle(state, "/add b")

    assert "Total: 2" in (await registry.handle(state, "/stats") or "")

    diag = await registry.handle(state, "/diag") or ""
    assert "Storage Strategy: Shared Container" in diag
    assert "Can Sync with Widget: Yes" in diag

    assert await registry.handle(state, "/refresh") == "Reloaded 2 todos (Synced)."


@pytest.mark.asyncio
async def test_export_then_import(state, tmp_path) -> None:
    await state.manager.start()
    await registry.handle(state, "/add exported")
    out = tmp_path / "export.json"

    assert "Exported 1 todos" in (await registry.handle(state, f"/export {out}") or "")
    assert await registry.handle(state, f"/import {out}") == "Imported 0 todos."

    bad = tmp_path / "bad.json"
    bad.write_text("[1]", "utf-8")
    assert "not a todo export" in (await registry.handle(state, f"/import {bad}") or "")


def test_parse_due() -> None:
    now = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)
    assert parse_due("+30m", now) == now + timedelta(minutes=30)
    assert parse_due("2h", now) == now + timedelta(hours=2)
    assert parse_due("-1d", now) == now - timedelta(days=1)
    assert parse_due("none", now) is None

    tomorrow = parse_due("tomorrow", now)
    assert tomorrow is not None
    assert (tomorrow.hour, tomorrow.minute) == (23, 59)
    assert tomorrow.date() == (now.astimezone() + timedelta(days=1)).date()

    assert parse_due("2025-03-01T09:30+02:00", now) == datetime(2025, 3, 1, 7, 30, tzinfo=UTC)
    assert parse_due("2025-03-01", now).tzinfo is not None

    with pytest.raises(ValueError):
        parse_due("someday", now)
