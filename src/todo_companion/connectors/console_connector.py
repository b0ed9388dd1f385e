# src/todo_companion/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import SyncStatus

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


async def run_console_loop(state: AppState) -> None:
    """
    Interactive console for the app process.

    input() runs in a worker thread so scheduled saves keep flowing on the event loop
    while the prompt waits.
    """
    manager = state.manager
    logger.info("Console connector started (storage=%s).", manager.strategy.value if manager.strategy else None)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    if not manager.can_sync_with_widget():
        _print_ts(f"[WARN] {manager.storage_info()} - the widget will not see these todos.")
    if manager.last_error:
        _print_ts(f"[STORAGE] {manager.last_error}")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            # Bare text is a quick add.
            user_input = "/add " + user_input

        try:
            reply = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(f"[{_ts_local()}] {reply}")

        # Persistence failures never reject a command; surface them after the reply.
        await manager.flush()
        if manager.status is SyncStatus.FAILED and manager.last_error:
            _print_ts(f"[STORAGE] {manager.last_error}")

    logger.info("Console connector finished.")
