# src/todo_companion/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the TaskManager, then runs the
front-end for this process role:
- "app": interactive console,
- "widget": headless widget host that re-renders on saves from the app.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_app_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..connectors.widget_host import run_widget_host
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(state: AppState) -> None:
    manager = state.manager
    await manager.start()

    try:
        if state.settings.process_role == "widget":
            await run_widget_host(state)
        elif state.settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled; nothing to run for role=app.")
    finally:
        # Let the last scheduled save land before the loop goes away.
        await manager.close()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(
        log_dir=settings.data_dir,
        console_level=console_level,
        log_name=f"{settings.process_role}.log",
    )

    logger.info("Starting %s (role=%s)...", settings.app_name, settings.process_role)

    state = create_app_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")

    logger.info("Bye.")


if __name__ == "__main__":
    main()
