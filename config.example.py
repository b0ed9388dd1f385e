# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Run the app and the widget host as two processes with the same TODO_DATA_DIR
(or the same TODO_SHARED_DIR) and different TODO_PROCESS_ROLE values.

This file exists to make the repo self-documenting without opening config.py.
"""

ENV_VARS = {
    # App / logging
    "TODO_APP_NAME": "App display name (default: todo-companion).",
    "TODO_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "TODO_PROCESS_ROLE": "app (interactive console) or widget (headless widget host). Default: app.",
    # Storage locations (gitignored)
    "TODO_DATA_DIR": "Local data directory (default: .local/todo).",
    "TODO_SHARED_DIR": (
        "Shared container visible to both processes (default: <data_dir>/shared). "
        "Set to an empty value to disable it."
    ),
    "TODO_PRIVATE_DIR": "Per-role private directory root (default: <data_dir>/private).",
    "TODO_KV_DB_PATH": "Key-value fallback SQLite path (default: <data_dir>/defaults.sqlite3).",
    # Behaviour
    "TODO_SEED_SAMPLE_DATA": "Create sample todos on first run of the app role (true/false).",
    "TODO_CONSOLE_ENABLED": "Enable the console for the app role (true/false).",
    # Widget
    "TODO_WIDGET_LIMIT": "Max todos in a widget timeline entry (default: 10).",
    "TODO_WIDGET_URGENT_MINUTES": "Suggested refresh when something is overdue or due today (default: 5).",
    "TODO_WIDGET_DEFAULT_MINUTES": "Suggested refresh otherwise (default: 15).",
    "TODO_WATCH_INTERVAL_SECONDS": "How often the widget host polls the change marker (default: 2.0).",
}
