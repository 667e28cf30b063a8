"""Entry point for the snooker-pos Textual app."""

from __future__ import annotations

import logging
from pathlib import Path

from snooker_pos.config import Settings, load_settings
from snooker_pos.ledger import LedgerStore
from snooker_pos.store import SqliteKeyValueStore
from snooker_pos.tracker_app import TableTrackerApp


def configure_logging(settings: Settings) -> None:
    """Send log records to the debug log file; the terminal belongs to the TUI."""
    log_path = Path(settings.debug_log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=log_path,
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_app(settings: Settings) -> TableTrackerApp:
    ledger = LedgerStore(SqliteKeyValueStore(settings.db_path), key=settings.ledger_key)
    return TableTrackerApp(settings, ledger)


def main() -> None:
    """Run the Textual application."""
    settings = load_settings()
    configure_logging(settings)
    logging.getLogger(__name__).info("app_start settings=%r", settings)
    build_app(settings).run()


if __name__ == "__main__":
    main()
