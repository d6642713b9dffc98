"""
Runner for the Tallybook ledger service.

Loads configuration, wires the components together and keeps the
recurring-updates scheduler running until interrupted.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from tallybook.config import (
    DEFAULT_DB_PATH,
    VERSION,
    LOG_FILE,
    LOG_FORMAT,
    RECURRENCE_INTERVAL_HOURS,
    ensure_directories,
    get_log_level,
)
from tallybook.db import Tallybook, create_book
from tallybook.scheduler import setup_scheduler
from tallybook.services import DiscordWebhookNotifier, LogNotifier, Notifier

logger = logging.getLogger(__name__)


def configure_logging():
    """Send logs to the log file and stdout."""
    ensure_directories()
    logging.basicConfig(
        level=get_log_level(),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(LOG_FILE),
            logging.StreamHandler(sys.stdout),
        ],
    )


def build_notifier(webhook_url: Optional[str] = None) -> Notifier:
    """
    Pick the notifier for this process.

    Returns:
        A DiscordWebhookNotifier when a webhook URL is configured, else a LogNotifier
    """
    url = webhook_url or os.environ.get("TALLYBOOK_WEBHOOK_URL")
    if url:
        logger.info("Notifications will be posted to the configured Discord webhook")
        return DiscordWebhookNotifier(url)
    logger.info("TALLYBOOK_WEBHOOK_URL not set, notifications go to the log")
    return LogNotifier()


def build_book(db_path: Optional[Path] = None) -> Tallybook:
    """Composition root: one connection manager, one notifier, one facade."""
    path = Path(db_path or os.environ.get("TALLYBOOK_DB_PATH") or DEFAULT_DB_PATH)
    return create_book(path, notifier=build_notifier())


async def serve(book: Tallybook, interval_hours: float = RECURRENCE_INTERVAL_HOURS):
    """Initialize the store and run the scheduler until cancelled."""
    scheduler = None
    try:
        result = await book.initialize_database()
        if not result.ok:
            raise RuntimeError(f"Database initialization failed: {result.error}")

        scheduler = setup_scheduler(book, interval_hours)
        scheduler.start()
        await asyncio.Event().wait()
    finally:
        if scheduler is not None:
            scheduler.stop()
        await book.close()


def run():
    """Run the Tallybook service with comprehensive error handling."""
    configure_logging()
    try:
        env_path = Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.info(f"Loaded environment from {env_path}")
        else:
            logger.debug(f".env file not found at {env_path}")

        book = build_book()
        logger.info(f"Starting Tallybook {VERSION} with database {book.db_path}")
        print(f"Starting Tallybook ({book.db_path})...")

        try:
            asyncio.run(serve(book))
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, shutting down...")
            print("\nShutting down...")
        except RuntimeError as e:
            logger.error(f"Error running Tallybook: {e}", exc_info=True)
            print(f"\nError: {e}")
            print(f"Check {LOG_FILE} for more details.")
            sys.exit(1)
    except Exception as e:
        logger.critical(f"Critical error in run(): {e}", exc_info=True)
        print(f"\nCritical error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
