"""
Bulk clearing and hard reset of the ledger store.
"""

import asyncio
import logging
import sqlite3
from pathlib import Path

from tallybook.errors import StorageError

from .base import LEDGER_TABLES, ConnectionManager

logger = logging.getLogger(__name__)

SIDE_FILE_SUFFIXES = ("-wal", "-shm", "-journal")


class MaintenanceRepository:
    """Table-level and file-level wipes. Confirmation is the caller's job."""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def clear_table(self, table: str) -> int:
        """Delete every row of one ledger table."""
        if table not in LEDGER_TABLES:
            raise ValueError(f"Unknown ledger table: {table}")

        def remove(conn: sqlite3.Connection) -> int:
            return conn.execute(f"DELETE FROM {table}").rowcount

        count = await self.manager.run(remove)
        logger.info(f"Cleared {count} rows from {table}")
        return count

    async def clear_all(self) -> dict[str, int]:
        """Empty all four ledger tables in one transaction."""

        def remove(conn: sqlite3.Connection) -> dict[str, int]:
            return {
                table: conn.execute(f"DELETE FROM {table}").rowcount
                for table in LEDGER_TABLES
            }

        counts = await self.manager.run_in_transaction(remove)
        logger.info(f"Cleared all ledger data: {counts}")
        return counts

    async def reset_database(self) -> list[Path]:
        """
        Close the handle and delete the database file and its side files.

        The next initialize() starts from an empty store.

        Returns:
            The files that were removed
        """
        await self.manager.close()

        db_path = self.manager.db_path
        candidates = [db_path] + [
            db_path.with_name(db_path.name + suffix) for suffix in SIDE_FILE_SUFFIXES
        ]

        def unlink() -> list[Path]:
            removed = []
            for path in candidates:
                if path.exists():
                    path.unlink()
                    removed.append(path)
            return removed

        try:
            removed = await asyncio.to_thread(unlink)
        except OSError as e:
            logger.error(f"Failed to delete database files: {e}", exc_info=True)
            raise StorageError(f"Could not reset database: {e}") from e

        logger.warning(f"Database reset, removed {[str(p) for p in removed]}")
        return removed
