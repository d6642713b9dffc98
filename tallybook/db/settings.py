"""
Preference storage for Tallybook.

A small key/value table for values the user configures, such as the budget
threshold that triggers an alert once total expenses reach it. Preferences
are not ledger data: clearing the ledger leaves them in place.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any, Optional

from tallybook.config import BUDGET_THRESHOLD_KEY
from tallybook.validation import coerce_amount, validate_threshold

from .base import ConnectionManager

logger = logging.getLogger(__name__)


class SettingsRepository:
    """Repository for user preferences in SQLite."""

    def __init__(self, manager: ConnectionManager):
        """
        Initialize the repository.

        Args:
            manager: Connection manager owning the database handle
        """
        self.manager = manager

    async def get(self, key: str) -> Optional[str]:
        """Get a stored value, or None if the key was never set."""

        def query(conn: sqlite3.Connection) -> Optional[str]:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

        return await self.manager.run(query)

    async def set(self, key: str, value: str) -> None:
        """Create or update a value."""
        now = datetime.now().isoformat()

        def upsert(conn: sqlite3.Connection):
            conn.execute(
                """
                INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, now),
            )

        await self.manager.run(upsert)
        logger.info(f"Updated setting {key}")

    async def get_budget_threshold(self) -> Optional[float]:
        """The stored budget threshold, or None when unset or unreadable."""
        raw = await self.get(BUDGET_THRESHOLD_KEY)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed budget threshold: {raw!r}")
            return None

    async def set_budget_threshold(self, threshold: Any) -> float:
        """
        Store the budget threshold.

        Raises:
            ValidationError: If the threshold is not a positive amount
        """
        value = coerce_amount(threshold)
        validate_threshold(value if value is not None else threshold).raise_for(
            "threshold"
        )
        await self.set(BUDGET_THRESHOLD_KEY, repr(value))
        return value  # type: ignore[return-value]
