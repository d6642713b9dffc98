"""
Ledger repository module for income and expense operations.

Handles:
- Validated inserts (one-off and recurring)
- Listing, lookup and deletion
- Aggregates (totals), recomputed from the full table on every call
"""

import logging
import sqlite3
from datetime import date
from typing import Any, Callable, Optional

from tallybook.errors import NotFoundError, ValidationError
from tallybook.models import EntryKind, LedgerEntry, entry_from_row
from tallybook.validation import (
    coerce_amount,
    validate_amount,
    validate_day_of_month,
    validate_string,
)

from .base import ConnectionManager

logger = logging.getLogger(__name__)


def current_period(day: date) -> str:
    """The YYYY-MM period a date falls in."""
    return day.strftime("%Y-%m")


def seed_period(recurring_date: str, today: date) -> Optional[str]:
    """
    Initial ``last_materialized`` for a new template.

    A template whose day has already come this month is itself this month's
    occurrence. One whose day is still ahead stays unmarked so the scan on
    that day materializes it.
    """
    if int(recurring_date) <= today.day:
        return current_period(today)
    return None


def validated_amount(value: Any) -> float:
    """Coerce and validate an amount, raising ValidationError on bad input."""
    amount = coerce_amount(value)
    validate_amount(amount if amount is not None else value).raise_for("amount")
    return amount  # type: ignore[return-value]


class LedgerRepository:
    """
    Shared implementation for the income and expense tables.

    Subclasses only pick the entry kind and the user-facing field name.
    """

    kind: EntryKind
    field_name: str

    def __init__(
        self,
        manager: ConnectionManager,
        clock: Callable[[], date] = date.today,
    ):
        """
        Initialize the repository.

        Args:
            manager: Connection manager owning the database handle
            clock: Returns today's date; injectable for tests
        """
        self.manager = manager
        self.clock = clock

    @property
    def table(self) -> str:
        return self.kind.table

    @property
    def label_column(self) -> str:
        return self.kind.label_column

    # =========================================================================
    # Create Operations
    # =========================================================================

    async def add(
        self,
        label: str,
        amount: Any,
        is_recurring: bool = False,
        recurring_date: Optional[str] = None,
    ) -> LedgerEntry:
        """
        Insert a new entry dated today.

        Args:
            label: Source (income) or item (expense) name
            amount: Non-negative amount; numeric strings such as "1.5k" are accepted
            is_recurring: Whether the entry repeats monthly
            recurring_date: Day of month the entry repeats on ("1".."31")

        Returns:
            The created entry with its ID

        Raises:
            ValidationError: If any input is invalid; nothing is written
        """
        validate_string(label, self.field_name).raise_for(self.label_column)
        value = validated_amount(amount)

        if is_recurring:
            if recurring_date in (None, ""):
                raise ValidationError(
                    "recurring_date", "Recurring date is required for recurring entries"
                )
            recurring_date = str(recurring_date).strip()
            validate_day_of_month(recurring_date).raise_for("recurring_date")
        else:
            recurring_date = None

        today = self.clock()
        last_materialized = seed_period(recurring_date, today) if is_recurring else None

        entry = entry_from_row(
            self.kind,
            {
                "id": None,
                self.label_column: label.strip(),
                "amount": value,
                "date": today.isoformat(),
                "is_recurring": is_recurring,
                "recurring_date": recurring_date,
                "last_materialized": last_materialized,
            },
        )

        def insert(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                f"""
                INSERT INTO {self.table} (
                    {self.label_column}, amount, date, is_recurring,
                    recurring_date, last_materialized
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.label,
                    entry.amount,
                    entry.date,
                    1 if is_recurring else 0,
                    entry.recurring_date,
                    entry.last_materialized,
                ),
            )
            return cursor.lastrowid

        entry.id = await self.manager.run(insert)
        logger.info(f"{self.kind.value.capitalize()} added: {entry.label}, {entry.amount}")
        return entry

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def fetch_all(self) -> list[LedgerEntry]:
        """All entries, newest date first."""

        def query(conn: sqlite3.Connection) -> list[LedgerEntry]:
            rows = conn.execute(
                f"SELECT * FROM {self.table} ORDER BY date DESC, id DESC"
            ).fetchall()
            return [entry_from_row(self.kind, row) for row in rows]

        return await self.manager.run(query)

    async def get(self, entry_id: int) -> LedgerEntry:
        """
        Get an entry by its ID.

        Raises:
            NotFoundError: If no entry has this ID
        """

        def query(conn: sqlite3.Connection) -> Optional[sqlite3.Row]:
            return conn.execute(
                f"SELECT * FROM {self.table} WHERE id = ?", (entry_id,)
            ).fetchone()

        row = await self.manager.run(query)
        if row is None:
            raise NotFoundError(self.kind.value, entry_id)
        return entry_from_row(self.kind, row)

    async def templates(self) -> list[LedgerEntry]:
        """Recurring templates: recurring rows that were not cloned from another row."""

        def query(conn: sqlite3.Connection) -> list[LedgerEntry]:
            rows = conn.execute(
                f"""
                SELECT * FROM {self.table}
                WHERE is_recurring = 1 AND template_id IS NULL
                ORDER BY id
                """
            ).fetchall()
            return [entry_from_row(self.kind, row) for row in rows]

        return await self.manager.run(query)

    async def total(self) -> float:
        """Sum of all amounts; 0 for an empty table."""

        def query(conn: sqlite3.Connection) -> float:
            row = conn.execute(
                f"SELECT COALESCE(SUM(amount), 0) AS total FROM {self.table}"
            ).fetchone()
            return float(row["total"])

        return await self.manager.run(query)

    # =========================================================================
    # Delete Operations
    # =========================================================================

    async def delete(self, entry_id: int) -> None:
        """
        Delete a single entry.

        Raises:
            NotFoundError: If no entry has this ID
        """

        def remove(conn: sqlite3.Connection) -> int:
            return conn.execute(
                f"DELETE FROM {self.table} WHERE id = ?", (entry_id,)
            ).rowcount

        if await self.manager.run(remove) == 0:
            raise NotFoundError(self.kind.value, entry_id)
        logger.info(f"{self.kind.value.capitalize()} with ID {entry_id} deleted successfully")


class IncomeRepository(LedgerRepository):
    """Repository for the income table."""

    kind = EntryKind.INCOME
    field_name = "Source"


class ExpenseRepository(LedgerRepository):
    """Repository for the expenses table."""

    kind = EntryKind.EXPENSE
    field_name = "Item name"

