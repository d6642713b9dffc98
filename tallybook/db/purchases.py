"""
Planned purchases and the mark-as-bought workflow.

A planned purchase moves from planned to bought exactly once. Buying it
records an expense in the same transaction, so the flag and the expense
either both exist or neither does.
"""

import logging
import sqlite3
from datetime import date
from typing import Any, Callable, Optional

from tallybook.errors import ConflictError, NotFoundError
from tallybook.models import Expense, PlannedPurchase
from tallybook.validation import validate_full_date, validate_string

from .base import ConnectionManager
from .ledger import validated_amount

logger = logging.getLogger(__name__)


class PlannedPurchaseRepository:
    """Repository for planned purchases and their fulfillment."""

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

    async def add(
        self, item: str, amount: Any, due_date: Optional[str] = None
    ) -> PlannedPurchase:
        """
        Insert a planned purchase.

        Args:
            item: What will be bought
            amount: Expected cost
            due_date: Optional YYYY-MM-DD due date

        Returns:
            The created purchase with its ID

        Raises:
            ValidationError: If any input is invalid
        """
        validate_string(item, "Item name").raise_for("item")
        value = validated_amount(amount)
        if due_date:
            validate_full_date(due_date, allow_future=True).raise_for("due_date")

        purchase = PlannedPurchase(
            id=None, item=item.strip(), amount=value, due_date=due_date or None
        )

        def insert(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                """
                INSERT INTO planned_purchases (item, amount, purchased, due_date)
                VALUES (?, ?, 0, ?)
                """,
                (purchase.item, purchase.amount, purchase.due_date),
            )
            return cursor.lastrowid

        purchase.id = await self.manager.run(insert)
        due = f" (Due: {purchase.due_date})" if purchase.due_date else ""
        logger.info(f"Planned purchase added: {purchase.item} - {purchase.amount}{due}")
        return purchase

    async def fetch_all(self) -> list[PlannedPurchase]:
        """Unpurchased first, newest first within each group."""

        def query(conn: sqlite3.Connection) -> list[PlannedPurchase]:
            rows = conn.execute(
                "SELECT * FROM planned_purchases ORDER BY purchased ASC, id DESC"
            ).fetchall()
            return [PlannedPurchase.from_row(row) for row in rows]

        return await self.manager.run(query)

    async def get(self, purchase_id: int) -> PlannedPurchase:
        """
        Get a purchase by its ID.

        Raises:
            NotFoundError: If no purchase has this ID
        """

        def query(conn: sqlite3.Connection) -> Optional[sqlite3.Row]:
            return conn.execute(
                "SELECT * FROM planned_purchases WHERE id = ?", (purchase_id,)
            ).fetchone()

        row = await self.manager.run(query)
        if row is None:
            raise NotFoundError("purchase", purchase_id)
        return PlannedPurchase.from_row(row)

    async def delete(self, purchase_id: int) -> None:
        """
        Delete a single purchase. An expense recorded from it stays but loses the link.

        Raises:
            NotFoundError: If no purchase has this ID
        """

        def remove(conn: sqlite3.Connection) -> int:
            return conn.execute(
                "DELETE FROM planned_purchases WHERE id = ?", (purchase_id,)
            ).rowcount

        if await self.manager.run(remove) == 0:
            raise NotFoundError("purchase", purchase_id)
        logger.info(f"Purchase with ID {purchase_id} deleted successfully")

    async def mark_as_bought(self, purchase_id: int, amount: Any, item: str) -> Expense:
        """
        Mark a purchase as bought and record the matching expense.

        Runs as one transaction: the purchased flag is set, the expense
        table is checked for an expense already recorded for this purchase
        (by link or by item name), and the new expense is inserted. Any
        failure rolls both writes back.

        Args:
            purchase_id: ID of the planned purchase
            amount: Amount actually paid
            item: Item name to record the expense under

        Returns:
            The created Expense

        Raises:
            ValidationError: If amount or item is invalid
            NotFoundError: If the purchase does not exist
            ConflictError: If it is already bought or an expense already exists
        """
        validate_string(item, "Item name").raise_for("item")
        value = validated_amount(amount)
        item = item.strip()
        today = self.clock().isoformat()

        def fulfil(conn: sqlite3.Connection) -> Expense:
            row = conn.execute(
                "SELECT * FROM planned_purchases WHERE id = ?", (purchase_id,)
            ).fetchone()
            if row is None:
                raise NotFoundError("purchase", purchase_id)
            if row["purchased"]:
                raise ConflictError(ConflictError.ALREADY_BOUGHT)

            conn.execute(
                "UPDATE planned_purchases SET purchased = 1 WHERE id = ?",
                (purchase_id,),
            )

            existing = conn.execute(
                "SELECT id FROM expenses WHERE purchase_id = ? OR item = ? LIMIT 1",
                (purchase_id, item),
            ).fetchone()
            if existing is not None:
                raise ConflictError(
                    ConflictError.DUPLICATE_EXPENSE,
                    f"Expense {existing['id']} already records '{item}'",
                )

            cursor = conn.execute(
                """
                INSERT INTO expenses (item, amount, date, is_recurring, purchase_id)
                VALUES (?, ?, ?, 0, ?)
                """,
                (item, value, today, purchase_id),
            )
            return Expense.from_row(
                {
                    "id": cursor.lastrowid,
                    "item": item,
                    "amount": value,
                    "date": today,
                    "is_recurring": 0,
                    "recurring_date": None,
                    "purchase_id": purchase_id,
                }
            )

        expense = await self.manager.run_in_transaction(fulfil)
        logger.info(f"Purchase {purchase_id} marked as bought, expense {expense.id} recorded")
        return expense
