"""
Tallybook facade: the API the UI calls.

Composes the connection manager, repositories, recurrence engine and
services, and is the one place where failures are caught. Every public
method returns a Result; nothing raises past it.
"""

import asyncio
import io
import logging
from datetime import date
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tallybook.errors import Result, StorageError, TallybookError, ValidationError
from tallybook.models import (
    EntryKind,
    Expense,
    Income,
    LedgerEntry,
    PlannedPurchase,
)
from tallybook.recurrence import MaterializationReport, RecurrenceEngine
from tallybook.services import (
    ExportFormat,
    ExportService,
    LogNotifier,
    Notifier,
    TrendPoint,
    TrendService,
)

from .base import ConnectionManager
from .ledger import ExpenseRepository, IncomeRepository
from .maintenance import MaintenanceRepository
from .purchases import PlannedPurchaseRepository
from .settings import SettingsRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Tallybook:
    """Boundary API over the ledger store."""

    def __init__(
        self,
        manager: Optional[ConnectionManager] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], date] = date.today,
    ):
        """
        Initialize the facade.

        Args:
            manager: Connection manager; a default one on data/tallybook.db if omitted
            notifier: Receiver of user-facing events; logs them if omitted
            clock: Returns today's date; injectable for tests
        """
        self.manager = manager or ConnectionManager()
        self.notifier: Notifier = notifier or LogNotifier()
        self.clock = clock

        self.income = IncomeRepository(self.manager, clock)
        self.expenses = ExpenseRepository(self.manager, clock)
        self.purchases = PlannedPurchaseRepository(self.manager, clock)
        self.settings = SettingsRepository(self.manager)
        self.maintenance = MaintenanceRepository(self.manager)
        self.recurrence = RecurrenceEngine(
            self.manager,
            self.notifier,
            clock,
            repositories={EntryKind.INCOME: self.income, EntryKind.EXPENSE: self.expenses},
        )
        self.trend_service = TrendService()
        self.export_service = ExportService()

    @property
    def db_path(self) -> Path:
        return self.manager.db_path

    # =========================================================================
    # Failure boundary
    # =========================================================================

    async def _guard(
        self,
        action: str,
        operation: Awaitable[T],
        default: Any = None,
        alert: bool = True,
    ) -> Result[T]:
        """Await ``operation`` and turn any failure into a neutral Result."""
        try:
            return Result.success(await operation)
        except TallybookError as e:
            if e.expected:
                logger.warning(f"Could not {action}: {e.message}")
            else:
                logger.error(f"Failed to {action}: {e.message}", exc_info=True)
            error = e
        except Exception as e:
            logger.error(f"Unexpected error while trying to {action}: {e}", exc_info=True)
            error = StorageError(f"Unexpected error: {e}")
            error.__cause__ = e

        if alert:
            await self._notify("alert", error.title, error.user_message)
        return Result.failure(error, default)

    async def _notify(self, event: str, *args: Any):
        """Deliver a notifier event; delivery problems never fail the caller."""
        try:
            await getattr(self.notifier, event)(*args)
        except Exception as e:
            logger.error(f"Notifier failed on {event}: {e}", exc_info=True)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize_database(self) -> Result[bool]:
        """Open the store and create the schema; safe to call repeatedly."""
        return await self._guard("initialize the database", self.manager.initialize(), False)

    async def close(self):
        """Close the database handle and any notifier resources."""
        await self.manager.close()
        close = getattr(self.notifier, "close", None)
        if close is not None:
            await close()

    async def handle_recurring_updates(
        self, today: Optional[date] = None
    ) -> Result[MaterializationReport]:
        """Materialize recurring income and expenses due today."""
        return await self._guard(
            "process recurring updates", self.recurrence.run(today), alert=False
        )

    async def reset_database(self) -> Result[list[Path]]:
        """Delete the database file. All data, preferences included, is lost."""
        return await self._guard(
            "reset the database", self.maintenance.reset_database(), []
        )

    # =========================================================================
    # Income and expenses
    # =========================================================================

    async def add_income(
        self,
        source: str,
        amount: Any,
        is_recurring: bool = False,
        recurring_date: Optional[str] = None,
    ) -> Result[Income]:
        return await self._guard(
            "add income",
            self.income.add(source, amount, is_recurring, recurring_date),
        )

    async def add_expense(
        self,
        item: str,
        amount: Any,
        is_recurring: bool = False,
        recurring_date: Optional[str] = None,
    ) -> Result[Expense]:
        """Record an expense, then alert if total expenses reached the budget threshold."""

        async def add() -> LedgerEntry:
            expense = await self.expenses.add(item, amount, is_recurring, recurring_date)
            await self._check_budget_threshold()
            return expense

        return await self._guard("add expense", add())

    async def _check_budget_threshold(self):
        try:
            threshold = await self.settings.get_budget_threshold()
            if threshold is None:
                return
            total = await self.expenses.total()
        except TallybookError as e:
            logger.error(f"Could not check budget threshold: {e.message}")
            return

        if total >= threshold:
            logger.info(f"Expenses {total} reached budget threshold {threshold}")
            await self._notify("budget_alert", threshold, total)

    async def get_income(self) -> Result[list[Income]]:
        """All income, newest first."""
        return await self._guard("load income", self.income.fetch_all(), [])

    async def get_expenses(self) -> Result[list[Expense]]:
        """All expenses, newest first."""
        return await self._guard("load expenses", self.expenses.fetch_all(), [])

    async def delete_income(self, income_id: int) -> Result[bool]:
        return await self._guard(
            "delete income", self._deleted(self.income.delete(income_id)), False
        )

    async def delete_expense(self, expense_id: int) -> Result[bool]:
        return await self._guard(
            "delete expense", self._deleted(self.expenses.delete(expense_id)), False
        )

    @staticmethod
    async def _deleted(operation: Awaitable[None]) -> bool:
        await operation
        return True

    # =========================================================================
    # Aggregates
    # =========================================================================

    async def get_total_income(self) -> Result[float]:
        return await self._guard("total income", self.income.total(), 0.0)

    async def get_total_expenses(self) -> Result[float]:
        return await self._guard("total expenses", self.expenses.total(), 0.0)

    async def get_balance(self) -> Result[float]:
        """Total income minus total expenses."""

        async def balance() -> float:
            return await self.income.total() - await self.expenses.total()

        return await self._guard("compute balance", balance(), 0.0)

    # =========================================================================
    # Planned purchases
    # =========================================================================

    async def add_planned_purchase(
        self, item: str, amount: Any, due_date: Optional[str] = None
    ) -> Result[PlannedPurchase]:
        """Add a planned purchase; one with a due date also schedules a reminder."""

        async def add() -> PlannedPurchase:
            purchase = await self.purchases.add(item, amount, due_date)
            if purchase.due_date:
                await self._notify("purchase_reminder", purchase)
            return purchase

        return await self._guard("add planned purchase", add())

    async def get_planned_purchases(self) -> Result[list[PlannedPurchase]]:
        """Unpurchased first, newest first within each group."""
        return await self._guard("load planned purchases", self.purchases.fetch_all(), [])

    async def mark_purchase_as_bought(
        self, purchase_id: int, amount: Any, item: str
    ) -> Result[Expense]:
        """Flip the purchase to bought and record its expense, atomically."""
        return await self._guard(
            "mark purchase as bought",
            self.purchases.mark_as_bought(purchase_id, amount, item),
        )

    async def delete_purchase(self, purchase_id: int) -> Result[bool]:
        return await self._guard(
            "delete purchase", self._deleted(self.purchases.delete(purchase_id)), False
        )

    # =========================================================================
    # Bulk clear
    # =========================================================================

    async def clear_income_table(self) -> Result[int]:
        return await self._guard(
            "clear income", self.maintenance.clear_table("income"), 0
        )

    async def clear_expenses_table(self) -> Result[int]:
        return await self._guard(
            "clear expenses", self.maintenance.clear_table("expenses"), 0
        )

    async def clear_planned_purchases_table(self) -> Result[int]:
        return await self._guard(
            "clear planned purchases",
            self.maintenance.clear_table("planned_purchases"),
            0,
        )

    async def clear_savings_table(self) -> Result[int]:
        return await self._guard(
            "clear savings", self.maintenance.clear_table("savings"), 0
        )

    async def clear_all_data(self) -> Result[dict[str, int]]:
        """Empty income, expenses, planned purchases and savings."""
        return await self._guard("clear all data", self.maintenance.clear_all(), {})

    # =========================================================================
    # Preferences
    # =========================================================================

    async def get_budget_threshold(self) -> Result[Optional[float]]:
        return await self._guard(
            "load budget threshold", self.settings.get_budget_threshold()
        )

    async def set_budget_threshold(self, threshold: Any) -> Result[float]:
        return await self._guard(
            "update budget threshold", self.settings.set_budget_threshold(threshold)
        )

    # =========================================================================
    # Trends and export
    # =========================================================================

    @staticmethod
    def _parse(enum_cls, value: str, field: str):
        try:
            return enum_cls(value)
        except ValueError:
            choices = ", ".join(member.value for member in enum_cls)
            raise ValidationError(field, f"Must be one of: {choices}") from None

    async def _entries(self, kind: EntryKind) -> list[LedgerEntry]:
        repo = self.income if kind is EntryKind.INCOME else self.expenses
        return await repo.fetch_all()

    async def get_trends(
        self, kind: str = EntryKind.EXPENSE.value, timeframe: str = "weekly"
    ) -> Result[list[TrendPoint]]:
        """Totals per week, month or year for income or expenses."""

        async def trends() -> list[TrendPoint]:
            entries = await self._entries(self._parse(EntryKind, kind, "kind"))
            return await asyncio.to_thread(self.trend_service.group, entries, timeframe)

        return await self._guard("compute trends", trends(), [])

    async def render_trend_chart(
        self, kind: str = EntryKind.EXPENSE.value, timeframe: str = "weekly"
    ) -> Result[io.BytesIO]:
        """The trend for ``kind`` and ``timeframe`` as a PNG chart."""

        async def chart() -> io.BytesIO:
            entries = await self._entries(self._parse(EntryKind, kind, "kind"))
            points = await asyncio.to_thread(self.trend_service.group, entries, timeframe)
            title = f"{kind.capitalize()} ({timeframe})"
            return await asyncio.to_thread(self.trend_service.render_chart, points, title)

        return await self._guard("render trend chart", chart())

    async def export_ledger(self, fmt: str = ExportFormat.CSV.value) -> Result[io.BytesIO]:
        """Income and expenses as a CSV or XLSX document."""

        async def export() -> io.BytesIO:
            export_format = self._parse(ExportFormat, fmt, "format")
            income = await self.income.fetch_all()
            expenses = await self.expenses.fetch_all()
            return await asyncio.to_thread(
                self.export_service.export, export_format, income, expenses
            )

        return await self._guard("export ledger", export())


def create_book(
    db_path: Optional[Path] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], date] = date.today,
) -> Tallybook:
    """
    Build a Tallybook wired to its own connection manager.

    Args:
        db_path: Database file; defaults to the configured path
        notifier: Receiver of user-facing events
        clock: Returns today's date

    Returns:
        A Tallybook ready for initialize_database()
    """
    return Tallybook(ConnectionManager(db_path), notifier=notifier, clock=clock)
