"""
Recurrence engine: materializes recurring income and expenses.

A recurring template is an income or expense row with ``is_recurring`` set
and no ``template_id``. On the day of month named by its
``recurring_date`` the engine inserts a copy dated today, flagged as
recurring and pointing back at the template. Each template remembers the
last YYYY-MM period it produced a row for, so running the engine again on
the same day (app start, hourly timer, resume) adds nothing.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Callable, Mapping, Optional

from tallybook.db.base import ConnectionManager
from tallybook.db.ledger import (
    ExpenseRepository,
    IncomeRepository,
    LedgerRepository,
    current_period,
)
from tallybook.models import EntryKind, LedgerEntry, entry_from_row

if TYPE_CHECKING:
    from tallybook.services.notifications import Notifier

logger = logging.getLogger(__name__)


@dataclass
class MaterializationReport:
    """What one run of the engine did."""

    run_date: date
    income_created: list[LedgerEntry] = field(default_factory=list)
    expenses_created: list[LedgerEntry] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)  # template ids with a bad day
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def created(self) -> list[LedgerEntry]:
        return self.income_created + self.expenses_created

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "run_date": self.run_date.isoformat(),
            "income_created": len(self.income_created),
            "expenses_created": len(self.expenses_created),
            "skipped": list(self.skipped),
            "errors": dict(self.errors),
        }


class RecurrenceEngine:
    """Scans recurring templates and inserts the rows that are due today."""

    def __init__(
        self,
        manager: ConnectionManager,
        notifier: Optional["Notifier"] = None,
        clock: Callable[[], date] = date.today,
        repositories: Optional[Mapping[EntryKind, LedgerRepository]] = None,
    ):
        """
        Initialize the engine.

        Args:
            manager: Connection manager owning the database handle
            notifier: Told about every materialized row, if given
            clock: Returns today's date; injectable for tests
            repositories: Income and expense repositories to read templates from;
                built on ``manager`` if omitted
        """
        self.manager = manager
        self.notifier = notifier
        self.clock = clock
        self.repositories = repositories or {
            EntryKind.INCOME: IncomeRepository(manager, clock),
            EntryKind.EXPENSE: ExpenseRepository(manager, clock),
        }

    @staticmethod
    def is_due(template: LedgerEntry, today: date) -> bool:
        """Due when the day matches and the template has not run this period."""
        if template.recurring_day != today.day:
            return False
        last = template.last_materialized
        return last is None or last < current_period(today)

    async def run(self, today: Optional[date] = None) -> MaterializationReport:
        """
        Materialize every template due on ``today``.

        Income and expenses are processed independently: a failure in one
        is logged and recorded in the report, and the other still runs.
        """
        today = today or self.clock()
        report = MaterializationReport(run_date=today)

        for kind, created in (
            (EntryKind.INCOME, report.income_created),
            (EntryKind.EXPENSE, report.expenses_created),
        ):
            try:
                created.extend(await self._materialize(kind, today, report))
            except Exception as e:
                logger.error(
                    f"Error processing recurring {kind.table}: {e}", exc_info=True
                )
                report.errors[kind.value] = str(e)

        if report.created:
            logger.info(
                f"Recurring updates for {today.isoformat()}: "
                f"{len(report.income_created)} income, "
                f"{len(report.expenses_created)} expenses"
            )
            await self._notify(report)
        else:
            logger.debug(f"No recurring entries due on {today.isoformat()}")

        return report

    async def _materialize(
        self, kind: EntryKind, today: date, report: MaterializationReport
    ) -> list[LedgerEntry]:
        templates = await self.repositories[kind].templates()
        created = []

        for template in templates:
            if template.recurring_day is None:
                logger.warning(
                    f"Skipping {kind.value} template {template.id}: "
                    f"invalid recurring date {template.recurring_date!r}"
                )
                report.skipped.append(template.id)
                continue

            if not self.is_due(template, today):
                continue

            entry = await self.manager.run_in_transaction(
                self._clone, kind, template, today
            )
            if entry is not None:
                created.append(entry)

        return created

    @staticmethod
    def _clone(
        conn: sqlite3.Connection, kind: EntryKind, template: LedgerEntry, today: date
    ) -> Optional[LedgerEntry]:
        period = current_period(today)

        # Re-read inside the transaction; another trigger may have won the race
        row = conn.execute(
            f"SELECT last_materialized FROM {kind.table} WHERE id = ?", (template.id,)
        ).fetchone()
        if row is None or (row["last_materialized"] or "") >= period:
            return None

        cursor = conn.execute(
            f"""
            INSERT INTO {kind.table} (
                {kind.label_column}, amount, date, is_recurring,
                recurring_date, template_id, last_materialized
            ) VALUES (?, ?, ?, 1, ?, ?, ?)
            """,
            (
                template.label,
                template.amount,
                today.isoformat(),
                template.recurring_date,
                template.id,
                period,
            ),
        )
        conn.execute(
            f"UPDATE {kind.table} SET last_materialized = ? WHERE id = ?",
            (period, template.id),
        )

        return entry_from_row(
            kind,
            {
                "id": cursor.lastrowid,
                kind.label_column: template.label,
                "amount": template.amount,
                "date": today.isoformat(),
                "is_recurring": 1,
                "recurring_date": template.recurring_date,
                "template_id": template.id,
                "last_materialized": period,
            },
        )

    async def _notify(self, report: MaterializationReport):
        if self.notifier is None:
            return
        for entry in report.created:
            try:
                await self.notifier.recurring_materialized(entry.kind, entry)
            except Exception as e:
                logger.error(
                    f"Failed to send recurring notification for {entry.kind.value} "
                    f"{entry.id}: {e}",
                    exc_info=True,
                )
