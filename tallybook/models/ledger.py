"""
Ledger models for Tallybook.

Income and expense rows share one shape; the only difference is whether
the description column is called ``source`` or ``item``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class EntryKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def table(self) -> str:
        return "income" if self is EntryKind.INCOME else "expenses"

    @property
    def label_column(self) -> str:
        return "source" if self is EntryKind.INCOME else "item"


@dataclass
class LedgerEntry:
    """
    A single income or expense row.

    A row with ``is_recurring`` and no ``template_id`` is a recurring
    template; rows cloned from it by the recurrence engine carry the
    template's id in ``template_id``.
    """

    id: Optional[int]
    kind: EntryKind
    label: str  # source for income, item for expenses
    amount: float
    date: str  # YYYY-MM-DD
    is_recurring: bool = False
    recurring_date: Optional[str] = None  # day of month, "1".."31"
    template_id: Optional[int] = None
    last_materialized: Optional[str] = None  # YYYY-MM
    purchase_id: Optional[int] = None  # expenses created by fulfillment only

    @property
    def is_template(self) -> bool:
        return self.is_recurring and self.template_id is None

    @property
    def recurring_day(self) -> Optional[int]:
        """The recurring day as an int, or None if missing or malformed."""
        if not self.recurring_date:
            return None
        try:
            return int(self.recurring_date)
        except (TypeError, ValueError):
            return None

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        data = {
            "id": self.id,
            self.kind.label_column: self.label,
            "amount": self.amount,
            "date": self.date,
            "is_recurring": self.is_recurring,
            "recurring_date": self.recurring_date,
            "template_id": self.template_id,
        }
        if self.kind is EntryKind.EXPENSE:
            data["purchase_id"] = self.purchase_id
        return data

    @classmethod
    def from_row(cls, kind: EntryKind, row: Mapping[str, Any]) -> "LedgerEntry":
        """Create a LedgerEntry from a sqlite3.Row."""
        keys = row.keys()
        return cls(
            id=row["id"],
            kind=kind,
            label=row[kind.label_column],
            amount=row["amount"],
            date=row["date"],
            is_recurring=bool(row["is_recurring"]),
            recurring_date=row["recurring_date"],
            template_id=row["template_id"] if "template_id" in keys else None,
            last_materialized=(
                row["last_materialized"] if "last_materialized" in keys else None
            ),
            purchase_id=row["purchase_id"] if "purchase_id" in keys else None,
        )


class Income(LedgerEntry):
    """Income row; ``source`` is an alias of ``label``."""

    @property
    def source(self) -> str:
        return self.label

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Income":  # type: ignore[override]
        entry = LedgerEntry.from_row(EntryKind.INCOME, row)
        return cls(**entry.__dict__)


class Expense(LedgerEntry):
    """Expense row; ``item`` is an alias of ``label``."""

    @property
    def item(self) -> str:
        return self.label

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Expense":  # type: ignore[override]
        entry = LedgerEntry.from_row(EntryKind.EXPENSE, row)
        return cls(**entry.__dict__)


ENTRY_CLASSES = {EntryKind.INCOME: Income, EntryKind.EXPENSE: Expense}


def entry_from_row(kind: EntryKind, row: Mapping[str, Any]) -> LedgerEntry:
    """Build the Income or Expense instance matching ``kind``."""
    return ENTRY_CLASSES[kind].from_row(row)
