from .ledger import (
    ENTRY_CLASSES,
    EntryKind,
    Expense,
    Income,
    LedgerEntry,
    entry_from_row,
)
from .purchase import PlannedPurchase, Savings

__all__ = [
    "ENTRY_CLASSES",
    "EntryKind",
    "Expense",
    "Income",
    "LedgerEntry",
    "PlannedPurchase",
    "Savings",
    "entry_from_row",
]
