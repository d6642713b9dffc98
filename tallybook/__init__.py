"""
Tallybook - Personal Finance Ledger

An offline ledger for income, expenses and planned purchases, with
monthly recurring entries, budget alerts, trends and spreadsheet export.
"""

from .config import VERSION as __version__
from .db import Tallybook, create_book
from .errors import (
    ConflictError,
    InitializationError,
    NotFoundError,
    Result,
    StorageError,
    TallybookError,
    ValidationError,
)
from .models import EntryKind, Expense, Income, LedgerEntry, PlannedPurchase
from .runner import run

__all__ = [
    "ConflictError",
    "EntryKind",
    "Expense",
    "Income",
    "InitializationError",
    "LedgerEntry",
    "NotFoundError",
    "PlannedPurchase",
    "Result",
    "StorageError",
    "Tallybook",
    "TallybookError",
    "ValidationError",
    "create_book",
    "run",
]
