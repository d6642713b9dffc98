"""
Database module for the Tallybook ledger.

This module provides the persistence layer: connection management,
repositories for each table, and the facade the UI talks to.

Structure:
- base.py: ConnectionManager with lazy, once-only initialization and schema
- ledger.py: Income and expense repositories, aggregates
- purchases.py: Planned purchases and the mark-as-bought workflow
- settings.py: Key/value preferences (budget threshold)
- maintenance.py: Bulk clearing and hard reset
- repository.py: Tallybook facade that composes everything and catches failures
"""

from .base import LEDGER_TABLES, ConnectionManager, ConnectionState
from .ledger import ExpenseRepository, IncomeRepository, LedgerRepository
from .maintenance import MaintenanceRepository
from .purchases import PlannedPurchaseRepository
from .repository import Tallybook, create_book
from .settings import SettingsRepository

__all__ = [
    # Base
    "ConnectionManager",
    "ConnectionState",
    "LEDGER_TABLES",
    # Repositories
    "ExpenseRepository",
    "IncomeRepository",
    "LedgerRepository",
    "MaintenanceRepository",
    "PlannedPurchaseRepository",
    "SettingsRepository",
    # Facade
    "Tallybook",
    "create_book",
]
