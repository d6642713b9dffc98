"""
Shared fixtures for the Tallybook test suite.

Every test gets its own database file under pytest's tmp_path, a clock
pinned to a fixed date that tests may move, and a notifier that records
events instead of sending them.
"""

from datetime import date

import pytest

from tallybook.db import ConnectionManager, create_book
from tallybook.models import EntryKind, Expense, Income
from tallybook.services import RecordingNotifier

FIXED_TODAY = date(2026, 10, 15)


class FixedClock:
    """Callable clock; set ``today`` to move time."""

    def __init__(self, today: date = FIXED_TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "tallybook.db"


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def manager(db_path):
    manager = ConnectionManager(db_path)
    yield manager
    await manager.close()


@pytest.fixture
async def book(db_path, notifier, clock):
    book = create_book(db_path, notifier=notifier, clock=clock)
    result = await book.initialize_database()
    assert result.ok
    yield book
    await book.close()


def make_income(entry_id, source, amount, on):
    return Income(
        id=entry_id, kind=EntryKind.INCOME, label=source, amount=amount, date=on
    )


def make_expense(entry_id, item, amount, on):
    return Expense(
        id=entry_id, kind=EntryKind.EXPENSE, label=item, amount=amount, date=on
    )
