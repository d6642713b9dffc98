"""
Tests for income and expense operations through the Tallybook facade.
"""

from datetime import date

import pytest

from tallybook.errors import NotFoundError, StorageError, ValidationError
from tallybook.models import EntryKind, Expense, Income


class TestAddEntries:
    """Tests for add_income and add_expense."""

    async def test_add_income(self, book):
        result = await book.add_income("Salary", 5000)

        assert result
        income = result.value
        assert isinstance(income, Income)
        assert income.id is not None
        assert income.source == "Salary"
        assert income.amount == 5000.0
        assert income.date == "2026-10-15"
        assert income.is_recurring is False
        assert income.recurring_date is None

    async def test_add_expense_strips_label(self, book):
        result = await book.add_expense("  Groceries  ", 42.5)

        assert result.ok
        assert isinstance(result.value, Expense)
        assert result.value.item == "Groceries"

    async def test_amount_strings_are_accepted(self, book):
        result = await book.add_income("Bonus", "1.5k")
        assert result.value.amount == 1500.0

    async def test_recurring_entry(self, book):
        result = await book.add_income("Salary", 3000, is_recurring=True, recurring_date="25")

        entry = result.value
        assert entry.is_recurring is True
        assert entry.recurring_date == "25"
        assert entry.is_template

    async def test_recurring_day_still_ahead_is_unmarked(self, book):
        entry = (await book.add_income("Salary", 3000, True, "25")).value
        stored = await book.income.get(entry.id)
        assert stored.last_materialized is None

    @pytest.mark.parametrize("day", ["1", "15"])
    async def test_recurring_day_already_reached_is_marked(self, book, day):
        entry = (await book.add_expense("Gym", 30, True, day)).value
        stored = await book.expenses.get(entry.id)
        assert stored.last_materialized == "2026-10"

    async def test_non_recurring_ignores_recurring_date(self, book):
        result = await book.add_expense("Coffee", 3, recurring_date="10")
        assert result.value.recurring_date is None

    @pytest.mark.parametrize(
        "amount, message",
        [
            (-5, "Amount cannot be negative"),
            ("abc", "Amount must be a valid number"),
            (float("nan"), "Amount must be a valid number"),
            (float("inf"), "Amount is too large"),
            (10**400, "Amount is too large"),
            (-(10**400), "Amount cannot be negative"),
        ],
    )
    async def test_invalid_amount_writes_nothing(self, book, notifier, amount, message):
        result = await book.add_expense("Rent", amount)

        assert not result.ok
        assert result.value is None
        assert isinstance(result.error, ValidationError)
        assert result.error.user_message == message
        assert (await book.get_expenses()).value == []
        assert notifier.of_type("alert") == [("Validation Error", message)]

    async def test_empty_source_rejected(self, book):
        result = await book.add_income("   ", 10)
        assert result.error.user_message == "Source cannot be empty"

    async def test_long_item_rejected(self, book):
        result = await book.add_expense("x" * 101, 10)
        assert result.error.user_message == "Item name is too long (max 100 characters)"

    async def test_recurring_requires_day(self, book):
        result = await book.add_income("Salary", 100, is_recurring=True)
        assert isinstance(result.error, ValidationError)
        assert result.error.field == "recurring_date"

    async def test_recurring_day_out_of_range(self, book):
        result = await book.add_expense("Gym", 20, is_recurring=True, recurring_date="32")
        assert not result.ok
        assert (await book.get_expenses()).value == []


class TestListing:
    """Tests for get_income / get_expenses ordering."""

    async def test_newest_date_first(self, book, clock):
        clock.today = date(2026, 9, 1)
        await book.add_income("Old", 1)
        clock.today = date(2026, 10, 1)
        await book.add_income("New", 2)

        sources = [i.source for i in (await book.get_income()).value]
        assert sources == ["New", "Old"]

    async def test_same_date_newest_id_first(self, book):
        await book.add_expense("First", 1)
        await book.add_expense("Second", 2)

        items = [e.item for e in (await book.get_expenses()).value]
        assert items == ["Second", "First"]

    async def test_empty_tables(self, book):
        income = await book.get_income()
        assert income.ok
        assert income.value == []

    async def test_failure_is_distinguishable_from_empty(self, book):
        await book.manager.run(lambda conn: conn.execute("DROP TABLE income"))

        result = await book.get_income()

        assert not result.ok
        assert result.value == []
        assert isinstance(result.error, StorageError)


class TestAggregates:
    """Tests for totals and balance."""

    async def test_totals_and_balance(self, book):
        await book.add_income("Salary", 1000)
        await book.add_income("Side job", 250.5)
        await book.add_expense("Rent", 300)

        assert (await book.get_total_income()).value == 1250.5
        assert (await book.get_total_expenses()).value == 300.0
        assert (await book.get_balance()).value == 950.5

    async def test_empty_totals_are_zero(self, book):
        total = await book.get_total_income()
        assert total.ok
        assert total.value == 0.0
        assert (await book.get_balance()).value == 0.0

    async def test_totals_follow_deletes(self, book):
        kept = (await book.add_expense("Rent", 300)).value
        dropped = (await book.add_expense("Snacks", 20)).value

        await book.delete_expense(dropped.id)

        assert (await book.get_total_expenses()).value == kept.amount
        assert (await book.get_balance()).value == -300.0


class TestDelete:
    """Tests for delete_income / delete_expense."""

    async def test_delete_existing(self, book):
        income = (await book.add_income("Salary", 10)).value

        result = await book.delete_income(income.id)

        assert result.ok
        assert result.value is True
        assert (await book.get_income()).value == []

    async def test_delete_missing(self, book):
        result = await book.delete_expense(999)

        assert not result.ok
        assert result.value is False
        assert isinstance(result.error, NotFoundError)
        assert result.error.user_message == "Expense not found"


class TestModels:
    """Tests for LedgerEntry conversions."""

    async def test_round_trip_through_store(self, book):
        created = (await book.add_expense("Phone", 99, True, "05")).value
        stored = await book.expenses.get(created.id)

        assert stored == created
        assert stored.recurring_day == 5
        assert stored.to_dict()["item"] == "Phone"
        assert "purchase_id" in stored.to_dict()

    def test_income_dict_uses_source(self):
        income = Income(id=1, kind=EntryKind.INCOME, label="Salary", amount=1.0, date="2026-01-01")
        data = income.to_dict()
        assert data["source"] == "Salary"
        assert "purchase_id" not in data

    def test_malformed_recurring_day(self):
        expense = Expense(
            id=1, kind=EntryKind.EXPENSE, label="x", amount=1.0, date="2026-01-01",
            is_recurring=True, recurring_date="abc",
        )
        assert expense.recurring_day is None


class TestRepositories:
    """Tests for repository methods the facade does not expose."""

    async def test_templates_exclude_clones_and_one_offs(self, book, clock):
        template = (await book.add_income("Salary", 1000, True, "15")).value
        await book.add_income("Gift", 50)
        clock.today = date(2026, 11, 15)
        await book.handle_recurring_updates()

        templates = await book.income.templates()

        assert [t.id for t in templates] == [template.id]

    async def test_get_missing_raises(self, book):
        with pytest.raises(NotFoundError):
            await book.income.get(123)
