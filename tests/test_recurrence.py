"""
Tests for recurring entry materialization.

The clock fixture starts on 2026-10-15. Templates created that day count
as October's occurrence, so most tests move to a later month first.
"""

import asyncio
from datetime import date

from tallybook.models import EntryKind
from tallybook.recurrence import RecurrenceEngine

NOV_15 = date(2026, 11, 15)


async def _rows(book, table):
    return await book.manager.run(
        lambda conn: conn.execute(f"SELECT * FROM {table} ORDER BY id").fetchall()
    )


class TestDueDetection:
    """Tests for RecurrenceEngine.is_due."""

    async def test_engine_reads_templates_from_book_repositories(self, book):
        assert book.recurrence.repositories[EntryKind.INCOME] is book.income
        assert book.recurrence.repositories[EntryKind.EXPENSE] is book.expenses

    async def test_due_on_matching_day_in_new_period(self, book):
        template = (await book.add_income("Salary", 1000, True, "15")).value

        assert not RecurrenceEngine.is_due(template, date(2026, 10, 15))
        assert RecurrenceEngine.is_due(template, NOV_15)
        assert not RecurrenceEngine.is_due(template, date(2026, 11, 14))


class TestMaterialization:
    """Tests for RecurrenceEngine.run through the facade."""

    async def test_new_template_covers_current_month(self, book):
        await book.add_income("Salary", 1000, True, "15")

        report = (await book.handle_recurring_updates()).value

        assert report.created == []
        assert len(await _rows(book, "income")) == 1

    async def test_template_added_before_its_day_fires_this_month(self, book, clock):
        clock.today = date(2026, 10, 3)
        template = (await book.add_income("Salary", 1000, True, "15")).value
        clock.today = date(2026, 10, 15)

        first = (await book.handle_recurring_updates()).value
        second = (await book.handle_recurring_updates()).value

        assert [e.template_id for e in first.income_created] == [template.id]
        assert first.income_created[0].date == "2026-10-15"
        assert second.created == []
        assert len(await _rows(book, "income")) == 2

    async def test_template_added_after_its_day_waits_for_next_month(self, book, clock):
        clock.today = date(2026, 10, 20)
        await book.add_expense("Rent", 500, True, "15")

        clock.today = date(2026, 10, 31)
        assert (await book.handle_recurring_updates()).value.created == []

        clock.today = NOV_15
        assert len((await book.handle_recurring_updates()).value.expenses_created) == 1

    async def test_materializes_once_per_period(self, book, clock):
        template = (await book.add_income("Salary", 1000, True, "15")).value
        clock.today = NOV_15

        first = (await book.handle_recurring_updates()).value
        second = (await book.handle_recurring_updates()).value

        assert len(first.income_created) == 1
        clone = first.income_created[0]
        assert clone.date == "2026-11-15"
        assert clone.source == "Salary"
        assert clone.amount == 1000.0
        assert clone.is_recurring is True
        assert clone.template_id == template.id
        assert second.created == []

        rows = await _rows(book, "income")
        assert len(rows) == 2
        assert rows[0]["last_materialized"] == "2026-11"

    async def test_clones_are_never_templates(self, book, clock):
        await book.add_expense("Rent", 500, True, "15")

        for month in (11, 12):
            clock.today = date(2026, month, 15)
            await book.handle_recurring_updates()

        rows = await _rows(book, "expenses")
        assert len(rows) == 3
        assert [row["template_id"] for row in rows] == [None, 1, 1]

    async def test_other_days_do_nothing(self, book, clock):
        await book.add_expense("Rent", 500, True, "1")
        clock.today = date(2026, 11, 2)

        report = (await book.handle_recurring_updates()).value

        assert report.created == []

    async def test_explicit_run_date(self, book):
        await book.add_expense("Gym", 30, True, "05")

        report = (await book.handle_recurring_updates(date(2026, 11, 5))).value

        assert [e.date for e in report.expenses_created] == ["2026-11-05"]

    async def test_day_missing_from_month_is_skipped(self, book, clock):
        await book.add_income("Dividend", 10, True, "31")

        clock.today = date(2026, 11, 30)
        assert (await book.handle_recurring_updates()).value.created == []

        clock.today = date(2026, 12, 31)
        assert len((await book.handle_recurring_updates()).value.created) == 1

    async def test_concurrent_runs_insert_once(self, book, clock):
        await book.add_income("Salary", 1000, True, "15")
        clock.today = NOV_15

        reports = await asyncio.gather(
            book.recurrence.run(), book.recurrence.run(), book.recurrence.run()
        )

        assert sum(len(r.created) for r in reports) == 1
        assert len(await _rows(book, "income")) == 2

    async def test_notifies_each_materialized_entry(self, book, notifier, clock):
        await book.add_income("Salary", 1000, True, "15")
        await book.add_expense("Rent", 500, True, "15")
        clock.today = NOV_15

        await book.handle_recurring_updates()

        events = notifier.of_type("recurring_materialized")
        assert [(kind, entry.label) for kind, entry in events] == [
            (EntryKind.INCOME, "Salary"),
            (EntryKind.EXPENSE, "Rent"),
        ]


class TestIsolation:
    """Tests for per-row and per-table failure isolation."""

    async def test_malformed_day_is_skipped(self, book, clock):
        def insert_bad(conn):
            return conn.execute(
                """
                INSERT INTO expenses (item, amount, date, is_recurring, recurring_date)
                VALUES ('Broken', 1, '2026-01-01', 1, 'abc')
                """
            ).lastrowid

        bad_id = await book.manager.run(insert_bad)
        await book.add_expense("Rent", 500, True, "15")
        clock.today = NOV_15

        report = (await book.handle_recurring_updates()).value

        assert report.skipped == [bad_id]
        assert [e.item for e in report.expenses_created] == ["Rent"]
        assert report.ok

    async def test_recurring_without_day_is_skipped(self, book, clock):
        bad_id = await book.manager.run(
            lambda conn: conn.execute(
                "INSERT INTO income (source, amount, date, is_recurring) "
                "VALUES ('Legacy', 1, '2026-01-01', 1)"
            ).lastrowid
        )
        clock.today = NOV_15

        report = (await book.handle_recurring_updates()).value

        assert report.skipped == [bad_id]
        assert report.created == []

    async def test_income_failure_does_not_block_expenses(self, book, clock):
        await book.add_expense("Rent", 500, True, "15")
        await book.manager.run(lambda conn: conn.execute("DROP TABLE income"))
        clock.today = NOV_15

        result = await book.handle_recurring_updates()

        assert result.ok
        report = result.value
        assert not report.ok
        assert "income" in report.errors
        assert [e.item for e in report.expenses_created] == ["Rent"]

    async def test_scan_failure_raises_no_alert(self, book, notifier, clock):
        await book.manager.run(lambda conn: conn.execute("DROP TABLE expenses"))
        clock.today = NOV_15

        await book.handle_recurring_updates()

        assert notifier.of_type("alert") == []

    async def test_report_as_dict(self, book, clock):
        await book.add_income("Salary", 1000, True, "15")
        clock.today = NOV_15

        report = (await book.handle_recurring_updates()).value

        assert report.to_dict() == {
            "run_date": "2026-11-15",
            "income_created": 1,
            "expenses_created": 0,
            "skipped": [],
            "errors": {},
        }
