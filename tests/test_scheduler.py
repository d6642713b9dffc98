"""
Tests for the recurring-updates scheduler.
"""

import asyncio
from datetime import date

import pytest

from tallybook.scheduler import RecurrenceScheduler, setup_scheduler

NOV_15 = date(2026, 11, 15)


class TestRecurrenceScheduler:
    """Tests for the timer and resume triggers."""

    def test_rejects_non_positive_interval(self, book):
        with pytest.raises(ValueError):
            RecurrenceScheduler(book, interval_hours=0)

    async def test_setup_applies_interval(self, book):
        scheduler = setup_scheduler(book, interval_hours=0.5)
        assert scheduler.recurring_task.hours == 0.5
        assert scheduler.interval_hours == 0.5
        assert not scheduler.is_running

    async def test_on_resume_runs_a_scan(self, book, clock):
        await book.add_income("Salary", 1000, True, "15")
        clock.today = NOV_15
        scheduler = setup_scheduler(book)

        result = await scheduler.on_resume()

        assert result.ok
        assert len(result.value.income_created) == 1
        assert scheduler.runs == 1

    async def test_overlapping_triggers_insert_once(self, book, clock):
        await book.add_expense("Rent", 500, True, "15")
        clock.today = NOV_15
        scheduler = setup_scheduler(book)

        results = await asyncio.gather(
            scheduler.on_resume(), scheduler.run_once("timer"), scheduler.on_resume()
        )

        assert sum(len(r.value.created) for r in results) == 1
        assert scheduler.runs == 3

    async def test_timer_runs_immediately_on_start(self, book, clock):
        await book.add_expense("Rent", 500, True, "15")
        clock.today = NOV_15
        scheduler = setup_scheduler(book)

        scheduler.start()
        assert scheduler.is_running
        try:
            for _ in range(100):
                if scheduler.runs:
                    break
                await asyncio.sleep(0.02)
        finally:
            scheduler.stop()

        assert scheduler.runs >= 1
        assert not scheduler.is_running
        assert len((await book.get_expenses()).value) == 2
