"""
Scheduler for recurring-entry materialization.

Runs the recurrence engine on a timer using discord.ext.tasks, plus on
demand when the app returns to the foreground. All triggers go through
one lock, and the engine's per-period marker makes repeated runs on the
same day harmless.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from discord.ext import tasks

from tallybook.config import RECURRENCE_INTERVAL_HOURS

if TYPE_CHECKING:
    from tallybook.db.repository import Tallybook
    from tallybook.errors import Result
    from tallybook.recurrence import MaterializationReport

logger = logging.getLogger(__name__)


class RecurrenceScheduler:
    """Periodic and on-resume trigger for recurring updates."""

    def __init__(self, book: "Tallybook", interval_hours: float = RECURRENCE_INTERVAL_HOURS):
        """
        Initialize the scheduler.

        Args:
            book: The Tallybook whose recurring entries are processed
            interval_hours: Hours between timer-driven runs
        """
        if interval_hours <= 0:
            raise ValueError(f"interval_hours must be > 0, got {interval_hours}")
        self.book = book
        self.interval_hours = interval_hours
        self.runs = 0
        self._started = False
        self._lock = asyncio.Lock()
        self.recurring_task.change_interval(hours=interval_hours)
        logger.info("RecurrenceScheduler initialized")

    @property
    def is_running(self) -> bool:
        return self._started and self.recurring_task.is_running()

    def start(self):
        """Start the timer. The first run happens immediately (app start)."""
        if not self._started:
            self.recurring_task.start()
            self._started = True
            logger.info(
                f"Recurring updates scheduler started. "
                f"Will run every {self.interval_hours:g} hour(s)."
            )

    def stop(self):
        """Stop the timer."""
        if self._started:
            self.recurring_task.cancel()
            self._started = False
            logger.info("Recurring updates scheduler stopped")

    async def run_once(self, trigger: str) -> "Result[MaterializationReport]":
        """Run one scan, serialized with every other trigger."""
        async with self._lock:
            logger.debug(f"Running recurring updates ({trigger})")
            result = await self.book.handle_recurring_updates()
            self.runs += 1
            if not result.ok:
                logger.error(f"Recurring updates failed ({trigger}): {result.error}")
            return result

    async def on_resume(self) -> "Result[MaterializationReport]":
        """Foreground-resume trigger."""
        return await self.run_once("resume")

    @tasks.loop(hours=1)
    async def recurring_task(self):
        """Materialize due recurring entries."""
        try:
            await self.run_once("timer")
        except Exception as e:
            logger.error(f"Error in recurring updates task: {e}", exc_info=True)

    @recurring_task.before_loop
    async def before_recurring_task(self):
        """Make sure the store is open before the first run."""
        result = await self.book.initialize_database()
        if result.ok:
            logger.info("Database is ready, recurring updates scheduler is now active")

    @recurring_task.error
    async def recurring_task_error(self, error: BaseException):
        """Handle errors in the recurring task."""
        logger.error(f"Error in recurring_task: {error}", exc_info=True)


def setup_scheduler(
    book: "Tallybook", interval_hours: float = RECURRENCE_INTERVAL_HOURS
) -> RecurrenceScheduler:
    """
    Create and configure the scheduler for a Tallybook.

    Args:
        book: The Tallybook instance
        interval_hours: Hours between timer-driven runs

    Returns:
        Configured RecurrenceScheduler
    """
    return RecurrenceScheduler(book, interval_hours)
