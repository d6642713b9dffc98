"""
Notification delivery for ledger events.

The ledger core calls a Notifier when something happens the user should
hear about: an operation failed, expenses crossed the budget threshold, a
planned purchase with a due date was added, or a recurring entry was
materialized. How the message reaches the user is up to the implementation.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import aiohttp
import discord

from tallybook.config import CURRENCY_LABEL
from tallybook.models import EntryKind, LedgerEntry, PlannedPurchase

logger = logging.getLogger(__name__)


def format_amount(amount: float) -> str:
    return f"{amount:,.2f} {CURRENCY_LABEL}"


class Notifier(Protocol):
    """Receiver of user-facing ledger events."""

    async def alert(self, title: str, message: str) -> None: ...

    async def budget_alert(self, threshold: float, total_expenses: float) -> None: ...

    async def purchase_reminder(self, purchase: PlannedPurchase) -> None: ...

    async def recurring_materialized(self, kind: EntryKind, entry: LedgerEntry) -> None: ...


class LogNotifier:
    """Writes every event to the log. Default when nothing else is configured."""

    def __init__(self, name: str = "tallybook.notifications"):
        self.logger = logging.getLogger(name)

    async def alert(self, title: str, message: str) -> None:
        self.logger.warning(f"{title}: {message}")

    async def budget_alert(self, threshold: float, total_expenses: float) -> None:
        self.logger.warning(
            f"Budget Limit Alert: you have reached {format_amount(threshold)} "
            f"in expenses (total {format_amount(total_expenses)})"
        )

    async def purchase_reminder(self, purchase: PlannedPurchase) -> None:
        self.logger.info(
            f'Purchase Added: "{purchase.item}" is due on {purchase.due_date}'
        )

    async def recurring_materialized(self, kind: EntryKind, entry: LedgerEntry) -> None:
        self.logger.info(
            f"Recurring Transaction Added: {kind.value} {entry.label} "
            f"{format_amount(entry.amount)}"
        )


@dataclass
class RecordingNotifier:
    """Keeps events in memory, for tests and headless callers that poll."""

    events: list[tuple[str, tuple]] = field(default_factory=list)

    async def alert(self, title: str, message: str) -> None:
        self.events.append(("alert", (title, message)))

    async def budget_alert(self, threshold: float, total_expenses: float) -> None:
        self.events.append(("budget_alert", (threshold, total_expenses)))

    async def purchase_reminder(self, purchase: PlannedPurchase) -> None:
        self.events.append(("purchase_reminder", (purchase,)))

    async def recurring_materialized(self, kind: EntryKind, entry: LedgerEntry) -> None:
        self.events.append(("recurring_materialized", (kind, entry)))

    def of_type(self, event_type: str) -> list[tuple]:
        return [payload for kind, payload in self.events if kind == event_type]


class DiscordWebhookNotifier:
    """
    Posts events as embeds to a Discord webhook.

    Delivery problems are logged and dropped; a notification must never
    fail the ledger write that triggered it.
    """

    COLORS = {
        "alert": discord.Color.red(),
        "budget": discord.Color.orange(),
        "purchase": discord.Color.blue(),
        "recurring": discord.Color.green(),
    }

    def __init__(self, url: str, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the notifier.

        Args:
            url: Discord webhook URL
            session: Optional shared HTTP session; created lazily otherwise
        """
        if not url:
            raise ValueError("Webhook URL must not be empty")
        self.url = url
        self._session = session
        self._owns_session = session is None
        self._webhook: Optional[discord.Webhook] = None

    def _get_webhook(self) -> discord.Webhook:
        if self._webhook is None:
            if self._session is None:
                self._session = aiohttp.ClientSession()
            self._webhook = discord.Webhook.from_url(self.url, session=self._session)
        return self._webhook

    async def _send(self, title: str, description: str, color_key: str):
        embed = discord.Embed(
            title=title, description=description, color=self.COLORS[color_key]
        )
        try:
            await self._get_webhook().send(embed=embed, username="Tallybook")
            logger.debug(f"Sent webhook notification: {title}")
        except discord.HTTPException as e:
            logger.error(f"Discord API error sending '{title}': {e}")
        except aiohttp.ClientError as e:
            logger.error(f"Network error sending '{title}': {e}")

    async def alert(self, title: str, message: str) -> None:
        await self._send(title, message, "alert")

    async def budget_alert(self, threshold: float, total_expenses: float) -> None:
        await self._send(
            "Budget Limit Alert",
            f"You have reached {format_amount(threshold)} in expenses.\n"
            f"Total so far: {format_amount(total_expenses)}",
            "budget",
        )

    async def purchase_reminder(self, purchase: PlannedPurchase) -> None:
        await self._send(
            "Purchase Added",
            f'Your planned purchase "{purchase.item}" has been added to your list. '
            f"Due date: {purchase.due_date}",
            "purchase",
        )

    async def recurring_materialized(self, kind: EntryKind, entry: LedgerEntry) -> None:
        await self._send(
            "Recurring Transaction Added",
            f'Your recurring {kind.value} "{entry.label}" of '
            f"{format_amount(entry.amount)} was recorded for {entry.date}",
            "recurring",
        )

    async def close(self):
        """Release the HTTP session if this notifier created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None
        self._webhook = None
