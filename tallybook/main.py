"""
Demo script for the Tallybook ledger.

Builds a throwaway ledger, records a few entries and prints what the
facade reports back.
"""

import asyncio
import tempfile
from pathlib import Path

from tallybook import create_book
from tallybook.services import RecordingNotifier


async def demo(db_path: Path):
    notifier = RecordingNotifier()
    book = create_book(db_path, notifier=notifier)

    print("=" * 60)
    print("Tallybook Demo")
    print("=" * 60)

    await book.initialize_database()
    await book.set_budget_threshold("20k")

    await book.add_income("Salary", "150k", is_recurring=True, recurring_date="25")
    await book.add_expense("Groceries", "12,500")
    await book.add_expense("Rent", 8000)

    bad = await book.add_expense("", 100)
    print(f"\nRejected expense: {bad.error.user_message}")

    purchase = (await book.add_planned_purchase("Headphones", "35k")).value
    bought = await book.mark_purchase_as_bought(purchase.id, 34000, "Headphones")
    print(f"Bought:           {bought.value.item} for {bought.value.amount:,.0f}")

    again = await book.mark_purchase_as_bought(purchase.id, 34000, "Headphones")
    print(f"Second attempt:   {again.error.title}")

    print("-" * 40)
    print(f"  Income:   {(await book.get_total_income()).value:,.2f}")
    print(f"  Expenses: {(await book.get_total_expenses()).value:,.2f}")
    print(f"  Balance:  {(await book.get_balance()).value:,.2f}")

    print("\nTrends (monthly expenses):")
    for point in (await book.get_trends("expense", "monthly")).value:
        print(f"  {point.name}: {point.total:,.2f}")

    print("\nNotifications:")
    for event, payload in notifier.events:
        print(f"  {event}: {payload}")

    await book.close()


def main():
    with tempfile.TemporaryDirectory() as tmp:
        asyncio.run(demo(Path(tmp) / "demo.db"))


if __name__ == "__main__":
    main()
