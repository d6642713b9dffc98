from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass
class PlannedPurchase:
    """Something the user intends to buy; ``purchased`` only ever goes False -> True."""

    id: Optional[int]
    item: str
    amount: float
    purchased: bool = False
    due_date: Optional[str] = None  # YYYY-MM-DD

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "item": self.item,
            "amount": self.amount,
            "purchased": self.purchased,
            "due_date": self.due_date,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PlannedPurchase":
        """Create a PlannedPurchase from a sqlite3.Row."""
        return cls(
            id=row["id"],
            item=row["item"],
            amount=row["amount"],
            purchased=bool(row["purchased"]),
            due_date=row["due_date"] if "due_date" in row.keys() else None,
        )


@dataclass
class Savings:
    """Savings row. Kept in the schema; no workflow writes it yet."""

    id: Optional[int]
    amount: float
    frequency: str
    date: str

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "amount": self.amount,
            "frequency": self.frequency,
            "date": self.date,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Savings":
        """Create a Savings from a sqlite3.Row."""
        return cls(
            id=row["id"],
            amount=row["amount"],
            frequency=row["frequency"],
            date=row["date"],
        )
