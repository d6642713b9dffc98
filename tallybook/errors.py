"""
Error taxonomy and result type for Tallybook.

Repositories raise the exceptions defined here. The Tallybook facade
catches them at a single boundary and hands callers a Result instead.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from .config import ERROR_MESSAGES

T = TypeVar("T")


class TallybookError(Exception):
    """Base class for all ledger errors."""

    title = "Error"
    expected = False

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message


class ValidationError(TallybookError):
    """Malformed input, raised before any write."""

    title = "Validation Error"
    expected = True

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}", user_message=message)
        self.field = field


class NotFoundError(TallybookError):
    """A referenced row does not exist."""

    expected = True

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} {entity_id} not found",
            user_message=f"{entity.replace('_', ' ').capitalize()} not found",
        )
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(TallybookError):
    """The operation conflicts with existing state."""

    expected = True

    ALREADY_BOUGHT = "already_bought"
    DUPLICATE_EXPENSE = "duplicate_expense"

    _TITLES = {
        ALREADY_BOUGHT: "Already Bought",
        DUPLICATE_EXPENSE: "Already Added",
    }

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(
            message or ERROR_MESSAGES.get(reason, reason),
            user_message=ERROR_MESSAGES.get(reason),
        )
        self.reason = reason
        self.title = self._TITLES.get(reason, "Conflict")


class StorageError(TallybookError):
    """Engine-level failure: lock timeout, disk, schema mismatch."""

    def __init__(self, message: str):
        super().__init__(message, user_message=ERROR_MESSAGES["database_error"])


class InitializationError(StorageError):
    """The store could not be opened or migrated."""

    title = "Database Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = ERROR_MESSAGES["init_failed"]


@dataclass
class Result(Generic[T]):
    """
    Outcome of a boundary operation.

    Distinguishes "empty because there is no data" from "empty because the
    query failed" while still behaving like the legacy boolean in a
    condition: ``if await book.add_income(...):``.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[TallybookError] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: TallybookError, default: Optional[T] = None) -> "Result[T]":
        return cls(ok=False, value=default, error=error)

    def unwrap_or(self, default: T) -> T:
        """Return the payload on success, ``default`` otherwise."""
        if self.ok:
            return self.value  # type: ignore[return-value]
        return default
