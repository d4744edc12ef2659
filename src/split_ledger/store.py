"""Ledger store contract consumed by the engine."""

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import Protocol

from .models import Expense, ExpenseSplit, Member


class LedgerStore(Protocol):
    """
    Persistence operations the ledger engine relies on.

    Every method may be called inside transaction(); implementations must
    make nested transaction() calls join the outer unit of work.
    """

    def transaction(self) -> AbstractContextManager["LedgerStore"]:
        """Open a unit of work that commits on success and rolls back on error."""
        ...

    def list_members(self, group_id: str) -> list[Member]: ...

    def list_expenses(self, group_id: str) -> list[Expense]: ...

    def list_splits(self, expense_ids: Sequence[str]) -> list[ExpenseSplit]: ...

    def add_member(self, member: Member) -> None: ...

    def add_expense(self, expense: Expense, splits: Sequence[ExpenseSplit]) -> None: ...

    def delete_expenses_and_splits(self, expense_ids: Sequence[str]) -> None: ...

    def replace_splits(self, expense_id: str, splits: Sequence[ExpenseSplit]) -> int:
        """Atomically replace an expense's splits; returns the number of rows written."""
        ...

    def delete_member_splits(self, member_id: str) -> int:
        """Delete every split of a member; returns the number of rows deleted."""
        ...

    def delete_member(self, member_id: str, group_id: str) -> bool:
        """Delete a member row; returns False if it didn't exist."""
        ...
