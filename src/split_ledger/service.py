"""Service layer that composes the ledger store and the settlement engine.

The engine functions (balances, simplifier, recalculator) stay pure or
store-agnostic; this module adds the group-level glue around them.
"""

import logging
from collections.abc import Sequence
from datetime import date

from .balances import (
    compute_balances,
    settlement_balances,
    summarize_members,
    verify_conservation,
    verify_split_totals,
)
from .config import Settings
from .exceptions import (
    DataIntegrityError,
    DuplicateMemberError,
    InvalidExpenseError,
    MemberNotFoundError,
)
from .models import Debt, Expense, ExpenseSplit, Member, MemberSummary, RemovalPlan
from .money import Money
from .recalculator import SplitRecalculator, plan_member_removal
from .simplifier import simplify_debts
from .store import LedgerStore

logger = logging.getLogger(__name__)


class LedgerService:
    """Group-level ledger operations on top of a ledger store."""

    def __init__(self, settings: Settings, store: LedgerStore):
        """Initialize the ledger service."""
        self.settings = settings
        self.store = store

    # ========================================================================
    # Members
    # ========================================================================

    def add_member(self, group_id: str, name: str) -> Member:
        """
        Add a member to a group.

        Names are unique per group, compared case-insensitively after
        trimming whitespace.

        Raises:
            DuplicateMemberError: If the name is already taken
        """
        member = Member(group_id=group_id, name=name)

        with self.store.transaction():
            existing = self.store.list_members(group_id)
            if any(m.name.casefold() == member.name.casefold() for m in existing):
                raise DuplicateMemberError(member.name)
            self.store.add_member(member)

        logger.info(f"Added member {member.name} ({member.id}) to group {group_id}")
        return member

    def list_members(self, group_id: str) -> list[Member]:
        return self.store.list_members(group_id)

    def preview_member_removal(self, group_id: str, member_id: str) -> RemovalPlan:
        """What remove_member would do, without writing anything."""
        with self.store.transaction():
            if not any(m.id == member_id for m in self.store.list_members(group_id)):
                raise MemberNotFoundError(member_id, group_id)
            expenses = self.store.list_expenses(group_id)
            splits = self.store.list_splits([e.id for e in expenses])
        return plan_member_removal(
            group_id, member_id, expenses, splits, quantum=self.settings.minor_unit
        )

    def remove_member(self, group_id: str, member_id: str) -> RemovalPlan:
        """Remove a member and rebalance the expenses they were part of."""
        recalculator = SplitRecalculator(self.store, quantum=self.settings.minor_unit)
        return recalculator.remove_member(group_id, member_id)

    # ========================================================================
    # Expenses
    # ========================================================================

    def add_expense(
        self,
        group_id: str,
        payer_member_id: str,
        amount: Money | str,
        participant_ids: Sequence[str] | None = None,
        description: str = "",
        category: str | None = None,
        expense_date: date | None = None,
    ) -> tuple[Expense, list[ExpenseSplit]]:
        """
        Record an expense split evenly among participants.

        Args:
            group_id: Group the expense belongs to
            payer_member_id: Member who paid
            amount: Positive amount paid
            participant_ids: Members sharing the expense. None means every
                             member of the group; an empty list records the
                             expense without splits.
            description: Free-text description
            category: Optional category label
            expense_date: Date of the expense (defaults to today)

        Returns:
            The stored expense and its splits

        Raises:
            InvalidExpenseError: If the amount isn't positive
            MemberNotFoundError: If the payer or a participant isn't in the group
        """
        try:
            expense = Expense(
                group_id=group_id,
                payer_member_id=payer_member_id,
                amount=amount,
                description=description,
                category=category,
                expense_date=expense_date or date.today(),
            )
        except ValueError as e:
            raise InvalidExpenseError(str(e)) from e

        with self.store.transaction():
            member_ids = {m.id for m in self.store.list_members(group_id)}
            if payer_member_id not in member_ids:
                raise MemberNotFoundError(payer_member_id, group_id)

            if participant_ids is None:
                participants = sorted(member_ids)
            else:
                participants = sorted(set(participant_ids))
                for member_id in participants:
                    if member_id not in member_ids:
                        raise MemberNotFoundError(member_id, group_id)

            splits = []
            if participants:
                shares = expense.amount.allocate(
                    len(participants), self.settings.minor_unit
                )
                splits = [
                    ExpenseSplit(expense_id=expense.id, member_id=mid, share=share)
                    for mid, share in zip(participants, shares, strict=True)
                ]

            self.store.add_expense(expense, splits)

        logger.info(
            f"Recorded expense {expense.id} of {expense.amount} paid by "
            f"{payer_member_id}, split {len(splits)} ways"
        )
        return expense, splits

    def list_expenses(self, group_id: str) -> list[Expense]:
        return self.store.list_expenses(group_id)

    # ========================================================================
    # Balances and settlement
    # ========================================================================

    def _load_ledger(
        self, group_id: str
    ) -> tuple[list[Member], list[Expense], list[ExpenseSplit]]:
        """Read a consistent snapshot of a group's ledger and check its integrity."""
        with self.store.transaction():
            members = self.store.list_members(group_id)
            expenses = self.store.list_expenses(group_id)
            splits = self.store.list_splits([e.id for e in expenses])

        member_ids = {m.id for m in members}
        for expense in expenses:
            if expense.payer_member_id not in member_ids:
                logger.error(
                    f"Expense {expense.id} is paid by unknown member "
                    f"{expense.payer_member_id}"
                )
                raise DataIntegrityError(
                    f"Expense {expense.id} is paid by unknown member "
                    f"{expense.payer_member_id}"
                )
        for split in splits:
            if split.member_id not in member_ids:
                logger.error(
                    f"Split of expense {split.expense_id} references unknown "
                    f"member {split.member_id}"
                )
                raise DataIntegrityError(
                    f"Split of expense {split.expense_id} references unknown "
                    f"member {split.member_id}"
                )
        verify_split_totals(expenses, splits)

        return members, expenses, splits

    def get_balances(self, group_id: str) -> dict[str, Money]:
        """
        Net balance of every member of a group.

        Members without activity are included with a zero balance.
        """
        members, expenses, splits = self._load_ledger(group_id)
        balances = compute_balances(expenses, splits, member_ids=[m.id for m in members])
        verify_conservation(balances, expenses, splits)
        return balances

    def get_member_summaries(self, group_id: str) -> list[MemberSummary]:
        """Paid, owed and balance per member, in member order."""
        members, expenses, splits = self._load_ledger(group_id)
        return summarize_members(expenses, splits, [m.id for m in members])

    def settle(self, group_id: str) -> list[Debt]:
        """
        Compute who owes whom in a group.

        Returns:
            Debts in settlement order, with member names attached
        """
        members, expenses, splits = self._load_ledger(group_id)
        # Unsplit expenses are nobody's debt; see settlement_balances
        balances = settlement_balances(expenses, splits, member_ids=[m.id for m in members])

        transfers = simplify_debts(balances)
        names = {m.id: m.name for m in members}

        debts = [
            Debt(
                from_member_id=t.from_member_id,
                from_name=names[t.from_member_id],
                to_member_id=t.to_member_id,
                to_name=names[t.to_member_id],
                amount=t.amount,
            )
            for t in transfers
        ]

        logger.info(f"Group {group_id}: {len(debts)} transfers settle all balances")
        return debts
