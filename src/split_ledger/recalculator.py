"""Redistribute a removed member's splits among the remaining participants."""

import logging
from collections.abc import Iterable
from decimal import Decimal

from .exceptions import ConcurrentModificationError, MemberNotFoundError
from .models import Expense, ExpenseSplit, Redistribution, RemovalPlan
from .money import MINOR_UNIT, Money
from .store import LedgerStore

logger = logging.getLogger(__name__)


def plan_member_removal(
    group_id: str,
    member_id: str,
    expenses: Iterable[Expense],
    splits: Iterable[ExpenseSplit],
    quantum: Decimal = MINOR_UNIT,
) -> RemovalPlan:
    """
    Work out what removing a member does to the group's expenses.

    - Expenses the member paid are deleted together with their splits.
    - Expenses the member took part in (but didn't pay) lose the member's
      split, and the full expense amount is spread evenly over the remaining
      participants. Leftover minor units go one each to the first remaining
      participants by member ID so the shares still sum to the expense amount.
    - If nobody else took part, the expense is skipped and ends up with no
      splits.

    This is a pure function; nothing is written.
    """
    splits_by_expense: dict[str, list[ExpenseSplit]] = {}
    for split in splits:
        splits_by_expense.setdefault(split.expense_id, []).append(split)

    plan = RemovalPlan(group_id=group_id, member_id=member_id)

    for expense in expenses:
        expense_splits = splits_by_expense.get(expense.id, [])

        if expense.payer_member_id == member_id:
            plan.deleted_expense_ids.append(expense.id)
            continue

        removed = [s for s in expense_splits if s.member_id == member_id]
        if not removed:
            continue

        remaining_ids = sorted(
            {s.member_id for s in expense_splits if s.member_id != member_id}
        )
        if not remaining_ids:
            plan.skipped_expense_ids.append(expense.id)
            continue

        shares = expense.amount.allocate(len(remaining_ids), quantum)
        plan.redistributions.append(
            Redistribution(
                expense_id=expense.id,
                removed_share=sum((s.share for s in removed), Money.zero()),
                splits=[
                    ExpenseSplit(expense_id=expense.id, member_id=mid, share=share)
                    for mid, share in zip(remaining_ids, shares, strict=True)
                ],
            )
        )

    return plan


class SplitRecalculator:
    """Applies member removals to a ledger store as a single unit of work."""

    def __init__(self, store: LedgerStore, quantum: Decimal = MINOR_UNIT):
        """Initialize the recalculator."""
        self.store = store
        self.quantum = quantum

    def remove_member(self, group_id: str, member_id: str) -> RemovalPlan:
        """
        Remove a member from a group and rebalance the expenses they touched.

        Reads, rewrites and deletes all happen inside one store transaction,
        so a failure part-way leaves the ledger exactly as it was.

        Args:
            group_id: The member's group
            member_id: The member to remove

        Returns:
            The plan that was applied

        Raises:
            MemberNotFoundError: If the member isn't in the group
            ConcurrentModificationError: If a split write-back touched an
                                         unexpected number of rows
        """
        with self.store.transaction():
            members = self.store.list_members(group_id)
            if not any(m.id == member_id for m in members):
                raise MemberNotFoundError(member_id, group_id)

            expenses = self.store.list_expenses(group_id)
            splits = self.store.list_splits([e.id for e in expenses])

            plan = plan_member_removal(
                group_id, member_id, expenses, splits, quantum=self.quantum
            )

            if plan.deleted_expense_ids:
                self.store.delete_expenses_and_splits(plan.deleted_expense_ids)
                logger.info(
                    f"Deleted {len(plan.deleted_expense_ids)} expenses paid by "
                    f"member {member_id}"
                )

            for redistribution in plan.redistributions:
                expected = len(redistribution.splits)
                written = self.store.replace_splits(
                    redistribution.expense_id, redistribution.splits
                )
                if written != expected:
                    logger.error(
                        f"Split write-back for expense {redistribution.expense_id} "
                        f"wrote {written} rows, expected {expected}; rolling back"
                    )
                    raise ConcurrentModificationError(
                        redistribution.expense_id, expected, written
                    )
                logger.debug(
                    f"Redistributed expense {redistribution.expense_id} over "
                    f"{expected} participants"
                )

            for expense_id in plan.skipped_expense_ids:
                logger.warning(
                    f"Expense {expense_id} has no participants left after removing "
                    f"member {member_id}; it is no longer apportioned"
                )

            orphaned = self.store.delete_member_splits(member_id)
            if not self.store.delete_member(member_id, group_id):
                # Someone else removed the member after we read it
                raise MemberNotFoundError(member_id, group_id)

        logger.info(
            f"Removed member {member_id} from group {group_id}: "
            f"{len(plan.redistributions)} expenses redistributed, "
            f"{len(plan.skipped_expense_ids)} skipped, "
            f"{orphaned} remaining splits deleted"
        )
        return plan
