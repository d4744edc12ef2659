"""Net balance computation from expenses and their splits."""

import logging
from collections.abc import Iterable

from .exceptions import DataIntegrityError
from .models import Expense, ExpenseSplit, MemberSummary
from .money import SETTLEMENT_EPSILON, Money

logger = logging.getLogger(__name__)


def compute_balances(
    expenses: Iterable[Expense],
    splits: Iterable[ExpenseSplit],
    member_ids: Iterable[str] | None = None,
) -> dict[str, Money]:
    """
    Compute each member's net balance.

    The payer of each expense is credited with its amount and each split's
    member is debited with their share. Positive means the member is owed
    money, negative means they owe.

    Args:
        expenses: Expenses of one group
        splits: Split rows for those expenses
        member_ids: If given, every listed member appears in the result
                    (with an explicit zero when they have no activity)

    Returns:
        Mapping of member ID to balance

    Raises:
        DataIntegrityError: If a split references an expense not in `expenses`
    """
    balances: dict[str, Money] = {}
    if member_ids is not None:
        for member_id in member_ids:
            balances[member_id] = Money.zero()

    expense_ids = set()
    for expense in expenses:
        expense_ids.add(expense.id)
        balances[expense.payer_member_id] = (
            balances.get(expense.payer_member_id, Money.zero()) + expense.amount
        )

    for split in splits:
        if split.expense_id not in expense_ids:
            logger.error(
                f"Split for member {split.member_id} references unknown "
                f"expense {split.expense_id}"
            )
            raise DataIntegrityError(
                f"Split for member {split.member_id} references unknown "
                f"expense {split.expense_id}"
            )
        balances[split.member_id] = (
            balances.get(split.member_id, Money.zero()) - split.share
        )

    return balances


def verify_split_totals(
    expenses: Iterable[Expense], splits: Iterable[ExpenseSplit]
) -> None:
    """
    Check that every apportioned expense's shares sum to its amount.

    Expenses without any split rows are not apportioned and are skipped.

    Raises:
        DataIntegrityError: On the first expense whose shares don't match
    """
    totals: dict[str, Money] = {}
    for split in splits:
        totals[split.expense_id] = totals.get(split.expense_id, Money.zero()) + split.share

    for expense in expenses:
        total = totals.get(expense.id)
        if total is None:
            continue
        if not (total - expense.amount).is_settled():
            logger.error(
                f"Expense {expense.id}: splits sum to {total}, amount is {expense.amount}"
            )
            raise DataIntegrityError(
                f"Splits of expense {expense.id} sum to {total} "
                f"but the expense amount is {expense.amount}"
            )


def unapportioned_total(
    expenses: Iterable[Expense], splits: Iterable[ExpenseSplit]
) -> Money:
    """Total amount of expenses that have no split rows."""
    split_expense_ids = {split.expense_id for split in splits}
    return sum(
        (e.amount for e in expenses if e.id not in split_expense_ids), Money.zero()
    )


def verify_conservation(
    balances: dict[str, Money],
    expenses: Iterable[Expense],
    splits: Iterable[ExpenseSplit],
) -> None:
    """
    Check that no money appeared or vanished.

    Over fully apportioned expenses the balances sum to zero. An expense with
    no splits credits its payer without debiting anyone, so in general the
    balances must sum to the total of unapportioned expenses.

    Raises:
        DataIntegrityError: If the balances don't add up
    """
    expenses = list(expenses)
    splits = list(splits)
    expected = unapportioned_total(expenses, splits)
    actual = sum(balances.values(), Money.zero())

    if not (actual - expected).is_settled(SETTLEMENT_EPSILON):
        logger.error(f"Balances sum to {actual}, expected {expected}")
        raise DataIntegrityError(
            f"Balances sum to {actual} but unapportioned expenses total {expected}"
        )


def settlement_balances(
    expenses: Iterable[Expense],
    splits: Iterable[ExpenseSplit],
    member_ids: Iterable[str] | None = None,
) -> dict[str, Money]:
    """
    Balances that transfers can actually settle.

    An expense with no splits credits its payer without debiting anyone, so
    nobody owes that money. Counting it would let the payer soak up
    repayments meant for real creditors. Only apportioned expenses count
    here, and the result always sums to zero.

    Raises:
        DataIntegrityError: If the apportioned balances don't sum to zero
    """
    splits = list(splits)
    split_expense_ids = {split.expense_id for split in splits}
    apportioned = [e for e in expenses if e.id in split_expense_ids]

    balances = compute_balances(apportioned, splits, member_ids=member_ids)
    verify_conservation(balances, apportioned, splits)
    return balances


def summarize_members(
    expenses: Iterable[Expense],
    splits: Iterable[ExpenseSplit],
    member_ids: Iterable[str],
) -> list[MemberSummary]:
    """Paid, owed and net balance for each listed member, in the given order."""
    paid: dict[str, Money] = {}
    owed: dict[str, Money] = {}
    for expense in expenses:
        paid[expense.payer_member_id] = (
            paid.get(expense.payer_member_id, Money.zero()) + expense.amount
        )
    for split in splits:
        owed[split.member_id] = owed.get(split.member_id, Money.zero()) + split.share

    summaries = []
    for member_id in member_ids:
        member_paid = paid.get(member_id, Money.zero())
        member_owed = owed.get(member_id, Money.zero())
        summaries.append(
            MemberSummary(
                member_id=member_id,
                paid=member_paid,
                owed=member_owed,
                balance=member_paid - member_owed,
            )
        )
    return summaries
