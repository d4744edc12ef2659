"""Tests for balance computation and ledger integrity checks."""

import random

import pytest

from split_ledger.balances import (
    compute_balances,
    settlement_balances,
    summarize_members,
    unapportioned_total,
    verify_conservation,
    verify_split_totals,
)
from split_ledger.exceptions import DataIntegrityError
from split_ledger.models import Expense, ExpenseSplit
from split_ledger.money import Money


# Helper functions for tests
def make_expense(id: str, payer: str, amount: str) -> Expense:
    """Create an expense in group g1."""
    return Expense(id=id, group_id="g1", payer_member_id=payer, amount=amount)


def make_split(expense_id: str, member_id: str, share: str) -> ExpenseSplit:
    return ExpenseSplit(expense_id=expense_id, member_id=member_id, share=share)


class TestComputeBalances:
    """Tests for compute_balances."""

    def test_even_three_way_split(self):
        """A pays 90 split A/B/C: A=+60, B=-30, C=-30."""
        expenses = [make_expense("e1", "A", "90")]
        splits = [
            make_split("e1", "A", "30"),
            make_split("e1", "B", "30"),
            make_split("e1", "C", "30"),
        ]

        balances = compute_balances(expenses, splits)

        assert balances == {"A": Money("60"), "B": Money("-30"), "C": Money("-30")}

    def test_expense_without_splits_credits_payer_only(self):
        """An unapportioned expense leaves everyone else untouched."""
        balances = compute_balances([make_expense("e1", "A", "100")], [])

        assert balances == {"A": Money("100")}

    def test_inactive_members_absent_by_default(self):
        balances = compute_balances([make_expense("e1", "A", "10")], [make_split("e1", "B", "10")])

        assert "C" not in balances

    def test_member_ids_adds_explicit_zeros(self):
        balances = compute_balances(
            [make_expense("e1", "A", "10")],
            [make_split("e1", "B", "10")],
            member_ids=["A", "B", "C"],
        )

        assert balances["C"] == Money("0")
        assert list(balances) == ["A", "B", "C"]

    def test_multiple_expenses_net_out(self):
        expenses = [make_expense("e1", "A", "100"), make_expense("e2", "B", "80")]
        splits = [
            make_split("e1", "A", "50"),
            make_split("e1", "B", "50"),
            make_split("e2", "A", "40"),
            make_split("e2", "B", "40"),
        ]

        balances = compute_balances(expenses, splits)

        assert balances == {"A": Money("10"), "B": Money("-10")}

    def test_empty_ledger(self):
        assert compute_balances([], []) == {}

    def test_split_with_unknown_expense_raises(self):
        with pytest.raises(DataIntegrityError, match="unknown expense"):
            compute_balances([make_expense("e1", "A", "10")], [make_split("e2", "B", "10")])


class TestConservation:
    """Money never appears or vanishes."""

    def test_balances_sum_to_exactly_zero(self):
        """Randomized ledgers with allocate()-built splits always net to zero."""
        rng = random.Random(1234)
        members = ["A", "B", "C", "D", "E"]

        for _ in range(50):
            expenses = []
            splits = []
            for n in range(rng.randint(1, 8)):
                expense = make_expense(
                    f"e{n}", rng.choice(members), f"{rng.randint(1, 100000)}.{rng.randint(0, 99):02d}"
                )
                participants = sorted(rng.sample(members, rng.randint(1, len(members))))
                shares = expense.amount.allocate(len(participants))
                expenses.append(expense)
                splits.extend(
                    ExpenseSplit(expense_id=expense.id, member_id=m, share=s)
                    for m, s in zip(participants, shares, strict=True)
                )

            balances = compute_balances(expenses, splits)

            assert sum(balances.values(), Money.zero()) == Money("0")
            verify_conservation(balances, expenses, splits)

    def test_unapportioned_total(self):
        expenses = [make_expense("e1", "A", "100"), make_expense("e2", "B", "30")]
        splits = [make_split("e2", "A", "30")]

        assert unapportioned_total(expenses, splits) == Money("100")

    def test_conservation_allows_unapportioned_expenses(self):
        expenses = [make_expense("e1", "A", "100")]

        verify_conservation(compute_balances(expenses, []), expenses, [])

    def test_conservation_violation_raises(self):
        expenses = [make_expense("e1", "A", "90")]
        splits = [make_split("e1", "B", "45"), make_split("e1", "C", "45")]
        balances = {"A": Money("90"), "B": Money("-45"), "C": Money("-40")}

        with pytest.raises(DataIntegrityError, match="Balances sum to"):
            verify_conservation(balances, expenses, splits)


class TestSettlementBalances:
    """Tests for settlement_balances."""

    def test_unapportioned_expense_is_left_out(self):
        """A's unsplit 100 doesn't cancel A's share of C's expense."""
        expenses = [make_expense("e1", "A", "100"), make_expense("e2", "C", "60")]
        splits = [
            make_split("e2", "A", "20"),
            make_split("e2", "B", "20"),
            make_split("e2", "C", "20"),
        ]

        balances = settlement_balances(expenses, splits)

        assert balances == {"A": Money("-20"), "B": Money("-20"), "C": Money("40")}
        assert sum(balances.values(), Money.zero()) == Money("0")

    def test_unsplit_only_payer_listed_with_zero(self):
        expenses = [make_expense("e1", "A", "100")]

        assert settlement_balances(expenses, [], member_ids=["A", "B"]) == {
            "A": Money("0"),
            "B": Money("0"),
        }

    def test_drifted_splits_still_raise(self):
        expenses = [make_expense("e1", "A", "100")]
        splits = [make_split("e1", "A", "50"), make_split("e1", "B", "49")]

        with pytest.raises(DataIntegrityError, match="Balances sum to"):
            settlement_balances(expenses, splits)


class TestVerifySplitTotals:
    """Tests for verify_split_totals."""

    def test_matching_splits_pass(self):
        expenses = [make_expense("e1", "A", "100")]
        splits = [
            make_split("e1", "A", "33.34"),
            make_split("e1", "B", "33.33"),
            make_split("e1", "C", "33.33"),
        ]

        verify_split_totals(expenses, splits)

    def test_unapportioned_expense_is_skipped(self):
        verify_split_totals([make_expense("e1", "A", "100")], [])

    def test_drifted_splits_raise(self):
        """The naive 100/3 split without remainder correction loses a cent."""
        expenses = [make_expense("e1", "A", "100")]
        splits = [
            make_split("e1", "A", "33.33"),
            make_split("e1", "B", "33.33"),
            make_split("e1", "C", "33.33"),
        ]

        with pytest.raises(DataIntegrityError, match="sum to 99.99"):
            verify_split_totals(expenses, splits)


class TestSummarizeMembers:
    """Tests for summarize_members."""

    def test_paid_owed_and_balance(self):
        expenses = [make_expense("e1", "A", "90")]
        splits = [
            make_split("e1", "A", "30"),
            make_split("e1", "B", "30"),
            make_split("e1", "C", "30"),
        ]

        summaries = summarize_members(expenses, splits, ["A", "B", "C", "D"])

        assert [s.member_id for s in summaries] == ["A", "B", "C", "D"]
        assert summaries[0].paid == Money("90")
        assert summaries[0].owed == Money("30")
        assert summaries[0].balance == Money("60")
        assert summaries[1].balance == Money("-30")
        assert summaries[3].paid == Money("0")
        assert summaries[3].balance == Money("0")
