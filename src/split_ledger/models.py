"""Pydantic domain models for Split Ledger."""

from datetime import date, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .money import Money


def new_id() -> str:
    """Generate a new row identifier."""
    return uuid4().hex


# ============================================================================
# Stored records
# ============================================================================


class Member(BaseModel):
    """A member of a group."""

    id: str = Field(default_factory=new_id)
    group_id: str
    name: str
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise ValueError("Member name cannot be empty")
        return name


class Expense(BaseModel):
    """An expense paid by one member of a group."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    group_id: str
    payer_member_id: str
    amount: Money
    category: str | None = None
    description: str = ""
    expense_date: date = Field(default_factory=date.today)

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Money) -> Money:
        if not v.is_positive():
            raise ValueError(f"Expense amount must be positive, got {v}")
        return v


class ExpenseSplit(BaseModel):
    """The share of one expense owed by one participant to the payer."""

    model_config = ConfigDict(frozen=True)

    expense_id: str
    member_id: str
    share: Money


# ============================================================================
# Derived results (never stored)
# ============================================================================


class Transfer(BaseModel):
    """A payment instruction from a debtor to a creditor."""

    model_config = ConfigDict(frozen=True)

    from_member_id: str
    to_member_id: str
    amount: Money


class Debt(BaseModel):
    """A transfer with member names attached, for display."""

    from_member_id: str
    from_name: str
    to_member_id: str
    to_name: str
    amount: Money


class MemberSummary(BaseModel):
    """What a member paid, what they owe, and their net balance."""

    member_id: str
    paid: Money
    owed: Money
    balance: Money


class Redistribution(BaseModel):
    """Replacement splits for one expense after a participant leaves."""

    expense_id: str
    removed_share: Money
    splits: list[ExpenseSplit]


class RemovalPlan(BaseModel):
    """
    Everything that removing a member does to the ledger.

    deleted_expense_ids: expenses the member paid (removed with their splits)
    redistributions: expenses the member took part in, with new splits
    skipped_expense_ids: expenses where the member was the only participant;
                         their splits lapse to "not apportioned"
    """

    group_id: str
    member_id: str
    deleted_expense_ids: list[str] = Field(default_factory=list)
    redistributions: list[Redistribution] = Field(default_factory=list)
    skipped_expense_ids: list[str] = Field(default_factory=list)
