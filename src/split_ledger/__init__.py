"""Split Ledger - Shared group expenses, balances and debt settlement."""

__version__ = "0.1.0"

from .balances import (
    compute_balances,
    settlement_balances,
    verify_conservation,
    verify_split_totals,
)
from .config import Settings, load_settings
from .db import Database
from .models import Debt, Expense, ExpenseSplit, Member, RemovalPlan, Transfer
from .money import SETTLEMENT_EPSILON, Money
from .recalculator import SplitRecalculator, plan_member_removal
from .service import LedgerService
from .simplifier import simplify_debts

__all__ = [
    "SETTLEMENT_EPSILON",
    "Money",
    "Member",
    "Expense",
    "ExpenseSplit",
    "Transfer",
    "Debt",
    "RemovalPlan",
    "compute_balances",
    "settlement_balances",
    "verify_conservation",
    "verify_split_totals",
    "simplify_debts",
    "plan_member_removal",
    "SplitRecalculator",
    "Settings",
    "load_settings",
    "Database",
    "LedgerService",
]
