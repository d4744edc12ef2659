"""SQLite ledger store for Split Ledger."""

import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from .exceptions import DuplicateMemberError
from .models import Expense, ExpenseSplit, Member
from .money import Money

logger = logging.getLogger(__name__)


class Database:
    """SQLite database manager implementing the ledger store."""

    def __init__(self, db_path: Path, busy_timeout: float = 5.0):
        """Initialize database connection."""
        self.db_path = db_path
        # Autocommit mode: transactions are opened explicitly in transaction()
        self.conn = sqlite3.connect(
            str(db_path), timeout=busy_timeout, isolation_level=None
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._depth = 0
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        with self.transaction():
            cursor = self.conn.cursor()

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS members (
                    id TEXT PRIMARY KEY,
                    group_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (group_id, name COLLATE NOCASE)
                )
            """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS expenses (
                    id TEXT PRIMARY KEY,
                    group_id TEXT NOT NULL,
                    paid_by TEXT NOT NULL REFERENCES members (id),
                    amount TEXT NOT NULL,
                    category TEXT,
                    description TEXT NOT NULL DEFAULT '',
                    expense_date DATE NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """
            )

            # Amounts are stored as decimal text so they round-trip exactly
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS expense_splits (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    expense_id TEXT NOT NULL REFERENCES expenses (id),
                    member_id TEXT NOT NULL REFERENCES members (id),
                    share TEXT NOT NULL,
                    UNIQUE (expense_id, member_id)
                )
            """
            )

    def close(self):
        """Close database connection."""
        self.conn.close()

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """
        Run a block as one transaction.

        Uses BEGIN IMMEDIATE so the write lock is taken up front and two
        concurrent units of work serialize. Nested calls join the outer
        transaction; only the outermost one commits or rolls back.
        """
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self.conn.execute("BEGIN IMMEDIATE")
        self._depth = 1
        try:
            yield self
        except BaseException:
            self.conn.rollback()
            logger.debug("Transaction rolled back")
            raise
        else:
            self.conn.commit()
        finally:
            self._depth = 0

    # ========================================================================
    # Member operations
    # ========================================================================

    def add_member(self, member: Member) -> None:
        """Insert a member row."""
        try:
            with self.transaction():
                self.conn.execute(
                    """
                    INSERT INTO members (id, group_id, name, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        member.id,
                        member.group_id,
                        member.name,
                        member.created_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateMemberError(member.name) from e

    def list_members(self, group_id: str) -> list[Member]:
        """Get all members of a group, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, name, created_at
            FROM members
            WHERE group_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (group_id,),
        )
        return [
            Member(
                id=row["id"],
                group_id=row["group_id"],
                name=row["name"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in cursor.fetchall()
        ]

    def delete_member(self, member_id: str, group_id: str) -> bool:
        """Delete a member row."""
        with self.transaction():
            cursor = self.conn.execute(
                "DELETE FROM members WHERE id = ? AND group_id = ?",
                (member_id, group_id),
            )
            return cursor.rowcount > 0

    def delete_member_splits(self, member_id: str) -> int:
        """Delete every split row of a member."""
        with self.transaction():
            cursor = self.conn.execute(
                "DELETE FROM expense_splits WHERE member_id = ?", (member_id,)
            )
            return cursor.rowcount

    # ========================================================================
    # Expense operations
    # ========================================================================

    def add_expense(self, expense: Expense, splits: Sequence[ExpenseSplit]) -> None:
        """Insert an expense together with its splits."""
        with self.transaction():
            self.conn.execute(
                """
                INSERT INTO expenses (
                    id, group_id, paid_by, amount, category,
                    description, expense_date
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    expense.id,
                    expense.group_id,
                    expense.payer_member_id,
                    str(expense.amount),
                    expense.category,
                    expense.description,
                    expense.expense_date.isoformat(),
                ),
            )
            self._insert_splits(splits)

    def list_expenses(self, group_id: str) -> list[Expense]:
        """Get all expenses of a group, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, paid_by, amount, category, description,
                   expense_date
            FROM expenses
            WHERE group_id = ?
            ORDER BY expense_date ASC, created_at ASC, rowid ASC
            """,
            (group_id,),
        )
        return [
            Expense(
                id=row["id"],
                group_id=row["group_id"],
                payer_member_id=row["paid_by"],
                amount=Money(row["amount"]),
                category=row["category"],
                description=row["description"],
                expense_date=date.fromisoformat(row["expense_date"]),
            )
            for row in cursor.fetchall()
        ]

    def delete_expenses_and_splits(self, expense_ids: Sequence[str]) -> None:
        """Delete expenses and all of their splits."""
        if not expense_ids:
            return
        placeholders = ", ".join("?" for _ in expense_ids)
        with self.transaction():
            self.conn.execute(
                f"DELETE FROM expense_splits WHERE expense_id IN ({placeholders})",
                tuple(expense_ids),
            )
            self.conn.execute(
                f"DELETE FROM expenses WHERE id IN ({placeholders})",
                tuple(expense_ids),
            )

    # ========================================================================
    # Split operations
    # ========================================================================

    def list_splits(self, expense_ids: Sequence[str]) -> list[ExpenseSplit]:
        """Get the splits of the given expenses."""
        if not expense_ids:
            return []
        placeholders = ", ".join("?" for _ in expense_ids)
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            SELECT expense_id, member_id, share
            FROM expense_splits
            WHERE expense_id IN ({placeholders})
            ORDER BY expense_id, member_id
            """,
            tuple(expense_ids),
        )
        return [
            ExpenseSplit(
                expense_id=row["expense_id"],
                member_id=row["member_id"],
                share=Money(row["share"]),
            )
            for row in cursor.fetchall()
        ]

    def replace_splits(self, expense_id: str, splits: Sequence[ExpenseSplit]) -> int:
        """
        Replace all splits of an expense.

        Returns the number of rows written, which is 0 if the expense no
        longer exists.
        """
        with self.transaction():
            cursor = self.conn.execute(
                "SELECT 1 FROM expenses WHERE id = ?", (expense_id,)
            )
            if cursor.fetchone() is None:
                return 0

            self.conn.execute(
                "DELETE FROM expense_splits WHERE expense_id = ?", (expense_id,)
            )
            return self._insert_splits(
                [s for s in splits if s.expense_id == expense_id]
            )

    def _insert_splits(self, splits: Sequence[ExpenseSplit]) -> int:
        written = 0
        for split in splits:
            cursor = self.conn.execute(
                """
                INSERT INTO expense_splits (expense_id, member_id, share)
                VALUES (?, ?, ?)
                """,
                (split.expense_id, split.member_id, str(split.share)),
            )
            written += cursor.rowcount
        return written
