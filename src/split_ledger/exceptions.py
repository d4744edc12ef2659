"""Custom exceptions for Split Ledger."""


class SplitLedgerError(Exception):
    """Base exception for all Split Ledger errors."""

    pass


class ConfigurationError(SplitLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class DataIntegrityError(SplitLedgerError):
    """
    Raised when ledger data violates an accounting invariant.

    Examples: balances that don't sum to what the expenses allow, a split
    pointing at an unknown expense or member, or split shares that don't add
    up to their expense amount. Never retried and never corrected silently.
    """

    pass


class ConcurrentModificationError(SplitLedgerError):
    """Raised when a split write-back touched a different number of rows than expected.

    The whole member removal is rolled back; callers may re-read and retry.
    """

    retryable = True

    def __init__(self, expense_id: str, expected: int, written: int):
        self.expense_id = expense_id
        self.expected = expected
        self.written = written
        super().__init__(
            f"Recalculated splits for expense {expense_id} wrote {written} rows, "
            f"expected {expected}. The expense was modified concurrently or the "
            f"store rejected the write."
        )


class MemberNotFoundError(SplitLedgerError):
    """Raised when a member does not exist in the group."""

    def __init__(self, member_id: str, group_id: str):
        self.member_id = member_id
        self.group_id = group_id
        super().__init__(f"Member {member_id} not found in group {group_id}")


class DuplicateMemberError(SplitLedgerError):
    """Raised when adding a member whose name already exists in the group."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Member '{name}' already exists")


class InvalidExpenseError(SplitLedgerError):
    """Raised when an expense can't be recorded as given."""

    pass
