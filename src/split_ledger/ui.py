"""Interactive UI components for picking and confirming members."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import Member, RemovalPlan

logger = logging.getLogger(__name__)


class MemberCompleter(Completer):
    """Fuzzy search completer for group members."""

    def __init__(self, members: list[Member]):
        """Initialize the completer with the group's members."""
        self.members = members
        self.name_to_id = {member.name: member.id for member in members}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for member in self.members:
            if not query:
                yield Completion(text=member.name, start_position=0, display=member.name)
            elif fuzzy_match(query, member.name.lower()):
                yield Completion(
                    text=member.name,
                    start_position=-len(document.text),
                    display=member.name,
                )

    def resolve(self, text: str) -> str | None:
        """Map an entered name back to a member ID (case-insensitive)."""
        wanted = text.strip().casefold()
        for name, member_id in self.name_to_id.items():
            if name.casefold() == wanted:
                return member_id
        return None


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="ali" matches "alice"
        query="ae" matches "alice"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


def select_member_interactive(members: list[Member], prompt: str = "Member: ") -> str | None:
    """
    Interactive member selection with fuzzy search.

    Returns:
        Selected member ID, or None to cancel
    """
    if not members:
        return None

    print("   Type to search, press Enter to confirm, Ctrl+C to cancel\n")

    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt(prompt, complete_while_typing=True)

            if not result:
                return None

            member_id = completer.resolve(result)
            if member_id:
                logger.info(f"User selected member: {result}")
                return member_id

            print("❌ Unknown member. Please select from the list or press Tab to complete.")

    except KeyboardInterrupt:
        print("\n⏭️  Cancelled")
        return None
    except EOFError:
        return None


def confirm_removal(member: Member, plan_preview: RemovalPlan) -> bool:
    """
    Yes/no confirmation before removing a member.

    Shows how many expenses would be deleted or rebalanced.
    """
    print(f"\n🗑  Remove {member.name}?")
    if plan_preview.deleted_expense_ids:
        print(
            f"   {len(plan_preview.deleted_expense_ids)} expenses they paid will be deleted"
        )
    if plan_preview.redistributions:
        print(
            f"   {len(plan_preview.redistributions)} shared expenses will be "
            f"split among the remaining participants"
        )
    if plan_preview.skipped_expense_ids:
        print(
            f"   {len(plan_preview.skipped_expense_ids)} expenses will have no "
            f"participants left"
        )

    response = input("   Confirm? [y/N] ").strip().lower()

    return response in ("y", "yes")
