"""CLI for Split Ledger using Typer."""

import logging
import sys
from datetime import date

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .models import Debt, Member
from .money import Money
from .service import LedgerService
from .ui import confirm_removal, select_member_interactive

app = typer.Typer(
    name="split-ledger",
    help="Track shared group expenses and work out who owes whom",
)
member_app = typer.Typer(help="Manage group members")
expense_app = typer.Typer(help="Record and list expenses")

app.add_typer(member_app, name="member")
app.add_typer(expense_app, name="expense")

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def open_service() -> tuple[LedgerService, Database]:
    """Load settings and open the database."""
    settings = load_settings()
    db = Database(settings.database_path, busy_timeout=settings.busy_timeout)
    return LedgerService(settings, db), db


def format_money(amount: Money, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (85.02)
    Positive amounts have spaces:      85.02
    """
    shown = abs(amount).quantize().amount
    if amount < 0:
        if use_color:
            return f"([red]{shown:,.2f}[/red])"
        return f"({shown:,.2f})"
    if use_color:
        return f" [green]{shown:,.2f}[/green] "
    return f" {shown:,.2f} "


def resolve_member(members: list[Member], ref: str) -> Member | None:
    """Find a member by ID or by case-insensitive name."""
    for member in members:
        if member.id == ref or member.name.casefold() == ref.strip().casefold():
            return member
    return None


def fail(message: str):
    console.print(f"\n[bold red]Error:[/bold red] {message}")
    sys.exit(1)


# ============================================================================
# Members
# ============================================================================


@member_app.command("add")
def member_add(
    group_id: str = typer.Argument(..., help="Group ID"),
    name: str = typer.Argument(..., help="Member name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a member to a group."""
    setup_logging(verbose)

    try:
        service, db = open_service()
        member = service.add_member(group_id, name)
        console.print(f"[green]✓ Added {member.name}[/green] [dim]({member.id})[/dim]")
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@member_app.command("list")
def member_list(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List members with what they paid, owe and their balance."""
    setup_logging(verbose)

    try:
        service, db = open_service()
        members = service.list_members(group_id)
        if not members:
            console.print("[yellow]No members in this group.[/yellow]")
            return

        summaries = {s.member_id: s for s in service.get_member_summaries(group_id)}

        table = Table(title="Members", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Paid", justify="right")
        table.add_column("Owed", justify="right")
        table.add_column("Balance", justify="right")

        for member in members:
            summary = summaries[member.id]
            table.add_row(
                member.id,
                member.name,
                format_money(summary.paid, use_color=False),
                format_money(summary.owed, use_color=False),
                format_money(summary.balance),
            )

        console.print(table)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@member_app.command("remove")
def member_remove(
    group_id: str = typer.Argument(..., help="Group ID"),
    member: str | None = typer.Argument(
        None, help="Member ID or name (prompts interactively when omitted)"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Remove a member from a group.

    Expenses the member paid are deleted. Expenses they shared are split
    among the remaining participants so their totals are preserved.
    """
    setup_logging(verbose)

    try:
        service, db = open_service()
        members = service.list_members(group_id)

        if member is None:
            member_id = select_member_interactive(members, prompt="Remove: ")
            if member_id is None:
                console.print("[yellow]No member selected.[/yellow]")
                return
            target = resolve_member(members, member_id)
        else:
            target = resolve_member(members, member)

        if target is None:
            fail(f"Member '{member}' not found in group {group_id}")
            return

        if not yes:
            preview = service.preview_member_removal(group_id, target.id)
            if not confirm_removal(target, preview):
                console.print("[yellow]Cancelled.[/yellow]")
                return

        plan = service.remove_member(group_id, target.id)

        console.print(f"\n[bold green]✓ Removed {target.name}[/bold green]")
        console.print(f"  Expenses deleted: {len(plan.deleted_expense_ids)}")
        console.print(f"  Expenses redistributed: {len(plan.redistributions)}")
        if plan.skipped_expense_ids:
            console.print(
                f"  [yellow]Expenses left without participants: "
                f"{len(plan.skipped_expense_ids)}[/yellow]"
            )
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


# ============================================================================
# Expenses
# ============================================================================


@expense_app.command("add")
def expense_add(
    group_id: str = typer.Argument(..., help="Group ID"),
    amount: str = typer.Argument(..., help="Amount paid, e.g. 42.50"),
    payer: str = typer.Option(..., "--payer", "-p", help="Payer ID or name"),
    split: list[str] = typer.Option(
        None,
        "--split",
        "-s",
        help="Participant ID or name (repeatable; defaults to every member)",
    ),
    no_split: bool = typer.Option(
        False, "--no-split", help="Record the expense without splitting it"
    ),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    category: str | None = typer.Option(None, "--category", "-c", help="Category"),
    expense_date: str | None = typer.Option(
        None, "--date", help="Expense date (YYYY-MM-DD, defaults to today)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record an expense split evenly among participants."""
    setup_logging(verbose)

    try:
        service, db = open_service()
        members = service.list_members(group_id)

        payer_member = resolve_member(members, payer)
        if payer_member is None:
            fail(f"Payer '{payer}' not found in group {group_id}")
            return

        participant_ids: list[str] | None = None
        if no_split:
            participant_ids = []
        elif split:
            participant_ids = []
            for ref in split:
                participant = resolve_member(members, ref)
                if participant is None:
                    fail(f"Participant '{ref}' not found in group {group_id}")
                    return
                participant_ids.append(participant.id)

        expense, splits = service.add_expense(
            group_id,
            payer_member.id,
            amount,
            participant_ids=participant_ids,
            description=description,
            category=category,
            expense_date=date.fromisoformat(expense_date) if expense_date else None,
        )

        names = {m.id: m.name for m in members}
        console.print(
            f"[green]✓ Recorded {format_money(expense.amount, use_color=False).strip()} "
            f"paid by {payer_member.name}[/green] [dim]({expense.id})[/dim]"
        )
        for s in splits:
            console.print(f"  {names[s.member_id]}: {format_money(s.share, use_color=False)}")
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@expense_app.command("list")
def expense_list(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List a group's expenses."""
    setup_logging(verbose)

    try:
        service, db = open_service()
        names = {m.id: m.name for m in service.list_members(group_id)}
        expenses = service.list_expenses(group_id)
        if not expenses:
            console.print("[yellow]No expenses recorded.[/yellow]")
            return

        table = Table(title="Expenses", show_header=True, header_style="bold magenta")
        table.add_column("Date", style="dim", width=10)
        table.add_column("Description", style="cyan", width=40)
        table.add_column("Paid by")
        table.add_column("Amount", justify="right", width=12)
        table.add_column("Category", style="yellow")

        for expense in expenses:
            desc = expense.description
            table.add_row(
                expense.expense_date.isoformat(),
                desc[:40] + "..." if len(desc) > 40 else desc,
                names.get(expense.payer_member_id, expense.payer_member_id),
                format_money(expense.amount, use_color=False),
                expense.category or "[dim]—[/dim]",
            )

        console.print(table)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


# ============================================================================
# Settlement
# ============================================================================


@app.command()
def balances(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's net balance (positive = is owed money)."""
    setup_logging(verbose)

    try:
        service, db = open_service()
        names = {m.id: m.name for m in service.list_members(group_id)}
        group_balances = service.get_balances(group_id)

        table = Table(title="Balances", show_header=True, header_style="bold magenta")
        table.add_column("Member", style="cyan")
        table.add_column("Balance", justify="right")
        for member_id, balance in group_balances.items():
            table.add_row(names[member_id], format_money(balance))

        console.print(table)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


def display_debts(debts: list[Debt]):
    """Display who owes whom in a table."""
    table = Table(title="Who owes whom", show_header=True, header_style="bold magenta")
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right", width=12)

    for debt in debts:
        table.add_row(debt.from_name, debt.to_name, format_money(debt.amount, use_color=False))

    console.print(table)
    console.print(f"\n  Total transfers: {len(debts)}")


@app.command()
def settle(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the transfers that settle every balance in the group."""
    setup_logging(verbose)

    try:
        service, db = open_service()
        debts = service.settle(group_id)

        if not debts:
            console.print("[green]✓ Everyone is settled up.[/green]")
            return

        display_debts(debts)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


if __name__ == "__main__":
    app()
