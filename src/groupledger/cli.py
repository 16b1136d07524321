"""CLI for GroupLedger using Typer."""

import logging
import sys
from decimal import Decimal, InvalidOperation

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .currency import describe_balance, format_money, format_signed, infer_default_currency
from .exceptions import (
    AmbiguousCurrencyError,
    ConfigurationError,
    CurrencyMismatchError,
    SettlementNotNeededError,
    SplitError,
)
from .models import (
    Custom,
    EqualAll,
    EqualSubset,
    ExpenseInput,
    FriendBalance,
    MemberBreakdown,
    Participant,
    Percentage,
    Split,
)
from .money import Money
from .service import LedgerService
from .settlements import (
    propose_friend_settlement,
    propose_member_settlement,
    propose_quick_settle,
)
from .splits import compute_splits
from .ui import confirm_proposal, select_currency_interactive

app = typer.Typer(
    name="groupledger",
    help="Split group expenses and see who owes whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _parse_member(spec: str) -> tuple[str, str | None]:
    """Split "Alice=40" into ("Alice", "40"); bare names have no value."""
    name, sep, value = spec.partition("=")
    name = name.strip()
    if not name:
        raise typer.BadParameter(f"Invalid member '{spec}'")
    return name, (value.strip() if sep else None)


def _decimal(value: str | None, member: str) -> Decimal:
    if value is None:
        raise typer.BadParameter(f"Member '{member}' needs a value (e.g. {member}=25)")
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise typer.BadParameter(f"Invalid number for '{member}': {value}") from e


def build_expense(
    amount: str,
    currency: str,
    method: str,
    members: list[str],
    only: list[str],
    payer: str | None,
) -> ExpenseInput:
    """Build an expense entry from command-line arguments."""
    parsed = [_parse_member(m) for m in members]
    participants = tuple(Participant(user_id=name, name=name) for name, _ in parsed)
    if not participants:
        raise typer.BadParameter("Add at least one --member")

    total = Money.of(_decimal(amount, "amount"), currency)
    payer_name = payer or participants[0].name

    if method == "equal":
        if only:
            by_name = {p.name: p for p in participants}
            unknown = [n for n in only if n not in by_name]
            if unknown:
                raise typer.BadParameter(f"Unknown member(s): {', '.join(unknown)}")
            split_method = EqualSubset(participants=tuple(by_name[n] for n in only))
        else:
            split_method = EqualAll()
    elif method == "percentage":
        split_method = Percentage(
            percentages={name: _decimal(value, name) for name, value in parsed}
        )
    elif method == "custom":
        split_method = Custom(
            amounts={name: Money.of(_decimal(value, name), currency) for name, value in parsed}
        )
    else:
        raise typer.BadParameter(f"Unknown split method '{method}'")

    return ExpenseInput(
        total=total,
        payer=Participant(user_id=payer_name, name=payer_name),
        participants=participants,
        method=split_method,
    )


def display_splits(expense: ExpenseInput, splits: list[Split]):
    """Display computed splits in a table."""
    table = Table(title="Splits", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Share", justify="right")
    table.add_column("%", justify="right", style="dim")

    for split in splits:
        pct = f"{split.percentage}" if split.percentage is not None else ""
        table.add_row(split.participant.name, format_money(split.amount), pct)

    console.print(table)

    computed = Money.sum((s.amount for s in splits), expense.total.currency)
    if computed == expense.total:
        console.print(f"  [green]✓ Shares add up to {format_money(expense.total)}[/green]")
    else:
        console.print(
            f"  [red]✗ Total mismatch: computed {format_money(computed)}, "
            f"expected {format_money(expense.total)}[/red]"
        )


@app.command()
def split(
    amount: str = typer.Argument(..., help="Expense total, e.g. 100.00"),
    member: list[str] = typer.Option(
        ..., "--member", "-m", help="Member name, or NAME=VALUE for percentage/custom"
    ),
    method: str = typer.Option(
        "equal", "--method", help="Split method: equal, percentage or custom"
    ),
    only: list[str] = typer.Option(
        [], "--only", help="For equal splits, only split among these members"
    ),
    currency: str | None = typer.Option(None, "--currency", "-c", help="ISO code"),
    payer: str | None = typer.Option(None, "--payer", help="Who paid"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Preview how an expense splits among members (offline).
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)

    code = currency or settings.default_currency or infer_default_currency(
        settings.timezone, settings.locale
    )

    try:
        expense = build_expense(amount, code, method, member, only, payer)
        splits = compute_splits(expense, settings.settle_tolerance)
    except (SplitError, CurrencyMismatchError) as e:
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
        sys.exit(1)

    console.print(
        f"\n[bold]{expense.payer.name}[/bold] paid {format_money(expense.total)}\n"
    )
    display_splits(expense, splits)


def display_friends(friends: list[FriendBalance]):
    """Display friend balances, one row per friend and currency."""
    table = Table(title="Friends", show_header=True, header_style="bold magenta")
    table.add_column("Friend", style="cyan")
    table.add_column("Balance")
    table.add_column("Groups", style="dim")

    for friend in friends:
        if friend.is_settled:
            table.add_row(friend.friend.name, "[dim]Settled up[/dim]", "")
            continue
        for entry in friend.nonzero_currencies:
            groups = ", ".join(
                f"{row.group.name} {format_signed(row.amount)}"
                for row in friend.breakdown
                if row.currency == entry.currency
            )
            text = describe_balance(friend.friend.name, entry.amount, friend.tolerance)
            color = "green" if entry.amount.amount > 0 else "red"
            table.add_row(friend.friend.name, f"[{color}]{text}[/{color}]", groups)

    console.print(table)


@app.command()
def balances(
    viewer: str = typer.Option(..., "--viewer", help="Your user ID"),
    server: bool = typer.Option(
        False, "--server", help="Use the server-aggregated friends endpoint"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Show what you are owed and owe, per currency and per friend.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = LedgerService(settings)
        me = Participant(user_id=viewer, name="You")

        console.print("\n[bold blue]Fetching balances...[/bold blue]")
        totals = service.dashboard_totals(me)

        table = Table(title="Totals", show_header=True, header_style="bold magenta")
        table.add_column("Currency", style="cyan")
        table.add_column("You are owed", justify="right", style="green")
        table.add_column("You owe", justify="right", style="red")
        for total in totals:
            table.add_row(total.currency, format_money(total.owed), format_money(total.owe))
        console.print(table)

        friends = service.server_friend_balances() if server else service.friend_balances(me)
        if not friends:
            console.print("[yellow]No friends yet.[/yellow]")
            return
        display_friends(friends)

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


def display_breakdowns(breakdowns: list[MemberBreakdown]):
    """Display who owes whom within one group."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Owes", style="red")
    table.add_column("Gets back", style="green")

    for row in breakdowns:
        owes = "\n".join(f"{e.counterpart.name} {format_money(e.amount)}" for e in row.owes)
        gets_back = "\n".join(
            f"{e.counterpart.name} {format_money(e.amount)}" for e in row.gets_back
        )
        table.add_row(row.participant.name, owes, gets_back)

    console.print(table)


@app.command()
def group(
    group_id: str = typer.Argument(..., help="Group ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Show who owes whom in a group, per the simplified settlements.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = LedgerService(settings)

        selected = service.find_group(group_id)
        breakdowns, _ = service.group_breakdowns(selected)

        console.print(f"\n[bold]{selected.name}[/bold] ({selected.currency})\n")
        if not breakdowns:
            console.print("[green]Everyone is settled up.[/green]")
            return
        display_breakdowns(breakdowns)

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@app.command()
def settle(
    group_id: str = typer.Argument(..., help="Group ID"),
    member: str | None = typer.Option(
        None, "--member", help="Settle this member's open balance (user ID)"
    ),
    quick: int | None = typer.Option(
        None, "--quick", help="Record the Nth simplified settlement (1-based)"
    ),
    note: str | None = typer.Option(None, "--note", help="Note for the settlement"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Record a settlement in one group, from a member row or the quick-settle list.
    """
    setup_logging(verbose)

    if (member is None) == (quick is None):
        console.print("[bold red]Error:[/bold red] Pass exactly one of --member or --quick")
        sys.exit(1)

    try:
        settings = load_settings()
        service = LedgerService(settings)

        selected = service.find_group(group_id)
        breakdowns, simplified = service.group_breakdowns(selected)

        if quick is not None:
            if not 1 <= quick <= len(simplified):
                console.print(
                    f"[yellow]No quick settlement #{quick} "
                    f"({len(simplified)} available).[/yellow]"
                )
                sys.exit(1)
            proposal = propose_quick_settle(simplified[quick - 1], note=note)
        else:
            row = next((b for b in breakdowns if b.participant.user_id == member), None)
            if row is None:
                console.print(f"[green]{member} is settled up in {selected.name}.[/green]")
                return
            proposal = propose_member_settlement(row)
            if note:
                proposal = proposal.model_copy(update={"note": note})

        if not yes and not confirm_proposal(proposal):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        record = service.record_settlement(selected.id, proposal)
        console.print(
            f"\n[bold green]✓ Recorded {proposal.from_participant.name} → "
            f"{proposal.to_participant.name} {format_money(proposal.amount)} "
            f"({record.status})[/bold green]\n"
        )

    except SettlementNotNeededError as e:
        console.print(f"\n[green]{e}[/green]\n")
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@app.command("settle-friend")
def settle_friend(
    friend_id: str = typer.Argument(..., help="Friend's user ID"),
    viewer: str = typer.Option(..., "--viewer", help="Your user ID"),
    currency: str | None = typer.Option(None, "--currency", "-c", help="Currency to settle"),
    amount: str | None = typer.Option(None, "--amount", help="Partial amount"),
    note: str | None = typer.Option(None, "--note", help="Note for the settlement"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Settle up with a friend across every shared group.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = LedgerService(settings)
        me = Participant(user_id=viewer, name="You")

        friends = service.friend_balances(me)
        friend = next((f for f in friends if f.friend.user_id == friend_id), None)
        if friend is None:
            console.print(f"[yellow]No shared groups with {friend_id}.[/yellow]")
            sys.exit(1)

        try:
            proposal = propose_friend_settlement(friend, me, currency, note=note)
        except AmbiguousCurrencyError:
            currency = select_currency_interactive(
                friend.nonzero_currencies, friend.friend.name
            )
            if currency is None:
                console.print("[yellow]Cancelled.[/yellow]")
                return
            proposal = propose_friend_settlement(friend, me, currency, note=note)

        partial = None
        if amount is not None:
            partial = Money.of(_decimal(amount, "amount"), proposal.amount.currency)
            proposal = proposal.model_copy(update={"amount": partial})

        if not yes and not confirm_proposal(proposal):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        result = service.settle_friend(
            friend, me, currency=proposal.amount.currency, amount=partial, note=note
        )
        console.print(
            f"\n[bold green]✓ Settled {format_money(proposal.amount)} with "
            f"{friend.friend.name} across {len(result.settlements)} group(s)[/bold green]\n"
        )

    except SettlementNotNeededError as e:
        console.print(f"\n[green]{e}[/green]\n")
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@app.command("currency")
def show_currency():
    """Show the default currency detected for this machine."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    code = settings.default_currency or infer_default_currency(
        settings.timezone, settings.locale
    )
    console.print(code)


if __name__ == "__main__":
    app()
