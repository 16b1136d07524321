"""Interactive prompts for settling up."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .currency import format_money
from .models import CurrencyAmount, SettlementProposal

logger = logging.getLogger(__name__)


class CurrencyCompleter(Completer):
    """Prefix completer over a friend's open currencies."""

    def __init__(self, balances: list[CurrencyAmount]):
        """Initialize the completer with the open balances."""
        self.balances = balances
        self.codes = [b.currency for b in balances]

    def get_completions(self, document: Document, complete_event: Any):
        """Get completions matching the typed prefix."""
        query = document.text.strip().upper()

        for balance in self.balances:
            if balance.currency.startswith(query):
                yield Completion(
                    text=balance.currency,
                    start_position=-len(document.text),
                    display=f"{balance.currency}  {format_money(balance.amount)}",
                )


def select_currency_interactive(
    balances: list[CurrencyAmount], friend_name: str
) -> str | None:
    """
    Ask which currency to settle when a friend has several open balances.

    Args:
        balances: The friend's non-zero per-currency balances
        friend_name: Shown in the prompt header

    Returns:
        Selected currency code, or None to skip
    """
    print(f"\n💱 {friend_name} has open balances in {len(balances)} currencies:")
    for balance in balances:
        print(f"   {balance.currency}: {format_money(balance.amount)}")
    print("   Type to search, press Enter to confirm, Ctrl+C to skip\n")

    completer = CurrencyCompleter(balances)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt("Currency: ", complete_while_typing=True)

            if not result:
                return None

            code = result.strip().upper()
            if code in completer.codes:
                logger.info(f"User selected currency: {code}")
                return code

            print("❌ Invalid currency. Pick one of: " + ", ".join(completer.codes))

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return None


def confirm_proposal(proposal: SettlementProposal) -> bool:
    """
    Simple yes/no confirmation for a settlement proposal.

    Returns:
        True if confirmed, False otherwise
    """
    print(
        f"\n🤝 {proposal.from_participant.name} pays {proposal.to_participant.name} "
        f"{format_money(proposal.amount)}"
    )
    if proposal.note:
        print(f"   Note: {proposal.note}")

    response = input("   Confirm? [Y/n] ").strip().lower()

    return response in ("", "y", "yes")
