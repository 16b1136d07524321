"""GroupLedger - Split group expenses and reconcile who owes whom."""

__version__ = "0.1.0"

from .balances import aggregate_friend_balances, from_friend_records, summarize_totals
from .config import Settings, load_settings
from .currency import format_money, infer_default_currency
from .models import (
    Balance,
    Custom,
    EqualAll,
    EqualSubset,
    ExpenseInput,
    FriendBalance,
    GroupBalances,
    Participant,
    Percentage,
    SettlementProposal,
    SimplifiedSettlement,
    Split,
)
from .money import Money
from .service import LedgerService
from .settlements import (
    member_breakdown,
    propose_friend_settlement,
    propose_settlement,
)
from .splits import compute_splits, validate_expense

__all__ = [
    "Settings",
    "load_settings",
    "Money",
    "Balance",
    "Custom",
    "EqualAll",
    "EqualSubset",
    "ExpenseInput",
    "FriendBalance",
    "GroupBalances",
    "Participant",
    "Percentage",
    "SettlementProposal",
    "SimplifiedSettlement",
    "Split",
    "compute_splits",
    "validate_expense",
    "aggregate_friend_balances",
    "from_friend_records",
    "summarize_totals",
    "member_breakdown",
    "propose_settlement",
    "propose_friend_settlement",
    "format_money",
    "infer_default_currency",
    "LedgerService",
]
