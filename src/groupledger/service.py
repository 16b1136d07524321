"""Service layer that composes the ledger client with the split and balance logic.

This module fetches snapshots from the backend and hands them to the pure
computations in ``splits``, ``balances`` and ``settlements``.
"""

import logging
from typing import Any

from .balances import (
    aggregate_friend_balances,
    from_friend_records,
    summarize_totals,
)
from .clients.ledger import LedgerClient
from .config import Settings
from .exceptions import CurrencyMismatchError, SplitError
from .models import (
    CurrencyTotal,
    ExpenseInput,
    FriendBalance,
    FriendSettlementResult,
    GroupBalances,
    GroupRef,
    MemberBreakdown,
    Participant,
    SettlementProposal,
    SettlementRecord,
    SimplifiedSettlement,
)
from .money import Money
from .settlements import member_breakdowns, propose_friend_settlement
from .splits import build_expense_request, compute_splits

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for reading balances and submitting expenses and settlements."""

    def __init__(self, settings: Settings):
        """Initialize the ledger service."""
        self.settings = settings
        self.tolerance = settings.settle_tolerance

    def _client(self) -> LedgerClient:
        return LedgerClient(
            self.settings.api_base_url,
            token=self.settings.api_token,
            timeout=self.settings.request_timeout,
            tolerance=self.tolerance,
        )

    def find_group(self, group_id: str) -> GroupRef:
        """Look up one of the user's groups by ID."""
        with self._client() as client:
            groups = client.get_groups()

        for group in groups:
            if group.id == group_id:
                return group
        raise ValueError(f"Group {group_id} not found")

    def get_group_balances(self, with_simplified: bool = False) -> list[GroupBalances]:
        """
        Fetch balances for every group the user belongs to.

        Args:
            with_simplified: Also fetch each group's simplified settlements

        Returns:
            One balance snapshot per group
        """
        snapshots = []
        with self._client() as client:
            for group in client.get_groups():
                snapshot = client.get_group_balances(group)
                if with_simplified:
                    group = group.model_copy(update={"currency": snapshot.currency})
                    simplified = client.get_simplified_settlements(group)
                    snapshot = snapshot.model_copy(update={"simplified": tuple(simplified)})
                snapshots.append(snapshot)

        logger.info(f"Fetched balances for {len(snapshots)} group(s)")
        return snapshots

    def friend_balances(self, viewer: Participant) -> list[FriendBalance]:
        """Aggregate friend balances client-side from per-group balances."""
        return aggregate_friend_balances(
            self.get_group_balances(with_simplified=True), viewer, self.tolerance
        )

    def server_friend_balances(self) -> list[FriendBalance]:
        """Friend balances from the server's pre-aggregated endpoint."""
        with self._client() as client:
            records = client.get_friends_with_balances()

        logger.info(f"Fetched {len(records)} friend record(s)")
        return from_friend_records(records, self.tolerance)

    def dashboard_totals(self, viewer: Participant) -> list[CurrencyTotal]:
        """Per-currency owed / owe totals for the dashboard."""
        return summarize_totals(self.get_group_balances(), viewer, self.tolerance)

    def group_breakdowns(
        self, group: GroupRef
    ) -> tuple[list[MemberBreakdown], list[SimplifiedSettlement]]:
        """
        Build the per-member owes / gets-back view for one group.

        Returns:
            Tuple of (member breakdowns, simplified settlements for quick settle)
        """
        with self._client() as client:
            snapshot = client.get_group_balances(group)
            # simplified amounts must be tagged with the currency balances use
            group = group.model_copy(update={"currency": snapshot.currency})
            simplified = client.get_simplified_settlements(group)

        breakdowns = member_breakdowns(simplified, list(snapshot.balances))
        logger.info(
            f"Group {group.name}: {len(simplified)} simplified settlement(s), "
            f"{len(breakdowns)} member(s) with open balances"
        )
        return breakdowns, simplified

    def submit_expense(self, group_id: str, expense: ExpenseInput) -> dict[str, Any]:
        """
        Compute splits for an expense and create it on the backend.

        Raises:
            SplitError: If the expense fails validation; nothing is sent
        """
        try:
            splits = compute_splits(expense, self.tolerance)
        except SplitError as e:
            logger.warning(f"Rejected expense '{expense.title}': {e}")
            raise

        body = build_expense_request(expense, splits, group_id)
        with self._client() as client:
            created = client.create_expense(body)

        logger.info(
            f"Created expense '{expense.title}' ({expense.total}) "
            f"with {len(splits)} split(s)"
        )
        return created

    def record_settlement(
        self, group_id: str, proposal: SettlementProposal
    ) -> SettlementRecord:
        """Record a settlement proposal as a payment in one group."""
        with self._client() as client:
            record = client.record_settlement(group_id, proposal)

        logger.info(
            f"Recorded settlement {record.id}: {proposal.from_participant.name} -> "
            f"{proposal.to_participant.name} {proposal.amount}"
        )
        return record

    def settle_friend(
        self,
        friend_balance: FriendBalance,
        viewer: Participant,
        currency: str | None = None,
        amount: Money | None = None,
        note: str | None = None,
    ) -> FriendSettlementResult:
        """
        Settle with a friend across every shared group.

        Args:
            friend_balance: The friend's aggregated balance
            viewer: The current user
            currency: Currency to settle; required when several are open
            amount: Optional partial amount; defaults to the full balance
            note: Optional note recorded with the settlement

        Returns:
            The per-group settlements the server created
        """
        proposal = propose_friend_settlement(
            friend_balance, viewer, selected_currency=currency, note=note
        )
        settle_amount = amount or proposal.amount
        if settle_amount.currency != proposal.amount.currency:
            raise CurrencyMismatchError(
                proposal.amount.currency, settle_amount.currency
            )
        if settle_amount.amount <= 0 or settle_amount > proposal.amount:
            raise ValueError(
                f"Settlement amount must be between 0.01 and {proposal.amount}"
            )

        with self._client() as client:
            result = client.settle_friend(
                friend_balance.friend.user_id, settle_amount, note=note
            )

        logger.info(
            f"Settled {settle_amount} with {friend_balance.friend.name} "
            f"across {len(result.settlements)} group(s)"
        )
        return result
