"""Reconcile server-simplified debts with balances and draft settlements.

The minimum-transaction graph itself comes from the ledger backend; this
module only indexes its edges by member and turns a clicked row into a
pre-filled settlement proposal.
"""

import logging
from collections.abc import Sequence

from .exceptions import AmbiguousCurrencyError, SettlementNotNeededError
from .models import (
    Balance,
    Direction,
    Edge,
    FriendBalance,
    MemberBreakdown,
    Participant,
    SettlementProposal,
    SimplifiedSettlement,
)
from .money import Money

logger = logging.getLogger(__name__)


def member_breakdown(
    simplified: Sequence[SimplifiedSettlement],
    balances: Sequence[Balance],
    participant: Participant,
) -> MemberBreakdown:
    """
    Split the simplified edges touching ``participant`` by direction.

    Edges from the participant are debts they pay (``owes``); edges to them
    are amounts they receive (``gets_back``). A member can have both; they
    are not netted across counterparts.
    """
    owes = []
    gets_back = []
    for settlement in simplified:
        if settlement.from_participant.user_id == participant.user_id:
            owes.append(Edge(counterpart=settlement.to_participant, amount=settlement.amount))
        if settlement.to_participant.user_id == participant.user_id:
            gets_back.append(
                Edge(counterpart=settlement.from_participant, amount=settlement.amount)
            )

    balance = next(
        (b.amount for b in balances if b.participant.user_id == participant.user_id),
        None,
    )
    return MemberBreakdown(
        participant=participant,
        balance=balance,
        owes=tuple(owes),
        gets_back=tuple(gets_back),
    )


def member_breakdowns(
    simplified: Sequence[SimplifiedSettlement], balances: Sequence[Balance]
) -> list[MemberBreakdown]:
    """Breakdowns for every balance row that has at least one edge."""
    if not simplified or not balances:
        return []

    breakdowns = [member_breakdown(simplified, balances, b.participant) for b in balances]
    return [b for b in breakdowns if b.has_edges]


def propose_settlement(
    edge: Edge,
    direction: Direction,
    participant: Participant,
    note: str | None = None,
) -> SettlementProposal:
    """
    Pre-fill a settlement for one edge of a member's breakdown.

    ``OWES`` means ``participant`` pays the counterpart; ``GETS_BACK`` means
    the counterpart pays ``participant``. The amount is the edge magnitude in
    the edge's own currency.
    """
    amount = edge.amount.abs()
    if amount.amount == 0:
        raise SettlementNotNeededError(
            f"Nothing to settle between {participant.name} and {edge.counterpart.name}"
        )

    if direction == Direction.OWES:
        payer, payee = participant, edge.counterpart
    else:
        payer, payee = edge.counterpart, participant

    return SettlementProposal(
        from_participant=payer, to_participant=payee, amount=amount, note=note
    )


def propose_member_settlement(breakdown: MemberBreakdown) -> SettlementProposal:
    """
    Pre-fill a settlement for a member's whole row.

    A member who owes pays their first creditor the total they owe; a member
    who is owed receives the total from their first debtor. When both apply
    the sign of the member's balance picks the side.
    """
    owes_side = bool(breakdown.owes)
    if breakdown.owes and breakdown.gets_back and breakdown.balance is not None:
        owes_side = breakdown.balance.amount < 0

    if owes_side:
        edges = breakdown.owes
        direction = Direction.OWES
    elif breakdown.gets_back:
        edges = breakdown.gets_back
        direction = Direction.GETS_BACK
    else:
        raise SettlementNotNeededError(f"{breakdown.participant.name} is settled up")

    currency = edges[0].amount.currency
    total = Money.sum((e.amount.abs() for e in edges), currency)
    return propose_settlement(
        Edge(counterpart=edges[0].counterpart, amount=total),
        direction,
        breakdown.participant,
    )


def propose_quick_settle(
    settlement: SimplifiedSettlement, note: str | None = None
) -> SettlementProposal:
    """Pre-fill a settlement straight from one simplified edge."""
    return propose_settlement(
        Edge(counterpart=settlement.to_participant, amount=settlement.amount),
        Direction.OWES,
        settlement.from_participant,
        note=note,
    )


def propose_friend_settlement(
    friend_balance: FriendBalance,
    viewer: Participant,
    selected_currency: str | None = None,
    note: str | None = None,
) -> SettlementProposal:
    """
    Pre-fill a settlement with a friend across all shared groups.

    A friend with one non-zero currency settles in that currency. With more
    than one the caller must pass ``selected_currency``; guessing is refused.

    Raises:
        AmbiguousCurrencyError: Several open currencies and none selected
        SettlementNotNeededError: Nothing open in the chosen currency
    """
    open_balances = friend_balance.nonzero_currencies
    friend = friend_balance.friend

    if not open_balances:
        raise SettlementNotNeededError(f"You and {friend.name} are settled up")

    if selected_currency is None:
        if len(open_balances) > 1:
            raise AmbiguousCurrencyError([c.currency for c in open_balances])
        amount = open_balances[0].amount
    else:
        amount = friend_balance.amount_in(selected_currency)
        if amount is None or amount.is_zero(friend_balance.tolerance):
            raise SettlementNotNeededError(
                f"No open {selected_currency.upper()} balance with {friend.name}"
            )

    # positive: the friend owes the viewer
    direction = Direction.GETS_BACK if amount.amount > 0 else Direction.OWES
    proposal = propose_settlement(
        Edge(counterpart=friend, amount=amount), direction, viewer, note=note
    )

    logger.debug(
        f"Proposed {proposal.from_participant.name} -> "
        f"{proposal.to_participant.name}: {proposal.amount}"
    )
    return proposal
