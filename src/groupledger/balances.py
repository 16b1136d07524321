"""Cross-group balance aggregation for one viewer.

Friends are derived only from balances the ledger has already computed;
nothing here recomputes debts. Amounts in different currencies are kept in
separate buckets and never combined.
"""

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from .exceptions import CurrencyMismatchError
from .models import (
    Balance,
    CurrencyAmount,
    CurrencyTotal,
    FriendBalance,
    FriendWithBalance,
    GroupBalances,
    GroupBreakdown,
    GroupRef,
    Participant,
)
from .money import DEFAULT_TOLERANCE, Money, money_from_raw

logger = logging.getLogger(__name__)


class _FriendAccumulator:
    """Running per-currency totals and breakdown rows for one friend."""

    def __init__(self, friend: Participant):
        self.friend = friend
        self.totals: dict[str, Money] = {}  # insertion order = first-seen currency
        self.rows: list[GroupBreakdown] = []

    def add(self, group: GroupRef, amount: Money) -> None:
        current = self.totals.get(amount.currency, Money.zero(amount.currency))
        self.totals[amount.currency] = current + amount
        self.rows.append(
            GroupBreakdown(group=group, currency=amount.currency, amount=amount)
        )

    def build(self, tolerance: Decimal) -> FriendBalance:
        return FriendBalance(
            friend=self.friend,
            per_currency=tuple(
                CurrencyAmount(currency=currency, amount=amount)
                for currency, amount in self.totals.items()
            ),
            breakdown=tuple(self.rows),
            tolerance=tolerance,
        )


def _group_amount(group_balances: GroupBalances, amount: Money) -> Money:
    if amount.currency != group_balances.currency.upper():
        raise CurrencyMismatchError(
            group_balances.currency.upper(),
            amount.currency,
            f"Group {group_balances.group.name} is in {group_balances.currency} "
            f"but reported a balance in {amount.currency}",
        )
    return amount


def counterpart_amount(
    group_balances: GroupBalances, balance: Balance, viewer: Participant
) -> Money:
    """
    What one counterpart owes the viewer in a group (negative: the viewer owes).

    With the group's simplified edges on hand this is the sum of edges from the
    counterpart to the viewer minus edges the other way. Without them only the
    counterpart's own net is known, and from the viewer's side its sign flips:
    a member who gets money back is someone the viewer owes.
    """
    currency = group_balances.currency.upper()
    friend_id = balance.participant.user_id

    if group_balances.simplified is None:
        return _group_amount(group_balances, balance.amount).negate()

    amount = Money.zero(currency)
    for edge in group_balances.simplified:
        payer = edge.from_participant.user_id
        payee = edge.to_participant.user_id
        if payer == friend_id and payee == viewer.user_id:
            amount = amount + _group_amount(group_balances, edge.amount)
        elif payer == viewer.user_id and payee == friend_id:
            amount = amount - _group_amount(group_balances, edge.amount)
    return amount


def aggregate_friend_balances(
    per_group: Iterable[GroupBalances],
    viewer: Participant,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[FriendBalance]:
    """
    Combine per-group balances into one position per friend.

    The viewer's own row in each group is skipped; every other row becomes
    the viewer's position against that member (see :func:`counterpart_amount`).
    Friends whose balances net to zero in every currency are still returned
    (``is_settled``) as long as they share a group with the viewer.

    Args:
        per_group: Balance snapshots, one per group
        viewer: The person whose friends are being listed
        tolerance: Settled tolerance carried onto each result

    Returns:
        Friend balances in first-seen order

    Raises:
        CurrencyMismatchError: If a group reports a balance outside its currency
    """
    friends: dict[str, _FriendAccumulator] = {}

    for group_balances in per_group:
        for balance in group_balances.balances:
            if balance.participant.user_id == viewer.user_id:
                continue

            amount = counterpart_amount(group_balances, balance, viewer)
            accumulator = friends.get(balance.participant.user_id)
            if accumulator is None:
                accumulator = _FriendAccumulator(balance.participant)
                friends[balance.participant.user_id] = accumulator
            accumulator.add(group_balances.group, amount)

    results = [acc.build(tolerance) for acc in friends.values()]

    logger.debug(
        f"Aggregated {len(results)} friend(s) for {viewer.name} "
        f"({sum(1 for r in results if r.is_settled)} settled)"
    )
    return results


def summarize_totals(
    per_group: Iterable[GroupBalances],
    viewer: Participant,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[CurrencyTotal]:
    """
    Per-currency grand totals of what the viewer is owed and owes.

    A group's own row for the viewer is the server's net for the viewer in
    that group and is used when present. Groups without one fall back to the
    viewer's position against each counterpart. Amounts within tolerance of
    zero are ignored.

    Returns:
        One total per currency in first-seen order
    """
    owed: dict[str, Money] = {}
    owe: dict[str, Money] = {}

    for group_balances in per_group:
        own = [
            _group_amount(group_balances, b.amount)
            for b in group_balances.balances
            if b.participant.user_id == viewer.user_id
        ]
        amounts = own or [
            counterpart_amount(group_balances, b, viewer)
            for b in group_balances.balances
            if b.participant.user_id != viewer.user_id
        ]

        currency = group_balances.currency.upper()
        owed.setdefault(currency, Money.zero(currency))
        owe.setdefault(currency, Money.zero(currency))

        for amount in amounts:
            if amount.is_zero(tolerance):
                continue
            if amount.amount > 0:
                owed[currency] = owed[currency] + amount
            else:
                owe[currency] = owe[currency] + amount.abs()

    return [
        CurrencyTotal(currency=currency, owed=owed[currency], owe=owe[currency])
        for currency in owed
    ]


def from_friend_records(
    records: Sequence[FriendWithBalance],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[FriendBalance]:
    """
    Convert the server's pre-aggregated friends endpoint into friend balances.

    The record's single ``netBalance`` mixes currencies, so totals are rebuilt
    from the per-group breakdown using the same segregation rules as
    :func:`aggregate_friend_balances`.
    """
    results = []
    for record in records:
        accumulator = _FriendAccumulator(
            Participant(user_id=record.friend_id, name=record.friend_name)
        )
        for row in record.group_breakdown:
            group = GroupRef(id=row.group_id, name=row.group_name, currency=row.currency)
            accumulator.add(group, money_from_raw(row.balance, row.currency, tolerance))
        results.append(accumulator.build(tolerance))

    return results
