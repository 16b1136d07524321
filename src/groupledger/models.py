"""Pydantic domain models for GroupLedger."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from .money import DEFAULT_TOLERANCE, Money

# ============================================================================
# Participants
# ============================================================================


class Participant(BaseModel):
    """A group member or direct-expense counterpart."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    is_guest: bool = False  # guests split like anyone else but cannot log in


class GroupRef(BaseModel):
    """A group as returned by the ledger backend."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    currency: str = "USD"


# ============================================================================
# Expense Entry
# ============================================================================


class EqualAll(BaseModel):
    """Split equally among every participant of the expense."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["equal_all"] = "equal_all"


class EqualSubset(BaseModel):
    """Split equally among a chosen subset of participants."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["equal_subset"] = "equal_subset"
    participants: tuple[Participant, ...]


class Percentage(BaseModel):
    """Split by percentage, keyed by user id."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["percentage"] = "percentage"
    percentages: dict[str, Decimal]


class Custom(BaseModel):
    """Split by exact amounts, keyed by user id."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["custom"] = "custom"
    amounts: dict[str, Money]


SplitMethod = Annotated[
    EqualAll | EqualSubset | Percentage | Custom, Field(discriminator="kind")
]


class ExpenseInput(BaseModel):
    """A single expense entry as captured by the entry flow."""

    model_config = ConfigDict(frozen=True)

    total: Money
    payer: Participant
    participants: tuple[Participant, ...]  # iteration order drives tie-breaks
    method: SplitMethod
    title: str = ""
    category: str | None = None
    note: str | None = None
    expense_date: datetime | None = None

    @property
    def api_split_method(self) -> str:
        """Split method name as the backend knows it."""
        if isinstance(self.method, EqualAll | EqualSubset):
            return "equal"
        return self.method.kind


class Split(BaseModel):
    """One participant's share of an expense."""

    model_config = ConfigDict(frozen=True)

    participant: Participant
    amount: Money
    percentage: Decimal | None = None


# ============================================================================
# Balances & Settlements
# ============================================================================


class Balance(BaseModel):
    """A member's own net position in one group, as the ledger reports it.

    Positive = the member gets money back; negative = the member owes. For
    the viewer's own row this is the viewer's net (positive = owed to the
    viewer). A counterpart's row is *not* their debt to the viewer; see
    ``balances.counterpart_amount``.
    """

    model_config = ConfigDict(frozen=True)

    participant: Participant
    amount: Money


class SimplifiedSettlement(BaseModel):
    """One edge of the server-computed minimum-transaction graph."""

    model_config = ConfigDict(frozen=True)

    from_participant: Participant
    to_participant: Participant
    amount: Money


class GroupBalances(BaseModel):
    """Snapshot of one group's balances, all in the group's currency.

    ``simplified`` carries the group's minimum-transaction edges when they
    were fetched alongside the balances; friend positions are then read off
    the edges between the viewer and each friend.
    """

    model_config = ConfigDict(frozen=True)

    group: GroupRef
    currency: str
    balances: tuple[Balance, ...]
    simplified: tuple[SimplifiedSettlement, ...] | None = None


class CurrencyAmount(BaseModel):
    model_config = ConfigDict(frozen=True)

    currency: str
    amount: Money


class GroupBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    group: GroupRef
    currency: str
    amount: Money


class FriendBalance(BaseModel):
    """A viewer's position against one friend across every shared group.

    Amounts are from the viewer's side: positive = the friend owes the viewer.
    """

    model_config = ConfigDict(frozen=True)

    friend: Participant
    per_currency: tuple[CurrencyAmount, ...]
    breakdown: tuple[GroupBreakdown, ...]
    tolerance: Decimal = DEFAULT_TOLERANCE

    @property
    def nonzero_currencies(self) -> list[CurrencyAmount]:
        return [c for c in self.per_currency if not c.amount.is_zero(self.tolerance)]

    @property
    def is_settled(self) -> bool:
        return not self.nonzero_currencies

    def amount_in(self, currency: str) -> Money | None:
        for entry in self.per_currency:
            if entry.currency == currency.upper():
                return entry.amount
        return None


class CurrencyTotal(BaseModel):
    """Dashboard totals for one currency."""

    model_config = ConfigDict(frozen=True)

    currency: str
    owed: Money  # owed to the viewer
    owe: Money  # the viewer owes, as a positive amount

    @property
    def net(self) -> Money:
        return self.owed - self.owe


class Direction(str, Enum):
    OWES = "owes"
    GETS_BACK = "gets_back"


class Edge(BaseModel):
    model_config = ConfigDict(frozen=True)

    counterpart: Participant
    amount: Money


class MemberBreakdown(BaseModel):
    """Who one member pays and who pays them, per the simplified settlements."""

    model_config = ConfigDict(frozen=True)

    participant: Participant
    balance: Money | None = None
    owes: tuple[Edge, ...] = ()
    gets_back: tuple[Edge, ...] = ()

    @property
    def has_edges(self) -> bool:
        return bool(self.owes or self.gets_back)


class SettlementProposal(BaseModel):
    """Pre-filled settlement draft; the user edits it before recording."""

    model_config = ConfigDict(frozen=True)

    from_participant: Participant
    to_participant: Participant
    amount: Money
    note: str | None = None


# ============================================================================
# Backend Records
# ============================================================================


class FriendGroupBalance(BaseModel):
    """One group row of the friends endpoint."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    group_id: str = Field(alias="groupId")
    group_name: str = Field(alias="groupName")
    currency: str = "USD"
    balance: Decimal


class FriendWithBalance(BaseModel):
    """A friend as returned by the server-aggregated friends endpoint."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    friend_id: str = Field(alias="friendId")
    friend_name: str = Field(alias="friendName")
    friend_email: str | None = Field(default=None, alias="friendEmail")
    net_balance: Decimal = Field(default=Decimal("0"), alias="netBalance")
    group_breakdown: list[FriendGroupBalance] = Field(
        default_factory=list, alias="groupBreakdown"
    )


class SettlementRecord(BaseModel):
    """A recorded settlement as returned by the backend."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    group_id: str = Field(alias="groupId")
    from_user_id: str = Field(alias="fromUserId")
    to_user_id: str = Field(alias="toUserId")
    amount: Decimal
    note: str | None = None
    status: Literal["pending", "confirmed"] = "pending"


class GroupSettlement(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    group_id: str = Field(alias="groupId")
    group_name: str = Field(alias="groupName")
    settlement_id: str = Field(alias="settlementId")
    amount: Decimal


class FriendSettlementResult(BaseModel):
    """Per-group settlements created by a cross-group friend settle."""

    settlements: list[GroupSettlement] = Field(default_factory=list)
