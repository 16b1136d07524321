"""Expense split computation.

Turns one expense entry and its split method into per-participant shares.
Every successful computation satisfies ``sum(shares) == total`` to the minor
unit; inputs that cannot meet that are rejected rather than adjusted.
"""

import logging
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .exceptions import (
    CurrencyMismatchError,
    CustomAmountMismatchError,
    EmptySelectionError,
    PercentageMismatchError,
    RoundingError,
    SplitError,
    UnknownParticipantError,
)
from .models import (
    Custom,
    EqualAll,
    EqualSubset,
    ExpenseInput,
    Participant,
    Percentage,
    Split,
)
from .money import CENT, DEFAULT_TOLERANCE, Money, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def split_equally(total: Money, participants: Sequence[Participant]) -> list[Split]:
    """
    Divide ``total`` equally among ``participants``.

    Each share is the total divided by the head count, floored to the minor
    unit. The last participant in iteration order absorbs the residual so the
    shares add up exactly: $100.00 / 3 -> 33.33, 33.33, 33.34.

    Args:
        total: The amount to divide
        participants: Participants in display order

    Returns:
        One split per participant, in input order

    Raises:
        EmptySelectionError: If ``participants`` is empty
    """
    if not participants:
        raise EmptySelectionError()

    count = len(participants)
    per_person, residual = divmod(total.amount, count)

    splits = [
        Split(participant=p, amount=Money(amount=per_person, currency=total.currency))
        for p in participants[:-1]
    ]
    splits.append(
        Split(
            participant=participants[-1],
            amount=Money(amount=per_person + residual, currency=total.currency),
        )
    )

    if residual:
        logger.debug(
            f"Assigned residual {residual} minor unit(s) of {total} "
            f"to {participants[-1].name}"
        )

    return splits


def split_by_percentage(
    total: Money,
    participants: Sequence[Participant],
    percentages: dict[str, Decimal],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> list[Split]:
    """
    Divide ``total`` by per-participant percentages.

    Percentages must add up to 100 within ``tolerance``. Each share is
    rounded half-up to the minor unit; if the rounded shares do not add back
    up to the total the input is rejected, since no participant is a natural
    home for the drift.

    Raises:
        PercentageMismatchError: If percentages do not add up to 100
        RoundingError: If rounded shares miss the total
        UnknownParticipantError: If a percentage names a non-participant
    """
    _check_known(participants, percentages)

    pcts = {user_id: to_decimal(pct) for user_id, pct in percentages.items()}
    if any(pct < 0 for pct in pcts.values()):
        raise SplitError("Percentages cannot be negative")

    observed = sum(pcts.values(), Decimal("0"))
    if abs(observed - HUNDRED) >= tolerance:
        raise PercentageMismatchError(observed)

    major_total = total.to_major()
    splits = []
    for participant in participants:
        pct = pcts.get(participant.user_id, Decimal("0"))
        if pct == 0:
            continue
        share = (major_total * pct / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
        splits.append(
            Split(
                participant=participant,
                amount=Money.of(share, total.currency),
                percentage=pct,
            )
        )

    residual = total.amount - sum(s.amount.amount for s in splits)
    if residual != 0:
        raise RoundingError(residual)

    return splits


def split_by_amount(
    total: Money,
    participants: Sequence[Participant],
    amounts: dict[str, Money],
) -> list[Split]:
    """
    Use exact per-participant amounts, checking they add up to ``total``.

    Amounts are already whole minor units, so the sum must match to the cent;
    the settled tolerance does not apply here.

    Raises:
        CustomAmountMismatchError: If the amounts miss the total
        CurrencyMismatchError: If an amount is in another currency
        UnknownParticipantError: If an amount names a non-participant
    """
    _check_known(participants, amounts)

    for share in amounts.values():
        if share.currency != total.currency:
            raise CurrencyMismatchError(total.currency, share.currency)
        if share.amount < 0:
            raise SplitError("Split amounts cannot be negative")

    observed = Money.sum(amounts.values(), total.currency)
    if observed.amount != total.amount:
        raise CustomAmountMismatchError(observed.to_major(), total.to_major())

    return [
        Split(participant=p, amount=amounts[p.user_id])
        for p in participants
        if p.user_id in amounts and amounts[p.user_id].amount != 0
    ]


def _check_known(participants: Sequence[Participant], keyed: dict[str, Any]) -> None:
    known = {p.user_id for p in participants}
    for user_id in keyed:
        if user_id not in known:
            raise UnknownParticipantError(user_id)


def compute_splits(
    expense: ExpenseInput, tolerance: Decimal = DEFAULT_TOLERANCE
) -> list[Split]:
    """
    Compute the per-participant shares for an expense.

    Pure function: the same input always yields the same list.

    Args:
        expense: The expense entry
        tolerance: Tolerance for the percentage-sum check

    Returns:
        Splits in participant order

    Raises:
        SplitError: If the input is invalid for its split method
    """
    if expense.total.amount <= 0:
        raise SplitError("Expense amount must be greater than zero")

    method = expense.method
    if isinstance(method, EqualAll):
        splits = split_equally(expense.total, expense.participants)
    elif isinstance(method, EqualSubset):
        _check_known(expense.participants, {p.user_id: p for p in method.participants})
        splits = split_equally(expense.total, method.participants)
    elif isinstance(method, Percentage):
        splits = split_by_percentage(
            expense.total, expense.participants, method.percentages, tolerance
        )
    elif isinstance(method, Custom):
        splits = split_by_amount(expense.total, expense.participants, method.amounts)
    else:
        raise SplitError(f"Unsupported split method: {method!r}")

    logger.debug(
        f"Computed {len(splits)} {method.kind} split(s) for {expense.total}"
    )
    return splits


def validate_expense(
    expense: ExpenseInput, tolerance: Decimal = DEFAULT_TOLERANCE
) -> SplitError | CurrencyMismatchError | None:
    """Return the validation failure for ``expense``, or None if it is valid."""
    try:
        compute_splits(expense, tolerance)
    except (SplitError, CurrencyMismatchError) as e:
        return e
    return None


def build_expense_request(
    expense: ExpenseInput, splits: Sequence[Split], group_id: str
) -> dict[str, Any]:
    """
    Build the backend's create-expense body.

    Amounts are sent as decimal strings, never floats.
    """
    body: dict[str, Any] = {
        "groupId": group_id,
        "title": expense.title,
        "amount": expense.total.to_wire(),
        "paidBy": expense.payer.user_id,
        "splitMethod": expense.api_split_method,
        "splits": [],
    }
    if expense.category:
        body["category"] = expense.category
    if expense.note:
        body["note"] = expense.note
    if expense.expense_date:
        body["date"] = expense.expense_date.isoformat()

    for split in splits:
        row: dict[str, Any] = {
            "userId": split.participant.user_id,
            "amount": split.amount.to_wire(),
        }
        if split.percentage is not None:
            row["percentage"] = str(split.percentage)
        body["splits"].append(row)

    return body
