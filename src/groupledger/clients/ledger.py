"""Ledger backend REST API client."""

import logging
from decimal import Decimal
from typing import Any

import httpx

from ..exceptions import LedgerAPIError
from ..models import (
    Balance,
    FriendSettlementResult,
    FriendWithBalance,
    GroupBalances,
    GroupRef,
    Participant,
    SettlementProposal,
    SettlementRecord,
    SimplifiedSettlement,
)
from ..money import DEFAULT_TOLERANCE, Money, money_from_raw

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


def _to_money(value: Any, currency: str, tolerance: Decimal) -> Money:
    # Balances arrive as JSON numbers; go through str() so 0.1 stays 0.1
    return money_from_raw(Decimal(str(value)), currency, tolerance)


class LedgerClient:
    """Client for the group ledger backend API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the ledger client."""
        self.tolerance = tolerance
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body."""
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Ledger API error: {e}")
            logger.error(f"Response body: {e.response.text}")
            raise LedgerAPIError(
                _error_message(e.response), status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise LedgerAPIError(f"Request to {path} failed: {e}") from e

        return response.json()

    def get_groups(self) -> list[GroupRef]:
        """Get the groups the authenticated user belongs to."""
        data = self._request("GET", "/api/groups")
        return [
            GroupRef(
                id=str(g["id"]),
                name=g["name"],
                currency=g.get("currency") or DEFAULT_CURRENCY,
            )
            for g in data
        ]

    def get_group_balances(self, group: GroupRef) -> GroupBalances:
        """
        Get every member's balance in a group.

        Args:
            group: The group to fetch

        Returns:
            Balances tagged with the currency the server reports for the group
        """
        data = self._request("GET", f"/api/expenses/group/{group.id}/balances")
        currency = data.get("currency") or group.currency or DEFAULT_CURRENCY

        balances = [
            Balance(
                participant=Participant(
                    user_id=str(b["userId"]),
                    name=b.get("name") or b.get("userName") or str(b["userId"]),
                    is_guest=b.get("isGuest", False),
                ),
                amount=_to_money(b["balance"], currency, self.tolerance),
            )
            for b in data.get("balances", [])
        ]
        return GroupBalances(group=group, currency=currency, balances=tuple(balances))

    def get_simplified_settlements(
        self, group: GroupRef
    ) -> list[SimplifiedSettlement]:
        """
        Get the server's minimum-transaction settlement set for a group.

        Args:
            group: The group to fetch

        Returns:
            Simplified settlements in the group's currency
        """
        data = self._request("GET", f"/api/settlements/group/{group.id}/simplified")

        settlements = []
        for s in data.get("simplifiedSettlements", []):
            settlements.append(
                SimplifiedSettlement(
                    from_participant=Participant(
                        user_id=str(s["from"]), name=s.get("fromName") or str(s["from"])
                    ),
                    to_participant=Participant(
                        user_id=str(s["to"]), name=s.get("toName") or str(s["to"])
                    ),
                    amount=_to_money(s["amount"], group.currency, self.tolerance),
                )
            )
        return settlements

    def get_friends_with_balances(self) -> list[FriendWithBalance]:
        """Get the server-aggregated friends list."""
        data = self._request("GET", "/api/friends/balances")
        return [FriendWithBalance.model_validate(f) for f in data]

    def create_expense(self, body: dict[str, Any]) -> dict[str, Any]:
        """
        Create an expense.

        Args:
            body: Request body from ``splits.build_expense_request``

        Returns:
            The created expense as returned by the server
        """
        logger.debug(f"Expense payload: {body}")
        result: dict[str, Any] = self._request("POST", "/api/expenses", json=body)
        return result

    def record_settlement(
        self, group_id: str, proposal: SettlementProposal
    ) -> SettlementRecord:
        """Record a settlement payment in one group."""
        body: dict[str, Any] = {
            "groupId": group_id,
            "fromUserId": proposal.from_participant.user_id,
            "toUserId": proposal.to_participant.user_id,
            "amount": proposal.amount.to_wire(),
        }
        if proposal.note:
            body["note"] = proposal.note

        data = self._request("POST", "/api/settlements", json=body)
        return SettlementRecord.model_validate(data)

    def settle_friend(
        self, friend_id: str, amount: Money, note: str | None = None
    ) -> FriendSettlementResult:
        """Settle with a friend across every shared group in one currency."""
        body: dict[str, Any] = {"amount": amount.to_wire(), "currency": amount.currency}
        if note:
            body["note"] = note

        data = self._request("POST", f"/api/friends/{friend_id}/settle", json=body)
        return FriendSettlementResult.model_validate(data)


def _error_message(response: httpx.Response) -> str:
    """Pull the server's error text out of a failed response."""
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"

    if isinstance(payload, dict):
        message = payload.get("error") or payload.get("message")
        if message:
            return str(message)
    return f"HTTP {response.status_code}"
