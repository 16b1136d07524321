"""Tests for LedgerService layer."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import httpx
import pytest

from groupledger.clients.ledger import LedgerClient
from groupledger.config import Settings
from groupledger.exceptions import (
    AmbiguousCurrencyError,
    CurrencyMismatchError,
    PercentageMismatchError,
)
from groupledger.models import (
    Balance,
    CurrencyAmount,
    EqualAll,
    ExpenseInput,
    FriendBalance,
    FriendSettlementResult,
    GroupBalances,
    GroupBreakdown,
    GroupRef,
    Participant,
    Percentage,
    SettlementProposal,
    SettlementRecord,
    SimplifiedSettlement,
)
from groupledger.money import Money
from groupledger.service import LedgerService

ME = Participant(user_id="me", name="Me")
ALICE = Participant(user_id="a", name="Alice")
BOB = Participant(user_id="b", name="Bob")

FLAT = GroupRef(id="g1", name="Flat", currency="USD")
TRIP = GroupRef(id="g2", name="Trip", currency="EUR")


@pytest.fixture
def mock_settings():
    """Create mock settings."""
    return Settings(
        api_base_url="http://ledger.test",
        api_token="test_token",
        settle_tolerance=Decimal("0.01"),
    )


@pytest.fixture
def service(mock_settings):
    """Create a LedgerService instance."""
    return LedgerService(mock_settings)


@pytest.fixture
def mock_client():
    """Patch the ledger client; the context manager yields the mock itself."""
    with patch("groupledger.service.LedgerClient") as client_cls:
        client = MagicMock()
        client.__enter__.return_value = client
        client_cls.return_value = client
        yield client


def snapshot(group: GroupRef, rows: dict[Participant, str]) -> GroupBalances:
    return GroupBalances(
        group=group,
        currency=group.currency,
        balances=tuple(
            Balance(participant=p, amount=Money.of(v, group.currency)) for p, v in rows.items()
        ),
    )


def settlement(payer: Participant, payee: Participant, amount: str, currency: str):
    return SimplifiedSettlement(
        from_participant=payer, to_participant=payee, amount=Money.of(amount, currency)
    )


class TestBalances:
    """Reads composed from group snapshots."""

    def test_friend_balances_across_groups(self, service, mock_client):
        mock_client.get_groups.return_value = [FLAT, TRIP]
        mock_client.get_group_balances.side_effect = [
            snapshot(FLAT, {ME: "15.00", ALICE: "-10.00", BOB: "-5.00"}),
            snapshot(TRIP, {ME: "-8.00", ALICE: "8.00"}),
        ]
        mock_client.get_simplified_settlements.side_effect = [
            [settlement(ALICE, ME, "10", "USD"), settlement(BOB, ME, "5", "USD")],
            [settlement(ME, ALICE, "8", "EUR")],
        ]

        friends = service.friend_balances(ME)

        assert [f.friend.name for f in friends] == ["Alice", "Bob"]
        alice, bob = friends
        assert alice.amount_in("USD") == Money.of("10", "USD")
        assert alice.amount_in("EUR") == Money.of("-8", "EUR")
        assert bob.amount_in("USD") == Money.of("5", "USD")
        assert len(alice.breakdown) == 2
        requested = [c[0][0] for c in mock_client.get_simplified_settlements.call_args_list]
        assert [g.id for g in requested] == ["g1", "g2"]

    def test_dashboard_totals(self, service, mock_client):
        mock_client.get_groups.return_value = [FLAT, TRIP]
        mock_client.get_group_balances.side_effect = [
            snapshot(FLAT, {ME: "15.00", ALICE: "-10.00", BOB: "-5.00"}),
            snapshot(TRIP, {ME: "-8.00", ALICE: "8.00"}),
        ]

        totals = {t.currency: t for t in service.dashboard_totals(ME)}

        assert totals["USD"].owed == Money.of("15", "USD")
        assert totals["USD"].owe == Money.zero("USD")
        assert totals["EUR"].owe == Money.of("8", "EUR")
        mock_client.get_simplified_settlements.assert_not_called()

    def test_client_side_and_server_side_friends_agree(self, service):
        """Both friend code paths report the same direction over real payloads."""
        payloads = {
            "/api/groups": [{"id": "g1", "name": "Flat", "currency": "USD"}],
            "/api/expenses/group/g1/balances": {
                "currency": "USD",
                "balances": [
                    {"userId": "me", "name": "Me", "balance": -20},
                    {"userId": "a", "name": "Alice", "balance": 20},
                ],
            },
            "/api/settlements/group/g1/simplified": {
                "simplifiedSettlements": [
                    {"from": "me", "fromName": "Me", "to": "a", "toName": "Alice", "amount": 20}
                ]
            },
            "/api/friends/balances": [
                {
                    "friendId": "a",
                    "friendName": "Alice",
                    "netBalance": -20,
                    "groupBreakdown": [
                        {"groupId": "g1", "groupName": "Flat", "currency": "USD", "balance": -20}
                    ],
                }
            ],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payloads[request.url.path])

        def real_client(*args, **kwargs):
            return LedgerClient(*args, transport=httpx.MockTransport(handler), **kwargs)

        with patch("groupledger.service.LedgerClient", side_effect=real_client):
            [client_side] = service.friend_balances(ME)
            [server_side] = service.server_friend_balances()

        assert client_side.friend.user_id == server_side.friend.user_id == "a"
        assert client_side.amount_in("USD") == server_side.amount_in("USD")
        assert client_side.amount_in("USD") == Money.of("-20", "USD")

    def test_find_group(self, service, mock_client):
        mock_client.get_groups.return_value = [FLAT, TRIP]

        assert service.find_group("g2") == TRIP
        with pytest.raises(ValueError, match="not found"):
            service.find_group("missing")

    def test_group_breakdowns_use_snapshot_currency(self, service, mock_client):
        mock_client.get_group_balances.return_value = snapshot(
            TRIP, {ALICE: "-3.00", BOB: "3.00"}
        )
        mock_client.get_simplified_settlements.return_value = [
            SimplifiedSettlement(
                from_participant=ALICE, to_participant=BOB, amount=Money.of("3", "EUR")
            )
        ]

        breakdowns, simplified = service.group_breakdowns(
            TRIP.model_copy(update={"currency": "USD"})
        )

        requested = mock_client.get_simplified_settlements.call_args[0][0]
        assert requested.currency == "EUR"
        assert len(simplified) == 1
        assert [b.participant.name for b in breakdowns] == ["Alice", "Bob"]


class TestSubmitExpense:
    """Expenses are validated before anything is sent."""

    def test_sends_computed_splits(self, service, mock_client):
        mock_client.create_expense.return_value = {"id": "e1"}
        expense = ExpenseInput(
            total=Money.of("100.00", "USD"),
            payer=ME,
            participants=(ME, ALICE, BOB),
            method=EqualAll(),
            title="Groceries",
        )

        created = service.submit_expense("g1", expense)

        assert created == {"id": "e1"}
        body = mock_client.create_expense.call_args[0][0]
        assert body["groupId"] == "g1"
        assert body["amount"] == "100.00"
        assert [s["amount"] for s in body["splits"]] == ["33.33", "33.33", "33.34"]

    def test_invalid_expense_is_not_sent(self, service, mock_client):
        expense = ExpenseInput(
            total=Money.of("100.00", "USD"),
            payer=ME,
            participants=(ME, ALICE),
            method=Percentage(percentages={"me": Decimal("60"), "a": Decimal("30")}),
            title="Dinner",
        )

        with pytest.raises(PercentageMismatchError):
            service.submit_expense("g1", expense)

        mock_client.create_expense.assert_not_called()


class TestSettleFriend:
    """Cross-group settlement with a friend."""

    @pytest.fixture
    def alice_balance(self):
        per_currency = (
            CurrencyAmount(currency="USD", amount=Money.of("10", "USD")),
            CurrencyAmount(currency="EUR", amount=Money.of("-8", "EUR")),
        )
        return FriendBalance(
            friend=ALICE,
            per_currency=per_currency,
            breakdown=(
                GroupBreakdown(group=FLAT, currency="USD", amount=Money.of("10", "USD")),
                GroupBreakdown(group=TRIP, currency="EUR", amount=Money.of("-8", "EUR")),
            ),
        )

    def test_full_amount_in_selected_currency(self, service, mock_client, alice_balance):
        mock_client.settle_friend.return_value = FriendSettlementResult(settlements=[])

        service.settle_friend(alice_balance, ME, currency="EUR", note="Trip")

        mock_client.settle_friend.assert_called_once_with(
            "a", Money.of("8", "EUR"), note="Trip"
        )

    def test_partial_amount(self, service, mock_client, alice_balance):
        mock_client.settle_friend.return_value = FriendSettlementResult(settlements=[])

        service.settle_friend(alice_balance, ME, currency="USD", amount=Money.of("4", "USD"))

        mock_client.settle_friend.assert_called_once_with(
            "a", Money.of("4", "USD"), note=None
        )

    def test_requires_currency_choice(self, service, mock_client, alice_balance):
        with pytest.raises(AmbiguousCurrencyError):
            service.settle_friend(alice_balance, ME)

        mock_client.settle_friend.assert_not_called()

    def test_rejects_amount_in_other_currency(self, service, mock_client, alice_balance):
        with pytest.raises(CurrencyMismatchError):
            service.settle_friend(
                alice_balance, ME, currency="USD", amount=Money.of("4", "EUR")
            )

    def test_rejects_amount_above_balance(self, service, mock_client, alice_balance):
        with pytest.raises(ValueError, match="between"):
            service.settle_friend(
                alice_balance, ME, currency="USD", amount=Money.of("11", "USD")
            )

        mock_client.settle_friend.assert_not_called()


class TestRecordSettlement:
    def test_records_in_group(self, service, mock_client):
        proposal = SettlementProposal(
            from_participant=ALICE, to_participant=BOB, amount=Money.of("3", "USD")
        )
        mock_client.record_settlement.return_value = SettlementRecord(
            id="s1", group_id="g1", from_user_id="a", to_user_id="b", amount=Decimal("3.00")
        )

        record = service.record_settlement("g1", proposal)

        mock_client.record_settlement.assert_called_once_with("g1", proposal)
        assert record.status == "pending"
