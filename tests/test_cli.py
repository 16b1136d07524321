"""Tests for the command-line interface."""

from decimal import Decimal
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from groupledger.cli import app, build_expense
from groupledger.exceptions import ConfigurationError
from groupledger.models import (
    Balance,
    CurrencyAmount,
    Custom,
    EqualAll,
    EqualSubset,
    FriendBalance,
    FriendSettlementResult,
    GroupRef,
    Participant,
    Percentage,
    SettlementRecord,
    SimplifiedSettlement,
)
from groupledger.money import Money
from groupledger.settlements import member_breakdowns

runner = CliRunner()


class TestBuildExpense:
    """Turning command-line arguments into an expense."""

    def test_equal_split_defaults_payer_to_first_member(self):
        expense = build_expense("30", "usd", "equal", ["Alice", "Bob"], [], None)

        assert expense.total == Money.of("30", "USD")
        assert expense.payer.name == "Alice"
        assert isinstance(expense.method, EqualAll)

    def test_only_selects_a_subset(self):
        expense = build_expense("30", "USD", "equal", ["Alice", "Bob", "Carol"], ["Bob"], "Alice")

        assert isinstance(expense.method, EqualSubset)
        assert [p.name for p in expense.method.participants] == ["Bob"]

    def test_only_with_unknown_member(self):
        with pytest.raises(typer.BadParameter, match="Dave"):
            build_expense("30", "USD", "equal", ["Alice"], ["Dave"], None)

    def test_percentage_and_custom_values(self):
        pct = build_expense("10", "USD", "percentage", ["Alice=70", "Bob=30"], [], None)
        custom = build_expense("10", "USD", "custom", ["Alice=7.5", "Bob=2.5"], [], None)

        assert isinstance(pct.method, Percentage)
        assert pct.method.percentages["Alice"] == 70
        assert isinstance(custom.method, Custom)
        assert custom.method.amounts["Bob"] == Money.of("2.50", "USD")

    def test_missing_value(self):
        with pytest.raises(typer.BadParameter, match="needs a value"):
            build_expense("10", "USD", "custom", ["Alice"], [], None)


class TestSplitCommand:
    """The offline split preview."""

    def test_equal_split_table(self):
        result = runner.invoke(
            app, ["split", "100", "-m", "Alice", "-m", "Bob", "-m", "Carol", "-c", "USD"]
        )

        assert result.exit_code == 0
        assert "$33.33" in result.output
        assert "$33.34" in result.output
        assert "Shares add up to $100.00" in result.output

    def test_percentage_mismatch_exits_with_error(self):
        result = runner.invoke(
            app,
            ["split", "100", "--method", "percentage", "-m", "Alice=60", "-m", "Bob=30", "-c", "USD"],
        )

        assert result.exit_code == 1
        assert "Percentages must add up to 100" in result.output

    def test_currency_from_settings(self):
        result = runner.invoke(
            app,
            ["split", "10", "-m", "Alice", "-m", "Bob"],
            env={"GROUPLEDGER_DEFAULT_CURRENCY": "EUR"},
        )

        assert result.exit_code == 0
        assert "€5.00" in result.output

    def test_equal_split_leaves_percent_column_blank(self):
        result = runner.invoke(app, ["split", "9", "-m", "Alice", "-m", "Bob", "-c", "USD"])

        assert result.exit_code == 0
        assert "$4.50" in result.output
        assert "\u2014" not in result.output

    def test_bad_settings_exit_with_error(self):
        with patch(
            "groupledger.cli.load_settings", side_effect=ConfigurationError("bad .env")
        ):
            result = runner.invoke(app, ["split", "10", "-m", "Alice", "-c", "USD"])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "bad .env" in result.output


class TestCurrencyCommand:
    def test_configured_currency(self):
        result = runner.invoke(app, ["currency"], env={"GROUPLEDGER_DEFAULT_CURRENCY": "GBP"})

        assert result.exit_code == 0
        assert result.output.strip() == "GBP"

    def test_detected_currency(self):
        with patch("groupledger.cli.infer_default_currency", return_value="LKR"):
            result = runner.invoke(app, ["currency"], env={"GROUPLEDGER_DEFAULT_CURRENCY": ""})

        assert result.exit_code == 0
        assert "LKR" in result.output

    def test_bad_settings_exit_with_error(self):
        with patch(
            "groupledger.cli.load_settings", side_effect=ConfigurationError("bad .env")
        ):
            result = runner.invoke(app, ["currency"])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestSettleFriendCommand:
    @patch("groupledger.cli.LedgerService")
    def test_settled_friend(self, mock_service_cls):
        service = mock_service_cls.return_value
        service.friend_balances.return_value = []

        result = runner.invoke(app, ["settle-friend", "a", "--viewer", "me", "--yes"])

        assert result.exit_code == 1
        assert "No shared groups" in result.output
        service.settle_friend.assert_not_called()

    @patch("groupledger.cli.LedgerService")
    def test_nothing_to_settle(self, mock_service_cls):
        service = mock_service_cls.return_value
        service.friend_balances.return_value = [
            FriendBalance(
                friend=Participant(user_id="a", name="Alice"),
                per_currency=(CurrencyAmount(currency="USD", amount=Money.zero("USD")),),
                breakdown=(),
            )
        ]

        result = runner.invoke(app, ["settle-friend", "a", "--viewer", "me", "--yes"])

        assert result.exit_code == 0
        assert "settled up" in result.output
        service.settle_friend.assert_not_called()

    @patch("groupledger.cli.LedgerService")
    def test_settles_single_currency(self, mock_service_cls):
        service = mock_service_cls.return_value
        service.friend_balances.return_value = [
            FriendBalance(
                friend=Participant(user_id="a", name="Alice"),
                per_currency=(CurrencyAmount(currency="USD", amount=Money.of("-12", "USD")),),
                breakdown=(),
            )
        ]
        service.settle_friend.return_value = FriendSettlementResult(settlements=[])

        result = runner.invoke(app, ["settle-friend", "a", "--viewer", "me", "--yes"])

        assert result.exit_code == 0
        assert "Settled $12.00 with Alice" in result.output
        _, kwargs = service.settle_friend.call_args
        assert kwargs["currency"] == "USD"
        assert kwargs["amount"] is None


class TestSettleCommand:
    """Group-level settlements recorded through the service."""

    @pytest.fixture
    def service(self):
        alice = Participant(user_id="a", name="Alice")
        bob = Participant(user_id="b", name="Bob")
        simplified = [
            SimplifiedSettlement(
                from_participant=alice, to_participant=bob, amount=Money.of("7.5", "USD")
            )
        ]
        breakdowns = member_breakdowns(
            simplified,
            [
                Balance(participant=alice, amount=Money.of("-7.5", "USD")),
                Balance(participant=bob, amount=Money.of("7.5", "USD")),
            ],
        )
        with patch("groupledger.cli.LedgerService") as mock_service_cls:
            service = mock_service_cls.return_value
            service.find_group.return_value = GroupRef(id="g1", name="Flat")
            service.group_breakdowns.return_value = (breakdowns, simplified)
            service.record_settlement.return_value = SettlementRecord(
                id="s1", group_id="g1", from_user_id="a", to_user_id="b", amount=Decimal("7.50")
            )
            yield service

    def test_quick_settle(self, service):
        result = runner.invoke(app, ["settle", "g1", "--quick", "1", "--yes"])

        assert result.exit_code == 0
        group_id, proposal = service.record_settlement.call_args[0]
        assert group_id == "g1"
        assert proposal.from_participant.name == "Alice"
        assert proposal.to_participant.name == "Bob"
        assert proposal.amount == Money.of("7.50", "USD")

    def test_member_row(self, service):
        result = runner.invoke(app, ["settle", "g1", "--member", "b", "--note", "rent", "--yes"])

        assert result.exit_code == 0
        _, proposal = service.record_settlement.call_args[0]
        assert proposal.from_participant.name == "Alice"
        assert proposal.to_participant.name == "Bob"
        assert proposal.note == "rent"

    def test_group_table_leaves_missing_edges_blank(self, service):
        result = runner.invoke(app, ["group", "g1"])

        assert result.exit_code == 0
        assert "Bob $7.50" in result.output
        assert "Alice $7.50" in result.output
        assert "\u2014" not in result.output

    def test_quick_index_out_of_range(self, service):
        result = runner.invoke(app, ["settle", "g1", "--quick", "3", "--yes"])

        assert result.exit_code == 1
        service.record_settlement.assert_not_called()

    def test_requires_one_selector(self, service):
        result = runner.invoke(app, ["settle", "g1", "--yes"])

        assert result.exit_code == 1
        assert "exactly one" in result.output
