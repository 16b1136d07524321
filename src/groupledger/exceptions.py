"""Custom exceptions for GroupLedger."""

from decimal import Decimal


class GroupLedgerError(Exception):
    """Base exception for all GroupLedger errors."""

    pass


class ConfigurationError(GroupLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class CurrencyMismatchError(GroupLedgerError):
    """Raised when money in two different currencies is combined."""

    def __init__(self, left: str, right: str, message: str | None = None):
        self.left = left
        self.right = right
        super().__init__(
            message or f"Cannot combine amounts in {left} and {right}"
        )


# ============================================================================
# Split validation
# ============================================================================


class SplitError(GroupLedgerError):
    """Base class for expense split validation failures."""

    pass


class EmptySelectionError(SplitError):
    """Raised when an equal split is requested over no participants."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Select at least one participant to split with")


class PercentageMismatchError(SplitError):
    """Raised when split percentages do not add up to 100."""

    def __init__(self, observed_sum: Decimal, message: str | None = None):
        self.observed_sum = observed_sum
        super().__init__(
            message or f"Percentages must add up to 100. Total: {observed_sum:.2f}% / 100%"
        )


class CustomAmountMismatchError(SplitError):
    """Raised when custom split amounts do not add up to the expense total."""

    def __init__(
        self, observed_sum: Decimal, expected: Decimal, message: str | None = None
    ):
        self.observed_sum = observed_sum
        self.expected = expected
        super().__init__(
            message
            or f"Split amounts must add up to the total. "
            f"Total: {observed_sum:.2f} / {expected:.2f}"
        )


class RoundingError(SplitError):
    """Raised when rounded percentage shares no longer add up to the total."""

    def __init__(self, residual_minor_units: int, message: str | None = None):
        self.residual_minor_units = residual_minor_units
        super().__init__(
            message
            or f"Rounded shares are off from the total by {residual_minor_units} "
            f"minor unit(s); adjust the percentages"
        )


class UnknownParticipantError(SplitError):
    """Raised when split parameters reference someone outside the expense."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Participant {user_id} is not part of this expense")


# ============================================================================
# Settlement proposals
# ============================================================================


class AmbiguousCurrencyError(GroupLedgerError):
    """Raised when a friend has balances in several currencies and none was picked."""

    def __init__(self, currencies: list[str]):
        self.currencies = currencies
        super().__init__(
            f"Balance spans multiple currencies ({', '.join(currencies)}); "
            f"choose one to settle"
        )


class SettlementNotNeededError(GroupLedgerError):
    """Raised when proposing a settlement for a balance that is already settled."""

    pass


# ============================================================================
# API errors
# ============================================================================


class APIError(GroupLedgerError):
    """Base class for API-related errors."""

    pass


class LedgerAPIError(APIError):
    """Raised when a ledger backend request fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
