"""Fixed-point money arithmetic.

Amounts are held as integer minor units (cents) tagged with an ISO currency
code. Values arriving from the network as floats or strings are converted
through ``Decimal(str(value))`` so binary floating point never reaches the
arithmetic.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from .exceptions import CurrencyMismatchError

MINOR_UNITS_PER_MAJOR = 100

# Magnitudes below this (in major units) count as "settled". Upstream APIs
# report balances as IEEE-754 doubles, so exact zero checks are unreliable.
DEFAULT_TOLERANCE = Decimal("0.01")

CENT = Decimal("0.01")


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert any numeric input to ``Decimal`` without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_minor_units(amount: Decimal | float | int | str) -> int:
    """
    Convert a major-unit amount to integer minor units.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Amount in major units (e.g. dollars)

    Returns:
        Amount in minor units (e.g. cents)
    """
    minor = to_decimal(amount) * MINOR_UNITS_PER_MAJOR
    return int(minor.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_settled_amount(
    amount: Decimal | float | int | str, tolerance: Decimal = DEFAULT_TOLERANCE
) -> bool:
    """Check a raw major-unit amount against the settled tolerance."""
    return abs(to_decimal(amount)) < tolerance


def money_from_raw(
    value: Decimal | float | int | str,
    currency: str,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> "Money":
    """
    Build Money from an upstream major-unit value.

    Values inside the settled tolerance become exactly zero, so float noise
    such as 0.009 does not round up to a visible cent.
    """
    if is_settled_amount(value, tolerance):
        return Money.zero(currency)
    return Money.of(value, currency)


class Money(BaseModel):
    """An amount of money in a single currency."""

    model_config = ConfigDict(frozen=True)

    amount: int  # minor units, signed
    currency: str

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.strip().upper()

    @classmethod
    def of(cls, value: Decimal | float | int | str, currency: str) -> "Money":
        """Build Money from a major-unit value (``Money.of("10.00", "USD")``)."""
        return cls(amount=to_minor_units(value), currency=currency.upper())

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(amount=0, currency=currency.upper())

    @classmethod
    def sum(cls, values: Iterable["Money"], currency: str) -> "Money":
        """Total an iterable of Money, all of which must be in ``currency``."""
        total = cls.zero(currency)
        for value in values:
            total = total.add(value)
        return total

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def add(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def negate(self) -> "Money":
        return Money(amount=-self.amount, currency=self.currency)

    def abs(self) -> "Money":
        return Money(amount=abs(self.amount), currency=self.currency)

    def compare(self, other: "Money") -> int:
        """Return -1, 0 or 1 as this amount is below, equal to or above ``other``."""
        self._check_currency(other)
        return (self.amount > other.amount) - (self.amount < other.amount)

    def is_zero(self, tolerance: Decimal = DEFAULT_TOLERANCE) -> bool:
        """True when the magnitude is strictly below ``tolerance`` major units."""
        return is_settled_amount(self.to_major(), tolerance)

    def is_positive(self, tolerance: Decimal = DEFAULT_TOLERANCE) -> bool:
        return self.amount > 0 and not self.is_zero(tolerance)

    def is_negative(self, tolerance: Decimal = DEFAULT_TOLERANCE) -> bool:
        return self.amount < 0 and not self.is_zero(tolerance)

    def to_major(self) -> Decimal:
        """Amount in major units as a two-place ``Decimal``."""
        return (Decimal(self.amount) / MINOR_UNITS_PER_MAJOR).quantize(CENT)

    def to_wire(self) -> str:
        """Decimal string for request bodies."""
        return str(self.to_major())

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return self.negate()

    def __abs__(self) -> "Money":
        return self.abs()

    def __lt__(self, other: "Money") -> bool:
        return self.compare(other) < 0

    def __le__(self, other: "Money") -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: "Money") -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: "Money") -> bool:
        return self.compare(other) >= 0

    def __str__(self) -> str:
        return f"{self.to_major()} {self.currency}"
