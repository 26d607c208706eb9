"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from fulfillment.domain.exceptions import ValidationError


@dataclass(frozen=True)
class Money:
    """Monetary amount with currency.

    Uses Decimal to avoid floating-point rounding errors that would be
    unacceptable in financial calculations.
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < Decimal("0"):
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    def __add__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: Decimal | int) -> Money:
        if isinstance(factor, bool) or not isinstance(factor, (Decimal, int)):
            raise TypeError(
                f"Can only multiply Money by Decimal or int, got {type(factor).__name__}"
            )
        return Money(self.amount * factor, self.currency)

    def __str__(self) -> str:
        return f"${self.amount:.2f}"

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    @staticmethod
    def of(amount: str | float | int | Decimal, currency: str = "USD") -> Money:
        """Convenient factory that coerces to Decimal safely."""
        try:
            return Money(Decimal(str(amount)), currency)
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc


@dataclass(frozen=True)
class Quantity:
    """A strictly positive quantity.

    Delivery quantities are fractional (kilograms, metres), so the value is a
    Decimal rather than an int.
    """

    value: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            raise ValidationError(
                f"Quantity must be a Decimal, got {type(self.value).__name__}"
            )
        if not self.value.is_finite():
            raise ValidationError(f"Quantity must be finite, got {self.value}")
        if self.value <= 0:
            raise ValidationError("Quantity must be greater than zero")

    def __str__(self) -> str:
        return f"{self.value.normalize():f}"

    @staticmethod
    def of(value: str | float | int | Decimal) -> Quantity:
        if isinstance(value, bool):
            raise ValidationError(f"Invalid quantity: {value!r}")
        try:
            return Quantity(Decimal(str(value)))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid quantity: {value!r}") from exc


@dataclass(frozen=True)
class AuditStamp:
    """Who did something, and when."""

    actor_id: int | None
    at: datetime
