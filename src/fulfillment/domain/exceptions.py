"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class StateConflictError(DomainException):
    """The aggregate is not in a status that allows the requested action."""

    def __init__(self, action: str, current: object, required: Iterable[object]) -> None:
        self.action = action
        self.current = current
        self.required = tuple(required)
        wanted = ", ".join(_label(s) for s in self.required) or "none"
        super().__init__(
            f"Cannot {action} delivery order — current status is "
            f"{_label(current)}, expected {wanted}"
        )


class CapacityExceededError(DomainException):
    """A requested quantity exceeds what is still deliverable on a line."""

    def __init__(
        self, sales_order_line_id: int, requested: Decimal, remaining: Decimal
    ) -> None:
        self.sales_order_line_id = sales_order_line_id
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"Requested quantity {requested} exceeds remaining {remaining} "
            f"for sales order line {sales_order_line_id}"
        )


class DuplicateDocumentError(DomainException):
    """A delivery order with the same document number already exists."""


class InventoryAdjustmentError(DomainException):
    """The inventory subsystem rejected a stock adjustment."""


def _label(status: object) -> str:
    return getattr(status, "value", str(status))
