"""Quantity ledger — how much of a sales order line is still promisable.

Pure functions over ``LedgerEntry`` snapshots.  The entries must come from a
read made inside the same transaction as the write that depends on the
answer, after the referenced sales order lines have been locked; an answer
computed anywhere else is stale.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from fulfillment.domain.exceptions import CapacityExceededError
from fulfillment.domain.model.sales_order import SalesOrderLine
from fulfillment.domain.model.status import DeliveryOrderStatus

ZERO = Decimal("0")


@dataclass(frozen=True)
class LedgerEntry:
    """One delivery order line as it bears on a sales order line."""

    sales_order_line_id: int
    delivery_order_id: int
    status: DeliveryOrderStatus
    quantity_to_deliver: Decimal
    quantity_delivered: Decimal


def promised_quantity(
    entries: Iterable[LedgerEntry],
    sales_order_line_id: int,
    exclude_delivery_order_id: int | None = None,
) -> Decimal:
    """Σ quantity_to_deliver over non-cancelled delivery lines for the line."""
    return sum(
        (
            e.quantity_to_deliver
            for e in entries
            if e.sales_order_line_id == sales_order_line_id
            and e.status != DeliveryOrderStatus.CANCELLED
            and (
                exclude_delivery_order_id is None
                or e.delivery_order_id != exclude_delivery_order_id
            )
        ),
        ZERO,
    )


def committed_quantity(
    entries: Iterable[LedgerEntry], sales_order_line_id: int
) -> Decimal:
    """Σ quantity_delivered over delivery orders that hold a reservation."""
    return sum(
        (
            e.quantity_delivered
            for e in entries
            if e.sales_order_line_id == sales_order_line_id
            and e.status.holds_reservation
        ),
        ZERO,
    )


def remaining_quantity(
    line: SalesOrderLine,
    entries: Iterable[LedgerEntry],
    exclude_delivery_order_id: int | None = None,
) -> Decimal:
    return line.quantity - promised_quantity(
        entries, line.id, exclude_delivery_order_id  # type: ignore[arg-type]
    )


def ensure_capacity(
    line: SalesOrderLine,
    requested: Decimal,
    entries: Iterable[LedgerEntry],
    exclude_delivery_order_id: int | None = None,
) -> Decimal:
    """Raise CapacityExceededError unless *requested* fits; return remaining."""
    remaining = remaining_quantity(line, entries, exclude_delivery_order_id)
    if requested > remaining:
        raise CapacityExceededError(
            line.id, requested, max(remaining, ZERO)  # type: ignore[arg-type]
        )
    return remaining
