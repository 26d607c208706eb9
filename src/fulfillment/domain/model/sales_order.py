"""Sales Order aggregate, as seen by fulfillment.

Sales orders are owned by the sales module.  Fulfillment only reads their
promised quantities and maintains the ``quantity_delivered`` display
aggregate on each line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from fulfillment.domain.exceptions import EntityNotFoundError, ValidationError
from fulfillment.domain.model.value_objects import Money


class SalesOrderStatus(Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


DELIVERABLE_STATUSES = frozenset(
    {SalesOrderStatus.CONFIRMED, SalesOrderStatus.PROCESSING}
)

# Statuses whose value is derived from delivery progress
_PROGRESS_STATUSES = frozenset(
    {
        SalesOrderStatus.CONFIRMED,
        SalesOrderStatus.PROCESSING,
        SalesOrderStatus.COMPLETED,
    }
)


@dataclass
class SalesOrderLine:
    """A promised quantity of one product.

    ``quantity_delivered`` is a maintained aggregate recomputed by the
    reconciliation service.  It is never the source of truth for the ledger.
    """

    id: int | None
    sales_order_id: int | None
    product_id: int
    quantity: Decimal
    unit_price: Money
    uom: str = "PCS"
    quantity_delivered: Decimal = Decimal("0")
    quantity_invoiced: Decimal = Decimal("0")
    line_order: int = 0

    @property
    def outstanding_quantity(self) -> Decimal:
        return self.quantity - self.quantity_delivered

    def reprice(self, new_price: Money) -> None:
        """Change the line price.

        Delivery order lines already created keep the price they copied.
        """
        self.unit_price = new_price


@dataclass
class SalesOrder:
    id: int | None
    doc_number: str
    company_id: int
    customer_id: int
    status: SalesOrderStatus = SalesOrderStatus.DRAFT
    lines: list[SalesOrderLine] = field(default_factory=list)

    @property
    def is_deliverable(self) -> bool:
        return self.status in DELIVERABLE_STATUSES

    def find_line(self, line_id: int) -> SalesOrderLine:
        for line in self.lines:
            if line.id == line_id:
                return line
        raise EntityNotFoundError(
            f"Sales order line {line_id} not found on sales order {self.doc_number}"
        )

    def revise_line_quantity(self, line_id: int, quantity: Decimal) -> None:
        """Change a promised quantity.  Only allowed while the order is a draft."""
        if self.status != SalesOrderStatus.DRAFT:
            raise ValidationError(
                f"Cannot change promised quantity — sales order {self.doc_number} "
                f"is {self.status.value}"
            )
        if quantity <= 0:
            raise ValidationError("Promised quantity must be greater than zero")
        self.find_line(line_id).quantity = quantity

    def refresh_fulfillment_status(self) -> None:
        """Derive CONFIRMED / PROCESSING / COMPLETED from delivered quantities."""
        if self.status not in _PROGRESS_STATUSES or not self.lines:
            return
        if all(line.quantity_delivered >= line.quantity for line in self.lines):
            self.status = SalesOrderStatus.COMPLETED
        elif any(line.quantity_delivered > 0 for line in self.lines):
            self.status = SalesOrderStatus.PROCESSING
        else:
            self.status = SalesOrderStatus.CONFIRMED
