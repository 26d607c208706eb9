"""Domain service: Delivery Reconciliation.

Coordinates the cross-aggregate rules between delivery orders and the sales
order lines they draw on:

- building delivery lines from requested quantities (referential, product
  and ledger capacity checks),
- re-validating capacity when an order is confirmed,
- recomputing the sales order lines' ``quantity_delivered`` aggregate and
  the sales order status after quantities are committed or released.

Every method expects to run inside an open unit of work.  Sales order lines
are row-locked before the ledger is read, so two transactions drawing on the
same line are serialized and cannot both pass the capacity check.

As with inventory reservation, validation runs to completion before any
aggregate is mutated.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from fulfillment.domain.exceptions import EntityNotFoundError, ValidationError
from fulfillment.domain.model.delivery_order import (
    DeliveryOrder,
    DeliveryOrderLine,
    requested_by_line,
)
from fulfillment.domain.model.sales_order import SalesOrder, SalesOrderLine
from fulfillment.domain.model.value_objects import Quantity
from fulfillment.domain.repository.delivery_order_repository import (
    DeliveryOrderRepository,
)
from fulfillment.domain.repository.sales_order_repository import (
    SalesOrderRepository,
)
from fulfillment.domain.service.quantity_ledger import (
    committed_quantity,
    ensure_capacity,
    remaining_quantity,
)


@dataclass(frozen=True)
class RequestedLine:
    """A validated request to ship part of one sales order line."""

    sales_order_line_id: int
    product_id: int
    quantity: Quantity
    notes: str | None = None
    line_order: int = 0


class DeliveryReconciliationService:

    def __init__(
        self,
        delivery_orders: DeliveryOrderRepository,
        sales_orders: SalesOrderRepository,
    ) -> None:
        self._delivery_orders = delivery_orders
        self._sales_orders = sales_orders

    def lock_lines(
        self, sales_order: SalesOrder, line_ids: Iterable[int]
    ) -> dict[int, SalesOrderLine]:
        """Lock the given lines, failing if any is not on *sales_order*."""
        wanted = sorted(set(line_ids))
        locked = {line.id: line for line in self._sales_orders.lock_lines(wanted)}
        for line_id in wanted:
            line = locked.get(line_id)
            if line is None or line.sales_order_id != sales_order.id:
                raise EntityNotFoundError(
                    f"Sales order line {line_id} not found on sales order "
                    f"{sales_order.doc_number}"
                )
        return locked  # type: ignore[return-value]

    def build_lines(
        self,
        sales_order: SalesOrder,
        requested: list[RequestedLine],
        exclude_delivery_order_id: int | None = None,
    ) -> list[DeliveryOrderLine]:
        """Turn requested lines into delivery lines with snapshot pricing.

        Phase 1 — lock and validate references and products.
        Phase 2 — check every line's total request against the ledger.
        Nothing is persisted here.
        """
        if not requested:
            raise ValidationError("Delivery order must contain at least one line")

        locked = self.lock_lines(
            sales_order, (r.sales_order_line_id for r in requested)
        )

        lines: list[DeliveryOrderLine] = []
        for req in requested:
            so_line = locked[req.sales_order_line_id]
            if so_line.product_id != req.product_id:
                raise ValidationError(
                    f"Product {req.product_id} does not match sales order line "
                    f"{so_line.id} (product {so_line.product_id})"
                )
            lines.append(
                DeliveryOrderLine(
                    id=None,
                    sales_order_line_id=so_line.id,  # type: ignore[arg-type]
                    product_id=so_line.product_id,
                    quantity_to_deliver=req.quantity,
                    unit_price=so_line.unit_price,  # <-- price snapshot
                    uom=so_line.uom,
                    notes=req.notes,
                    line_order=req.line_order,
                )
            )

        self._ensure_capacity(
            locked, requested_by_line(lines), exclude_delivery_order_id
        )
        return lines

    def reserve(self, order: DeliveryOrder, sales_order: SalesOrder) -> None:
        """Re-validate an order's lines against the current ledger.

        Called right before ``DeliveryOrder.confirm()`` commits the
        quantities.  The order's own lines are excluded from the ledger so a
        draft does not compete with itself.
        """
        locked = self.lock_lines(sales_order, order.sales_order_line_ids)
        self._ensure_capacity(locked, order.requested_by_line(), order.id)

    def sync_sales_order(self, order: DeliveryOrder) -> SalesOrder:
        """Recompute delivered aggregates after *order* was saved.

        Replaces the database trigger of older designs with an explicit step
        in the same transaction.
        """
        self._sales_orders.lock_lines(order.sales_order_line_ids)
        sales_order = self._sales_orders.get_by_id(order.sales_order_id)
        if sales_order is None:
            raise EntityNotFoundError(
                f"Sales order {order.sales_order_id} not found"
            )

        entries = self._delivery_orders.ledger_entries(
            line.id for line in sales_order.lines  # type: ignore[misc]
        )
        for line in sales_order.lines:
            line.quantity_delivered = committed_quantity(entries, line.id)  # type: ignore[arg-type]
        sales_order.refresh_fulfillment_status()
        self._sales_orders.save(sales_order)
        return sales_order

    def remaining_by_line(self, sales_order: SalesOrder) -> dict[int, Decimal]:
        """Ledger remaining quantity for every line of *sales_order*."""
        entries = self._delivery_orders.ledger_entries(
            line.id for line in sales_order.lines  # type: ignore[misc]
        )
        return {
            line.id: remaining_quantity(line, entries)  # type: ignore[misc]
            for line in sales_order.lines
        }

    # --- Internal helpers -----------------------------------------------------

    def _ensure_capacity(
        self,
        locked: dict[int, SalesOrderLine],
        totals: dict[int, Decimal],
        exclude_delivery_order_id: int | None,
    ) -> None:
        entries = self._delivery_orders.ledger_entries(totals)
        for line_id, quantity in sorted(totals.items()):
            ensure_capacity(
                locked[line_id], quantity, entries, exclude_delivery_order_id
            )
