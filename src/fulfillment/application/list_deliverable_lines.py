"""Application service: List Deliverable Lines use case (query).

Answers "what can still go on a new delivery order" for each line of a
sales order.  The answer is informational only; creation re-checks it
under lock.
"""

from __future__ import annotations

from fulfillment.application.dto import DeliverableLineDTO, DeliverableLinesDTO
from fulfillment.domain.exceptions import EntityNotFoundError, ValidationError
from fulfillment.domain.repository.unit_of_work import UnitOfWork
from fulfillment.domain.service.delivery_reconciliation import (
    DeliveryReconciliationService,
)


class ListDeliverableLinesHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, sales_order_id: int) -> DeliverableLinesDTO:
        with self._uow as uow:
            sales_order = uow.sales_orders.get_by_id(sales_order_id)
            if sales_order is None:
                raise EntityNotFoundError(f"Sales order {sales_order_id} not found")
            if not sales_order.is_deliverable:
                raise ValidationError(
                    f"Sales order must be CONFIRMED or PROCESSING, "
                    f"got {sales_order.status.value}"
                )
            svc = DeliveryReconciliationService(uow.delivery_orders, uow.sales_orders)
            remaining = svc.remaining_by_line(sales_order)

        return DeliverableLinesDTO(
            sales_order_id=sales_order.id,  # type: ignore[arg-type]
            sales_order_number=sales_order.doc_number,
            customer_id=sales_order.customer_id,
            lines=[
                DeliverableLineDTO(
                    sales_order_line_id=line.id,  # type: ignore[arg-type]
                    product_id=line.product_id,
                    uom=line.uom,
                    unit_price=str(line.unit_price),
                    quantity=line.quantity,
                    quantity_delivered=line.quantity_delivered,
                    remaining_quantity=remaining[line.id],  # type: ignore[index]
                )
                for line in sorted(sales_order.lines, key=lambda l: (l.line_order, l.id))
                if remaining[line.id] > 0  # type: ignore[index]
            ],
        )
