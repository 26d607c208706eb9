"""Application service: Mark Delivered use case.

Quantities were committed at confirmation; delivery only moves stock.  One
outbound adjustment per line is posted through the inventory adapter
*inside* the unit of work, after the order is flushed and before commit.
If any adjustment is rejected the whole transaction rolls back and the
order stays IN_TRANSIT.

Adjustment references are derived from the document number and line id,
so a retried delivery never posts the same line twice.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fulfillment.application.dto import DeliveryOrderDTO
from fulfillment.application.mapping import to_dto
from fulfillment.domain.exceptions import EntityNotFoundError, InventoryAdjustmentError
from fulfillment.domain.model.delivery_order import DeliveryOrder
from fulfillment.domain.repository.unit_of_work import UnitOfWork
from fulfillment.domain.service.inventory_adapter import (
    InventoryAdapter,
    StockAdjustment,
)

logger = logging.getLogger(__name__)


class MarkDeliveredHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        inventory: InventoryAdapter | None = None,
    ) -> None:
        self._uow = uow
        self._inventory = inventory

    def handle(
        self,
        delivery_order_id: int,
        delivered_at: datetime,
        actor_id: int | None,
    ) -> DeliveryOrderDTO:
        with self._uow as uow:
            order = uow.delivery_orders.get_by_id(delivery_order_id, for_update=True)
            if order is None:
                raise EntityNotFoundError(
                    f"Delivery order #{delivery_order_id} not found"
                )
            order.mark_delivered(delivered_at, actor_id)
            uow.delivery_orders.save(order)

            if self._inventory is not None:
                for adjustment in outbound_adjustments(order, actor_id):
                    try:
                        self._inventory.post_adjustment(adjustment)
                    except InventoryAdjustmentError:
                        logger.warning(
                            "Inventory rejected %s; rolling back delivery of %s",
                            adjustment.reference,
                            order.doc_number,
                        )
                        raise

            uow.commit()

        logger.info(
            "Delivery order %s (%s) delivered by %s",
            order.id,
            order.doc_number,
            actor_id,
        )
        return to_dto(order)


def outbound_adjustments(
    order: DeliveryOrder, actor_id: int | None
) -> list[StockAdjustment]:
    """One negative stock adjustment per delivery line."""
    return [
        StockAdjustment(
            warehouse_id=order.warehouse_id,
            product_id=line.product_id,
            quantity=-line.quantity_to_deliver.value,
            unit_cost=line.unit_price.amount,
            reference=f"DO-{order.doc_number}-L{line.id}",
            note=f"Delivery {order.doc_number} Line {line.line_order}",
            actor_id=actor_id,
            ref_id=str(order.id),
        )
        for line in order.lines
    ]
