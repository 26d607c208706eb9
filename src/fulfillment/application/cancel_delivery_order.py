"""Application service: Cancel Delivery Order use case.

If the order held a reservation (CONFIRMED or IN_TRANSIT), every line's
committed quantity is released back to the ledger and the sales order
aggregates are recomputed in the same transaction.  DRAFT orders are
cancelled without quantity changes.

Stock is never touched here: it only moves at delivery, and DELIVERED
orders cannot be cancelled.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fulfillment.application.dto import DeliveryOrderDTO
from fulfillment.application.mapping import to_dto
from fulfillment.domain.exceptions import EntityNotFoundError
from fulfillment.domain.repository.unit_of_work import UnitOfWork
from fulfillment.domain.service.delivery_reconciliation import (
    DeliveryReconciliationService,
)

logger = logging.getLogger(__name__)


class CancelDeliveryOrderHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(
        self, delivery_order_id: int, reason: str, actor_id: int | None
    ) -> DeliveryOrderDTO:
        with self._uow as uow:
            order = uow.delivery_orders.get_by_id(delivery_order_id, for_update=True)
            if order is None:
                raise EntityNotFoundError(
                    f"Delivery order #{delivery_order_id} not found"
                )

            released = order.cancel(reason, actor_id, datetime.now(timezone.utc))
            uow.delivery_orders.save(order)

            if released:
                svc = DeliveryReconciliationService(
                    uow.delivery_orders, uow.sales_orders
                )
                svc.sync_sales_order(order)
            uow.commit()

        logger.info(
            "Delivery order %s (%s) cancelled by %s (released=%s): %s",
            order.id,
            order.doc_number,
            actor_id,
            released,
            order.cancellation_reason,
        )
        return to_dto(order)
